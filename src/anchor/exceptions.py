"""Domain exceptions raised inside pipeline components.

Each is caught at the fallback boundary of the component that raised it;
none reach the mobile client, which only observes document state.
"""


class AnchorError(Exception):
    """Base class for all pipeline errors."""


class PromptTemplateError(AnchorError):
    """A prompt template is missing a required placeholder."""


class ReferenceParseError(AnchorError):
    """A scripture reference does not match ``<Book> <chapter>:<verse>[-<verse>]``."""


class GenerationError(AnchorError):
    """The devotional model call failed or returned unusable output."""


class ScriptureServiceError(AnchorError):
    """The scripture-text service could not return a passage."""


class PushDeliveryError(AnchorError):
    """One push-delivery request failed."""
