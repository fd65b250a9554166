"""Recipient filtering shared by the notification fan-outs."""

from __future__ import annotations

from typing import Collection, Iterable, List

from anchor.datatypes.notification_datatypes import PreferenceCategory, UserNotificationProfile

VALID_TOKEN_PREFIXES = ("ExponentPushToken[", "ExpoPushToken[")


def is_valid_push_token(token: str | None) -> bool:
    """True for well-formed Expo tokens such as ``ExponentPushToken[xxxx]``."""
    if not token or not isinstance(token, str):
        return False
    return token.startswith(VALID_TOKEN_PREFIXES) and token.endswith("]")


def can_receive(profile: UserNotificationProfile | None, category: PreferenceCategory | None) -> bool:
    """Check token validity and, unless ``category`` is None, the opt-in flag."""
    if profile is None or not is_valid_push_token(profile.push_token):
        return False
    return category is None or profile.preferences.allows(category)


def select_recipients(
    profiles: Iterable[UserNotificationProfile],
    category: PreferenceCategory,
    exclude: Collection[str] = (),
) -> List[UserNotificationProfile]:
    """Opted-in profiles with a valid token, minus ``exclude``; one per token."""
    seen_tokens: set[str] = set()
    selected: List[UserNotificationProfile] = []
    for profile in profiles:
        if profile.user_id in exclude or not can_receive(profile, category):
            continue
        token = profile.push_token or ""
        if token in seen_tokens:
            continue
        seen_tokens.add(token)
        selected.append(profile)
    return selected
