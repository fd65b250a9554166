"""Parsing of ``<Book> <chapter>:<verse>[-<verse>]`` scripture references."""

from __future__ import annotations

import re

from anchor.datatypes.daily_content_datatypes import ScriptureReference
from anchor.exceptions import ReferenceParseError

BOOK = r"(?:[1-3]\s+)?[A-Za-z][A-Za-z ]*?"
CH = r"\d+"
VER = r"\d+"
REF_REGEX = re.compile(rf"^\s*({BOOK})\s+({CH})\s*:\s*({VER})(?:\s*[-–]\s*({VER}))?\s*$")


def normalize_spacing(ref: str) -> str:
    s = ref.strip()
    s = re.sub(r"\s*:\s*", ":", s)
    s = re.sub(r"\s*[-–]\s*", "-", s)
    s = re.sub(r"\s{2,}", " ", s)
    return s


def parse_reference(reference: str) -> ScriptureReference:
    """Split a reference such as ``"1 John 4:18"`` or ``"Romans 8:38-39"``.

    Raises:
        ReferenceParseError: If the text does not match the expected shape or
            the numbers are out of order.
    """
    m = REF_REGEX.match(normalize_spacing(reference or ""))
    if not m:
        raise ReferenceParseError(f"Unrecognized scripture reference: {reference!r}")

    book = " ".join(m.group(1).split())
    chapter = int(m.group(2))
    start = int(m.group(3))
    end = int(m.group(4)) if m.group(4) else start

    if chapter < 1 or start < 1 or end < start:
        raise ReferenceParseError(f"Invalid chapter or verse numbers in {reference!r}")

    return ScriptureReference(book=book, chapter=chapter, start_verse=start, end_verse=end)
