"""Markdown-aware word counting.

Strips markdown syntax that is not prose (code, image and link targets,
structural markers) before splitting on whitespace.
"""

from __future__ import annotations

import re

_FENCED_CODE_RE = re.compile(r"(```|~~~)[\s\S]*?(?:\1|\Z)")
_INLINE_CODE_RE = re.compile(r"`[^`\n]*`")
_IMAGE_RE = re.compile(r"!\[[^\]\n]*\]\([^)\n]*\)")
_LINK_RE = re.compile(r"\[([^\]\n]*)\]\([^)\n]*\)")
_HEADING_RE = re.compile(r"^[ \t]*(?:#{1,6}[ \t]+)+", re.MULTILINE)
_EMPHASIS_RE = re.compile(r"\*\*|__|~~|\*|_")
_PREFIX_RE = re.compile(
    r"^[ \t]*(?:(?:[-+*]|\d+[.)])[ \t]+|>[ \t]*)+", re.MULTILINE
)
_WHITESPACE_RE = re.compile(r"\s+")


def _clean_once(text: str) -> str:
    text = _FENCED_CODE_RE.sub(" ", text)
    text = _INLINE_CODE_RE.sub(" ", text)
    text = _IMAGE_RE.sub(" ", text)
    text = _LINK_RE.sub(r"\1", text)
    text = _HEADING_RE.sub("", text)
    text = _EMPHASIS_RE.sub("", text)
    text = _PREFIX_RE.sub("", text)
    return _WHITESPACE_RE.sub(" ", text).strip()


def clean_markdown(text: str) -> str:
    """Strip markdown syntax from *text* and collapse whitespace.

    Removes, in order: fenced code blocks, inline code spans, image
    references, link targets (the link text is kept), heading markers,
    emphasis markers, and list / numbered-list / quote prefixes.

    The passes are repeated until the text stops changing, so cleaning
    already-cleaned text is a no-op even when removing one marker exposes
    another (``*# x*`` becomes ``# x`` and then ``x``).

    Args:
        text: Raw document content.

    Returns:
        Single-line cleaned text, or ``""`` for non-string input.
    """
    if not isinstance(text, str):
        return ""
    previous = None
    while text != previous:
        previous = text
        text = _clean_once(text)
    return text


def count_words(text: str) -> int:
    """Count the prose words in markdown *text*.

    Args:
        text: Raw document content.  Non-string input counts as empty.

    Returns:
        Number of whitespace-separated tokens left after ``clean_markdown``.
    """
    cleaned = clean_markdown(text)
    return len(cleaned.split()) if cleaned else 0
