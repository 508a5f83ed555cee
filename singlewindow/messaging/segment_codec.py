# =============================================================================
# File: singlewindow/messaging/segment_codec.py
# Description: Encode/decode single wire segments (tag + delimited fields)
# Responsibilities:
#  - Escape reserved characters in literal data with the escape character.
#  - Scan segments left-to-right with an explicit normal/escaped state.
#  - Split a character stream into segments using the same scanner.
# =============================================================================

from __future__ import annotations

from typing import Iterable, Iterator, List, Sequence, Tuple

from singlewindow.messaging.exceptions import MalformedSegment
from singlewindow.messaging.value_objects import (
    DEFAULT_DELIMITERS,
    Delimiters,
    FieldInput,
    Segment,
)

# Line breaks tolerated between segments of a stream
_INTER_SEGMENT_WHITESPACE = "\r\n"


# -----------------------------------------------------------------------------
# Encoding
# -----------------------------------------------------------------------------
def escape_text(text: str, delimiters: Delimiters = DEFAULT_DELIMITERS) -> str:
    """Prefix every reserved character in `text` with the escape character."""
    reserved = delimiters.reserved_characters
    out: List[str] = []
    for ch in text:
        if ch in reserved:
            out.append(delimiters.escape)
        out.append(ch)
    return "".join(out)


def _validate_tag(tag: str) -> None:
    if not tag or not tag.isalnum():
        raise ValueError(f"Segment tag must be non-empty and alphanumeric, got {tag!r}")


def encode_segment(
        tag: str,
        fields: Sequence[FieldInput] = (),
        delimiters: Delimiters = DEFAULT_DELIMITERS,
) -> str:
    """
    Encode a segment.

    Args:
        tag: Segment tag (e.g. "BGM")
        fields: Ordered fields; each a string or a sequence of components
        delimiters: Structural characters of the enclosing message

    Returns:
        Segment text including its terminator
    """
    _validate_tag(tag)
    segment = Segment.of(tag, *fields)

    parts = [tag]
    for components in segment.fields:
        parts.append(
            delimiters.component.join(escape_text(c, delimiters) for c in components)
        )
    return delimiters.field.join(parts) + delimiters.terminator


def segment_to_text(segment: Segment, delimiters: Delimiters = DEFAULT_DELIMITERS) -> str:
    """Encode a Segment value object."""
    return encode_segment(segment.tag, segment.fields, delimiters)


# -----------------------------------------------------------------------------
# Decoding
# -----------------------------------------------------------------------------
def _scan_segment(
        text: str,
        start: int,
        delimiters: Delimiters,
) -> Tuple[List[Tuple[str, ...]], int]:
    """
    Scan one segment starting at `start`.

    Returns the raw field list (tag first) and the offset just past the
    terminator. The escape character always consumes the next character
    literally, whatever it is, so "??" is a literal escape character.
    """
    fields: List[Tuple[str, ...]] = []
    components: List[str] = []
    buf: List[str] = []
    escaped = False

    i = start
    length = len(text)
    while i < length:
        ch = text[i]
        if escaped:
            buf.append(ch)
            escaped = False
        elif ch == delimiters.escape:
            escaped = True
        elif ch == delimiters.component:
            components.append("".join(buf))
            buf = []
        elif ch == delimiters.field:
            components.append("".join(buf))
            fields.append(tuple(components))
            components, buf = [], []
        elif ch == delimiters.terminator:
            components.append("".join(buf))
            fields.append(tuple(components))
            return fields, i + 1
        else:
            buf.append(ch)
        i += 1

    if escaped:
        raise MalformedSegment("Dangling escape character at end of input", position=length - 1)
    raise MalformedSegment("Segment terminator missing", position=start)


def _build_segment(raw_fields: List[Tuple[str, ...]], position: int) -> Segment:
    tag_field = raw_fields[0]
    if len(tag_field) != 1:
        raise MalformedSegment("Segment tag must not contain component separators", position=position)
    tag = tag_field[0]
    if not tag:
        raise MalformedSegment("Segment tag is empty", position=position)
    if not tag.isalnum():
        raise MalformedSegment(f"Segment tag {tag!r} is not alphanumeric", position=position)
    return Segment(tag, tuple(raw_fields[1:]))


def decode_segment(text: str, delimiters: Delimiters = DEFAULT_DELIMITERS) -> Segment:
    """
    Decode exactly one segment.

    Raises:
        MalformedSegment: terminator missing, content after the terminator,
            empty/composite tag, or a dangling escape character
    """
    raw_fields, end = _scan_segment(text, 0, delimiters)
    if end != len(text):
        raise MalformedSegment("Unescaped terminator before end of segment", position=end - 1)
    return _build_segment(raw_fields, 0)


def split_segments(
        text: str,
        delimiters: Delimiters = DEFAULT_DELIMITERS,
        start: int = 0,
) -> Iterator[Segment]:
    """
    Decode a stream of consecutive segments.

    Line breaks directly after a terminator are skipped.
    """
    pos = _skip_whitespace(text, start)
    while pos < len(text):
        raw_fields, end = _scan_segment(text, pos, delimiters)
        yield _build_segment(raw_fields, pos)
        pos = _skip_whitespace(text, end)


def segments_to_text(segments: Iterable[Segment], delimiters: Delimiters = DEFAULT_DELIMITERS) -> str:
    return "".join(segment_to_text(s, delimiters) for s in segments)


def _skip_whitespace(text: str, pos: int) -> int:
    while pos < len(text) and text[pos] in _INTER_SEGMENT_WHITESPACE:
        pos += 1
    return pos


# =============================================================================
# EOF
# =============================================================================
