# =============================================================================
# File: singlewindow/messaging/message_codec.py
# Description: Assemble/parse full messages (UNA? + UNH + body + UNT)
# Responsibilities:
#  - Emit the optional UNA service string advice, UNH header and UNT trailer.
#  - Verify envelope balance, trailer count and reference on decode.
#  - Keep unknown segment tags in order without interpreting them.
#  - Offer a non-raising decode for batch processing.
# =============================================================================

from __future__ import annotations

from typing import Dict, FrozenSet, List, Optional, Sequence, Tuple, Union

from singlewindow.config.logging_config import get_logger
from singlewindow.infra.metrics.prometheus import decode_failures
from singlewindow.messaging.exceptions import (
    MalformedEnvelope,
    MessageFormatError,
    SegmentCountMismatch,
    UnbalancedEnvelope,
    UndecodableMessage,
)
from singlewindow.messaging.segment_codec import segments_to_text, split_segments
from singlewindow.messaging.value_objects import (
    DEFAULT_DELIMITERS,
    HEADER_TAG,
    SERVICE_ADVICE_LENGTH,
    SERVICE_ADVICE_TAG,
    TRAILER_TAG,
    DecodeOutcome,
    Delimiters,
    Envelope,
    Message,
    Segment,
)

log = get_logger("singlewindow.messaging.message_codec")

DEFAULT_ENCODING = "utf-8"

# Segment tags each message type interprets; anything else is kept verbatim
KNOWN_SEGMENT_TAGS: Dict[str, FrozenSet[str]] = {
    "CUSDEC": frozenset({"BGM", "DTM", "NAD", "CUX", "LOC", "MOA", "CST", "FTX", "QTY", "MEA", "TAX"}),
    "CUSRES": frozenset({"BGM", "DTM", "RFF", "GIS", "ERC", "FTX", "MOA"}),
}

_ENVELOPE_TAGS = frozenset({HEADER_TAG, TRAILER_TAG})


# -----------------------------------------------------------------------------
# Encoding
# -----------------------------------------------------------------------------
def _header_segment(envelope: Envelope) -> Segment:
    return Segment.of(
        HEADER_TAG,
        envelope.reference,
        (envelope.message_type, envelope.version, envelope.release, envelope.agency),
    )


def _trailer_segment(envelope: Envelope, body_count: int) -> Segment:
    return Segment.of(TRAILER_TAG, str(body_count + 2), envelope.reference)


def encode_message_text(envelope: Envelope, segments: Sequence[Segment]) -> str:
    """
    Encode a message to text (canonical form: no line breaks).

    Non-default delimiters are always declared with a UNA advice, whatever
    `envelope.service_advice` says; without it a reader assumes the defaults.
    """
    for segment in segments:
        if segment.tag in _ENVELOPE_TAGS or segment.tag == SERVICE_ADVICE_TAG:
            raise ValueError(f"Body must not contain envelope segment {segment.tag}")

    delimiters = envelope.delimiters
    parts: List[str] = []
    if envelope.service_advice or delimiters != DEFAULT_DELIMITERS:
        parts.append(delimiters.service_string())
    parts.append(segments_to_text(
        [_header_segment(envelope), *segments, _trailer_segment(envelope, len(segments))],
        delimiters,
    ))
    return "".join(parts)


def encode_message(
        envelope: Envelope,
        segments: Sequence[Segment],
        encoding: str = DEFAULT_ENCODING,
) -> bytes:
    """
    Encode envelope and body segments to a byte stream.

    The trailer count is computed here and includes header and trailer.
    """
    return encode_message_text(envelope, segments).encode(encoding)


def reencode(message: Message, encoding: str = DEFAULT_ENCODING) -> bytes:
    """Encode a decoded Message back to bytes."""
    return encode_message(message.envelope, message.segments, encoding)


# -----------------------------------------------------------------------------
# Decoding
# -----------------------------------------------------------------------------
def _to_text(data: Union[bytes, str], encoding: str) -> str:
    if isinstance(data, str):
        return data
    try:
        return data.decode(encoding)
    except UnicodeDecodeError as e:
        raise UndecodableMessage(encoding, str(e)) from e


def _read_service_advice(text: str) -> Tuple[Delimiters, bool, int]:
    if text.startswith(SERVICE_ADVICE_TAG):
        return Delimiters.from_service_string(text[:SERVICE_ADVICE_LENGTH]), True, SERVICE_ADVICE_LENGTH
    return DEFAULT_DELIMITERS, False, 0


def _group_messages(segments: List[Segment]) -> List[Tuple[Segment, List[Segment], Segment]]:
    """Pair every UNH with its UNT, rejecting unbalanced or stray segments."""
    headers = sum(1 for s in segments if s.tag == HEADER_TAG)
    trailers = sum(1 for s in segments if s.tag == TRAILER_TAG)
    if headers != trailers:
        raise UnbalancedEnvelope(headers, trailers)
    if headers == 0:
        raise MalformedEnvelope("No UNH header found", check="envelope_header")

    groups: List[Tuple[Segment, List[Segment], Segment]] = []
    header: Optional[Segment] = None
    body: List[Segment] = []
    for segment in segments:
        if segment.tag == HEADER_TAG:
            if header is not None:
                raise UnbalancedEnvelope(headers, trailers, "UNH found before previous message's UNT")
            header, body = segment, []
        elif segment.tag == TRAILER_TAG:
            if header is None:
                raise UnbalancedEnvelope(headers, trailers, "UNT found without an open UNH")
            groups.append((header, body, segment))
            header, body = None, []
        elif header is None:
            raise MalformedEnvelope(
                f"Segment {segment.tag} outside of a UNH/UNT envelope",
                check="envelope_scope",
            )
        else:
            body.append(segment)
    return groups


def _build_message(
        header: Segment,
        body: List[Segment],
        trailer: Segment,
        delimiters: Delimiters,
        service_advice: bool,
        known_tags: Optional[Dict[str, FrozenSet[str]]],
) -> Message:
    reference = header.component(0)
    message_type = header.component(1, 0)
    version = header.component(1, 1)
    if not reference:
        raise MalformedEnvelope("UNH message reference is missing", check="envelope_header")
    if not message_type or not version:
        raise MalformedEnvelope("UNH message type and version are required", check="envelope_header")

    declared_raw = trailer.component(0)
    if not declared_raw.isdigit():
        raise MalformedEnvelope(f"UNT segment count {declared_raw!r} is not numeric", check="envelope_trailer")
    trailer_reference = trailer.component(1)
    if trailer_reference != reference:
        raise MalformedEnvelope(
            f"UNT reference {trailer_reference!r} does not match UNH reference {reference!r}",
            check="envelope_reference",
        )

    declared = int(declared_raw)
    actual = len(body) + 2
    if declared != actual:
        raise SegmentCountMismatch(declared, actual)

    envelope = Envelope(
        message_type=message_type,
        reference=reference,
        version=version,
        release=header.component(1, 2),
        agency=header.component(1, 3),
        delimiters=delimiters,
        service_advice=service_advice,
    )

    table = (known_tags if known_tags is not None else KNOWN_SEGMENT_TAGS).get(message_type)
    unknown: Tuple[int, ...] = ()
    if table is not None:
        unknown = tuple(i for i, s in enumerate(body) if s.tag not in table)
        if unknown:
            log.debug(
                f"Message {reference} ({message_type}) carries unknown segments: "
                f"{sorted({body[i].tag for i in unknown})}"
            )

    return Message(envelope=envelope, segments=tuple(body), unknown_positions=unknown)


def decode_messages(
        data: Union[bytes, str],
        encoding: str = DEFAULT_ENCODING,
        known_tags: Optional[Dict[str, FrozenSet[str]]] = None,
) -> List[Message]:
    """
    Decode a stream holding one or more UNH..UNT messages.

    A UNA advice, when present, applies to every message of the stream.
    Any format error rejects the whole stream.
    """
    text = _to_text(data, encoding)
    delimiters, service_advice, start = _read_service_advice(text)
    segments = list(split_segments(text, delimiters, start))
    return [
        _build_message(header, body, trailer, delimiters, service_advice, known_tags)
        for header, body, trailer in _group_messages(segments)
    ]


def decode_message(
        data: Union[bytes, str],
        encoding: str = DEFAULT_ENCODING,
        known_tags: Optional[Dict[str, FrozenSet[str]]] = None,
) -> Message:
    """
    Decode exactly one message.

    Raises:
        MalformedSegment, SegmentCountMismatch, UnbalancedEnvelope,
        MalformedEnvelope, UndecodableMessage
    """
    messages = decode_messages(data, encoding, known_tags)
    if len(messages) != 1:
        raise MalformedEnvelope(
            f"Expected exactly one message, found {len(messages)}",
            check="message_count",
        )
    return messages[0]


def decode_message_result(
        data: Union[bytes, str],
        encoding: str = DEFAULT_ENCODING,
        known_tags: Optional[Dict[str, FrozenSet[str]]] = None,
) -> DecodeOutcome:
    """Decode without raising format errors, for batch processing."""
    try:
        return DecodeOutcome(message=decode_message(data, encoding, known_tags))
    except MessageFormatError as e:
        decode_failures.labels(reason_code=e.reason_code).inc()
        log.warning(f"Message rejected [{e.reason_code}] {e.check}: {e.message}")
        return DecodeOutcome(error=e)


# =============================================================================
# EOF
# =============================================================================
