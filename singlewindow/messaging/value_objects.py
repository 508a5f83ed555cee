# =============================================================================
# File: singlewindow/messaging/value_objects.py
# Description: Value objects for the wire codec (immutable, no identity)
# =============================================================================

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional, Tuple, Union

from singlewindow.messaging.exceptions import MalformedEnvelope, MessageFormatError

FieldInput = Union[str, Iterable[str]]

SERVICE_ADVICE_TAG = "UNA"
SERVICE_ADVICE_LENGTH = 9   # "UNA" + six service characters
HEADER_TAG = "UNH"
TRAILER_TAG = "UNT"


@dataclass(frozen=True)
class Delimiters:
    """
    Structural characters of one message, in UNA order.

    Only component, field, escape and terminator are reserved: they are
    escaped inside data. Decimal mark and the reserved slot are carried so a
    service string advice round-trips.
    """
    component: str = ":"
    field: str = "+"
    decimal_mark: str = "."
    escape: str = "?"
    reserved: str = " "
    terminator: str = "'"

    def __post_init__(self) -> None:
        for name in ("component", "field", "decimal_mark", "escape", "reserved", "terminator"):
            if len(getattr(self, name)) != 1:
                raise ValueError(f"Delimiter '{name}' must be a single character")
        if len(self.reserved_characters) != 4:
            raise ValueError("Component, field, escape and terminator must be distinct")

    @property
    def reserved_characters(self) -> frozenset:
        return frozenset((self.component, self.field, self.escape, self.terminator))

    def service_string(self) -> str:
        """UNA service string advice, e.g. "UNA:+.? '"."""
        return (
            f"{SERVICE_ADVICE_TAG}{self.component}{self.field}{self.decimal_mark}"
            f"{self.escape}{self.reserved}{self.terminator}"
        )

    @classmethod
    def from_service_string(cls, text: str) -> "Delimiters":
        if len(text) < SERVICE_ADVICE_LENGTH or not text.startswith(SERVICE_ADVICE_TAG):
            raise MalformedEnvelope(
                "Service string advice must be 'UNA' followed by six characters",
                check="service_string_advice",
            )
        chars = text[3:SERVICE_ADVICE_LENGTH]
        try:
            return cls(*chars)
        except ValueError as e:
            raise MalformedEnvelope(str(e), check="service_string_advice") from e


DEFAULT_DELIMITERS = Delimiters()


def _normalize_field(value: FieldInput) -> Tuple[str, ...]:
    if isinstance(value, str):
        return (value,)
    components = tuple(value)
    # An empty field is a single empty component on the wire
    return components or ("",)


@dataclass(frozen=True)
class Segment:
    """
    One delimited unit of a message: a tag and ordered composite fields.

    Fields may be given as plain strings (one component) or sequences of
    components; they are normalized to tuples of strings.
    """
    tag: str
    fields: Tuple[Tuple[str, ...], ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "fields", tuple(_normalize_field(f) for f in self.fields))

    @classmethod
    def of(cls, tag: str, *fields: FieldInput) -> "Segment":
        return cls(tag, tuple(_normalize_field(f) for f in fields))

    def component(self, field_index: int, component_index: int = 0, default: str = "") -> str:
        """Component at (field, component), or default when absent."""
        if field_index >= len(self.fields):
            return default
        components = self.fields[field_index]
        if component_index >= len(components):
            return default
        return components[component_index]

    def qualifier(self) -> str:
        """First component of the first field (EDIFACT qualifier position)."""
        return self.component(0, 0)


@dataclass(frozen=True)
class Envelope:
    """UNH/UNT envelope metadata plus the delimiters the message uses."""
    message_type: str
    reference: str
    version: str = "D"
    release: str = "96B"
    agency: str = "UN"
    delimiters: Delimiters = DEFAULT_DELIMITERS
    service_advice: bool = True

    def __post_init__(self) -> None:
        if not self.message_type:
            raise ValueError("Envelope message_type is required")
        if not self.reference:
            raise ValueError("Envelope reference is required")


@dataclass(frozen=True)
class Message:
    """
    Decoded message: envelope plus body segments (UNH/UNT excluded).

    Segments whose tag is not known for the message type are kept in place
    and their positions listed in `unknown_positions`; they are never
    interpreted.
    """
    envelope: Envelope
    segments: Tuple[Segment, ...] = ()
    unknown_positions: Tuple[int, ...] = ()

    @property
    def unknown_segments(self) -> Tuple[Segment, ...]:
        return tuple(self.segments[i] for i in self.unknown_positions)

    @property
    def segment_count(self) -> int:
        """Count as declared in UNT (header and trailer included)."""
        return len(self.segments) + 2

    def find(self, tag: str, qualifier: Optional[str] = None) -> Tuple[Segment, ...]:
        return tuple(
            s for s in self.segments
            if s.tag == tag and (qualifier is None or s.qualifier() == qualifier)
        )

    def first(self, tag: str, qualifier: Optional[str] = None) -> Optional[Segment]:
        found = self.find(tag, qualifier)
        return found[0] if found else None


@dataclass(frozen=True)
class DecodeOutcome:
    """Typed result of a decode call: a message or the format error, never both."""
    message: Optional[Message] = None
    error: Optional[MessageFormatError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


# =============================================================================
# EOF
# =============================================================================
