# =============================================================================
# File: singlewindow/messaging/exceptions.py
# Description: Format errors raised by the segment and message codecs
# =============================================================================

from typing import Optional

from singlewindow.common.exceptions.exceptions import SingleWindowError


class MessageFormatError(SingleWindowError):
    """
    Base class for wire-format errors.

    Always fatal to the decode call: no partial message is ever returned and
    the caller treats the whole message as rejected.
    """
    reason_code = "FMT-000"


class MalformedSegment(MessageFormatError):
    """Terminator missing, content after terminator, bad tag or dangling escape"""
    reason_code = "FMT-001"

    def __init__(self, message: str, position: Optional[int] = None):
        super().__init__(
            message if position is None else f"{message} (at offset {position})",
            check="segment_syntax",
            details={"position": position},
        )
        self.position = position


class SegmentCountMismatch(MessageFormatError):
    """Trailer count disagrees with the number of segments actually parsed"""
    reason_code = "FMT-002"

    def __init__(self, declared: int, actual: int):
        super().__init__(
            f"Trailer declares {declared} segments, parsed {actual}",
            check="trailer_segment_count",
            details={"declared": declared, "actual": actual},
        )
        self.declared = declared
        self.actual = actual


class UnbalancedEnvelope(MessageFormatError):
    """Header and trailer markers not present in equal numbers or out of order"""
    reason_code = "FMT-003"

    def __init__(self, headers: int, trailers: int, message: Optional[str] = None):
        super().__init__(
            message or f"Envelope unbalanced: {headers} header(s), {trailers} trailer(s)",
            check="envelope_balance",
            details={"headers": headers, "trailers": trailers},
        )
        self.headers = headers
        self.trailers = trailers


class MalformedEnvelope(MessageFormatError):
    """Header/trailer fields missing or inconsistent"""
    reason_code = "FMT-004"

    def __init__(self, message: str, check: str = "envelope_fields"):
        super().__init__(message, check=check)


class MessageMappingError(MessageFormatError):
    """A structurally valid message lacks segments a CUSDEC/CUSRES mapping needs"""
    reason_code = "FMT-005"

    def __init__(self, message: str, segment_tag: Optional[str] = None):
        super().__init__(
            message,
            check=f"segment:{segment_tag}" if segment_tag else "message_mapping",
            details={"segment_tag": segment_tag},
        )


class UndecodableMessage(MessageFormatError):
    """Byte stream is not valid in the declared character encoding"""
    reason_code = "FMT-006"

    def __init__(self, encoding: str, cause: str):
        super().__init__(
            f"Message bytes are not valid {encoding}: {cause}",
            check="character_encoding",
            details={"encoding": encoding},
        )


# =============================================================================
# EOF
# =============================================================================
