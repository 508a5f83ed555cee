# =============================================================================
# File: singlewindow/messaging/cusres.py
# Description: CUSRES mapping for customs responses to a declaration
# =============================================================================

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import List, Optional, Union

from singlewindow.customs.enums import ResponseStatus
from singlewindow.messaging.cusdec import (
    first_segment,
    require_segment,
    require_message_type,
    format_decimal,
    format_timestamp,
    parse_decimal,
    parse_timestamp,
    DTM_SUBMISSION,
)
from singlewindow.messaging.exceptions import MessageMappingError
from singlewindow.messaging.message_codec import DEFAULT_ENCODING, decode_message, encode_message
from singlewindow.messaging.value_objects import DEFAULT_DELIMITERS, Delimiters, Envelope, Message, Segment

CUSRES = "CUSRES"

BGM_CUSTOMS_RESPONSE = "962"
BGM_FUNCTION_ORIGINAL = "9"
RFF_ORIGINAL_REFERENCE = "ABO"
MOA_AMOUNT_DUE = "161"
FTX_FAILED_CHECK = "AAO"


@dataclass(frozen=True)
class ClearanceResponse:
    """
    Customs response to a declaration message.

    `original_reference` links back to the functional reference of the
    declaration. An amount is always currency-qualified.
    """
    original_reference: str
    status: ResponseStatus
    response_reference: str
    issued_at: datetime
    amount: Optional[Decimal] = None
    currency: Optional[str] = None
    reason_code: Optional[str] = None
    failed_check: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.original_reference:
            raise ValueError("original_reference is required")
        if self.amount is not None and not self.currency:
            raise ValueError("An amount must be qualified by a currency")


def response_to_segments(
        response: ClearanceResponse,
        delimiters: Delimiters = DEFAULT_DELIMITERS,
) -> List[Segment]:
    segments = [
        Segment.of("BGM", BGM_CUSTOMS_RESPONSE, response.response_reference, BGM_FUNCTION_ORIGINAL),
        format_timestamp(response.issued_at),
        Segment.of("RFF", (RFF_ORIGINAL_REFERENCE, response.original_reference)),
        Segment.of("GIS", response.status.value),
    ]
    if response.amount is not None:
        segments.append(
            Segment.of("MOA", (MOA_AMOUNT_DUE, format_decimal(response.amount, delimiters), response.currency))
        )
    if response.reason_code:
        segments.append(Segment.of("ERC", response.reason_code))
    if response.failed_check:
        segments.append(Segment.of("FTX", FTX_FAILED_CHECK, "", "", response.failed_check))
    return segments


def build_cusres(
        response: ClearanceResponse,
        reference: Optional[str] = None,
        delimiters: Delimiters = DEFAULT_DELIMITERS,
        service_advice: bool = True,
) -> Message:
    envelope = Envelope(
        message_type=CUSRES,
        reference=reference or response.response_reference,
        delimiters=delimiters,
        service_advice=service_advice,
    )
    return Message(envelope=envelope, segments=tuple(response_to_segments(response, delimiters)))


def encode_cusres(
        response: ClearanceResponse,
        reference: Optional[str] = None,
        delimiters: Delimiters = DEFAULT_DELIMITERS,
        service_advice: bool = True,
        encoding: str = DEFAULT_ENCODING,
) -> bytes:
    message = build_cusres(response, reference, delimiters, service_advice)
    return encode_message(message.envelope, message.segments, encoding)


def parse_cusres(message: Message) -> ClearanceResponse:
    """
    Map a decoded CUSRES message to a ClearanceResponse.

    Raises:
        MessageMappingError: wrong message type, RFF/GIS/BGM missing, an
            unknown status code or an amount without currency
    """
    require_message_type(message, CUSRES)
    d = message.envelope.delimiters
    unknown = set(message.unknown_positions)
    segments = [s for i, s in enumerate(message.segments) if i not in unknown]

    bgm = require_segment(first_segment(segments, "BGM"), "BGM", "document header")
    rff = require_segment(first_segment(segments, "RFF", RFF_ORIGINAL_REFERENCE), "RFF", "original reference")
    gis = require_segment(first_segment(segments, "GIS"), "GIS", "status")
    dtm = require_segment(first_segment(segments, "DTM", DTM_SUBMISSION), "DTM", "issue time")

    try:
        status = ResponseStatus(gis.component(0))
    except ValueError as e:
        raise MessageMappingError(f"GIS: unknown status code {gis.component(0)!r}", segment_tag="GIS") from e

    original_reference = rff.component(0, 1)
    if not original_reference:
        raise MessageMappingError("RFF: original reference is empty", segment_tag="RFF")

    amount = currency = None
    moa = first_segment(segments, "MOA", MOA_AMOUNT_DUE)
    if moa is not None:
        amount = parse_decimal(moa.component(0, 1), "MOA", d)
        currency = moa.component(0, 2)
        if not currency:
            raise MessageMappingError("MOA: amount is not qualified by a currency", segment_tag="MOA")

    erc = first_segment(segments, "ERC")
    ftx = first_segment(segments, "FTX", FTX_FAILED_CHECK)

    return ClearanceResponse(
        original_reference=original_reference,
        status=status,
        response_reference=bgm.component(1),
        issued_at=parse_timestamp(dtm),
        amount=amount,
        currency=currency,
        reason_code=erc.component(0) if erc else None,
        failed_check=ftx.component(3) if ftx else None,
    )


def decode_cusres(data: Union[bytes, str], encoding: str = DEFAULT_ENCODING) -> ClearanceResponse:
    return parse_cusres(decode_message(data, encoding))


# =============================================================================
# EOF
# =============================================================================
