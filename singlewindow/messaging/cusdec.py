# =============================================================================
# File: singlewindow/messaging/cusdec.py
# Description: CUSDEC mapping between Declaration value objects and segments
# Responsibilities:
#  - Map a Declaration to the CUSDEC segment subset the clearance core uses.
#  - Map a decoded CUSDEC Message back to a Declaration.
#  - Raise MessageMappingError for missing or malformed mandatory segments.
# =============================================================================

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import List, Optional, Sequence, Union

from singlewindow.customs.enums import DeclarationType, MessageFunction
from singlewindow.customs.value_objects import Declaration, DutyLine, GoodsItem
from singlewindow.messaging.exceptions import MessageMappingError
from singlewindow.messaging.message_codec import DEFAULT_ENCODING, decode_message, encode_message
from singlewindow.messaging.value_objects import DEFAULT_DELIMITERS, Delimiters, Envelope, Message, Segment
from singlewindow.utils.datetime_utils import ensure_utc

CUSDEC = "CUSDEC"

# Qualifiers used by the segment subset
DTM_SUBMISSION = "137"
DTM_FORMAT_SECONDS = "204"      # CCYYMMDDHHMMSS
DTM_FORMAT_MINUTES = "203"      # CCYYMMDDHHMM
NAD_DECLARANT = "DT"
NAD_CONSIGNEE = "CN"
CUX_REFERENCE_CURRENCY = "2"
LOC_DESTINATION = "28"
LOC_ORIGIN = "27"
MOA_TOTAL_CUSTOMS_VALUE = "40"
MOA_ITEM_VALUE = "146"
QTY_DECLARED = "47"
MEA_WEIGHT = "WT"
MEA_NET = "AAA"
MEA_GROSS = "AAB"
MEA_UNIT_KG = "KGM"
FTX_GOODS_DESCRIPTION = "AAA"

_DATE_FORMATS = {
    DTM_FORMAT_SECONDS: "%Y%m%d%H%M%S",
    DTM_FORMAT_MINUTES: "%Y%m%d%H%M",
}


@dataclass(frozen=True)
class CusdecContent:
    """Result of mapping a CUSDEC message: the declaration and its BGM header data."""
    declaration: Declaration
    function: MessageFunction
    reference: str


# -----------------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------------
def format_decimal(value: Decimal, delimiters: Delimiters = DEFAULT_DELIMITERS) -> str:
    """Plain notation with the message's decimal mark."""
    text = format(value, "f")
    if delimiters.decimal_mark != ".":
        text = text.replace(".", delimiters.decimal_mark)
    return text


def parse_decimal(text: str, tag: str, delimiters: Delimiters = DEFAULT_DELIMITERS) -> Decimal:
    if delimiters.decimal_mark != ".":
        text = text.replace(delimiters.decimal_mark, ".")
    try:
        value = Decimal(text)
    except InvalidOperation as e:
        raise MessageMappingError(f"{tag}: {text!r} is not a decimal number", segment_tag=tag) from e
    if not value.is_finite():
        raise MessageMappingError(f"{tag}: {text!r} is not a finite number", segment_tag=tag)
    return value


def format_timestamp(value: datetime) -> Segment:
    stamp = ensure_utc(value).strftime(_DATE_FORMATS[DTM_FORMAT_SECONDS])
    return Segment.of("DTM", (DTM_SUBMISSION, stamp, DTM_FORMAT_SECONDS))


def parse_timestamp(segment: Segment) -> datetime:
    fmt = _DATE_FORMATS.get(segment.component(0, 2))
    if fmt is None:
        raise MessageMappingError(
            f"DTM: unsupported date format code {segment.component(0, 2)!r}", segment_tag="DTM"
        )
    try:
        return datetime.strptime(segment.component(0, 1), fmt).replace(tzinfo=timezone.utc)
    except ValueError as e:
        raise MessageMappingError(f"DTM: {e}", segment_tag="DTM") from e


def require_segment(segment: Optional[Segment], tag: str, what: str) -> Segment:
    if segment is None:
        raise MessageMappingError(f"Mandatory {tag} segment ({what}) is missing", segment_tag=tag)
    return segment


def require_message_type(message: Message, message_type: str) -> None:
    if message.envelope.message_type != message_type:
        raise MessageMappingError(
            f"Expected a {message_type} message, got {message.envelope.message_type}",
            segment_tag="UNH",
        )


# -----------------------------------------------------------------------------
# Declaration -> segments
# -----------------------------------------------------------------------------
def _item_segments(item: GoodsItem, currency: str, delimiters: Delimiters) -> List[Segment]:
    d = delimiters
    segments = [Segment.of("CST", str(item.sequence), item.classification_code)]
    if item.description:
        segments.append(Segment.of("FTX", FTX_GOODS_DESCRIPTION, "", "", item.description))
    segments.extend([
        Segment.of("LOC", LOC_ORIGIN, item.origin_country),
        Segment.of("QTY", (QTY_DECLARED, format_decimal(item.quantity, d), item.unit)),
        Segment.of("MEA", MEA_WEIGHT, MEA_NET, (MEA_UNIT_KG, format_decimal(item.net_weight, d))),
        Segment.of("MEA", MEA_WEIGHT, MEA_GROSS, (MEA_UNIT_KG, format_decimal(item.gross_weight, d))),
        Segment.of("MOA", (MOA_ITEM_VALUE, format_decimal(item.item_value, d), currency)),
    ])
    for line in item.duty_lines:
        segments.append(
            Segment.of("TAX", line.tax_type, format_decimal(line.rate, d), format_decimal(line.amount, d))
        )
    return segments


def declaration_to_segments(
        declaration: Declaration,
        function: MessageFunction = MessageFunction.ORIGINAL,
        delimiters: Delimiters = DEFAULT_DELIMITERS,
) -> List[Segment]:
    """Body segments (UNH/UNT excluded) for a declaration."""
    segments = [
        Segment.of("BGM", declaration.declaration_type.value, str(declaration.declaration_id), function.value),
        format_timestamp(declaration.submitted_at),
        Segment.of("NAD", NAD_DECLARANT, declaration.declarant_id),
        Segment.of("NAD", NAD_CONSIGNEE, declaration.consignee_id),
        Segment.of("CUX", (CUX_REFERENCE_CURRENCY, declaration.currency)),
        Segment.of("LOC", LOC_DESTINATION, declaration.destination_country),
        Segment.of(
            "MOA",
            (MOA_TOTAL_CUSTOMS_VALUE, format_decimal(declaration.total_customs_value, delimiters), declaration.currency),
        ),
    ]
    for item in declaration.goods_items:
        segments.extend(_item_segments(item, declaration.currency, delimiters))
    return segments


def declaration_to_cusdec(
        declaration: Declaration,
        function: MessageFunction = MessageFunction.ORIGINAL,
        reference: Optional[str] = None,
        delimiters: Delimiters = DEFAULT_DELIMITERS,
        service_advice: bool = True,
) -> Message:
    """
    Build a CUSDEC Message for a declaration.

    The message reference defaults to the first 14 characters of the
    declaration id without dashes.
    """
    envelope = Envelope(
        message_type=CUSDEC,
        reference=reference or declaration.declaration_id.hex[:14],
        delimiters=delimiters,
        service_advice=service_advice,
    )
    return Message(envelope=envelope, segments=tuple(declaration_to_segments(declaration, function, delimiters)))


def encode_cusdec(
        declaration: Declaration,
        function: MessageFunction = MessageFunction.ORIGINAL,
        reference: Optional[str] = None,
        delimiters: Delimiters = DEFAULT_DELIMITERS,
        service_advice: bool = True,
        encoding: str = DEFAULT_ENCODING,
) -> bytes:
    message = declaration_to_cusdec(declaration, function, reference, delimiters, service_advice)
    return encode_message(message.envelope, message.segments, encoding)


# -----------------------------------------------------------------------------
# Segments -> Declaration
# -----------------------------------------------------------------------------
class _ItemBuilder:
    """Collects the segments of one goods item, opened by CST."""

    def __init__(self, cst: Segment, delimiters: Delimiters):
        sequence = cst.component(0)
        if not sequence.isdigit():
            raise MessageMappingError(f"CST: item sequence {sequence!r} is not numeric", segment_tag="CST")
        self.delimiters = delimiters
        self.sequence = int(sequence)
        self.classification_code = cst.component(1)
        self.description = ""
        self.origin: Optional[str] = None
        self.quantity: Optional[Decimal] = None
        self.unit = ""
        self.net_weight: Optional[Decimal] = None
        self.gross_weight: Optional[Decimal] = None
        self.item_value: Optional[Decimal] = None
        self.duty_lines: List[DutyLine] = []

    def add(self, segment: Segment) -> None:
        d = self.delimiters
        tag, qualifier = segment.tag, segment.qualifier()
        if tag == "FTX" and qualifier == FTX_GOODS_DESCRIPTION:
            self.description = segment.component(3)
        elif tag == "LOC" and qualifier == LOC_ORIGIN:
            self.origin = segment.component(1)
        elif tag == "QTY" and qualifier == QTY_DECLARED:
            self.quantity = parse_decimal(segment.component(0, 1), tag, d)
            self.unit = segment.component(0, 2)
        elif tag == "MEA" and qualifier == MEA_WEIGHT:
            value = parse_decimal(segment.component(2, 1), tag, d)
            if segment.component(1) == MEA_NET:
                self.net_weight = value
            elif segment.component(1) == MEA_GROSS:
                self.gross_weight = value
        elif tag == "MOA" and qualifier == MOA_ITEM_VALUE:
            self.item_value = parse_decimal(segment.component(0, 1), tag, d)
        elif tag == "TAX":
            self.duty_lines.append(DutyLine(
                tax_type=segment.component(0),
                rate=parse_decimal(segment.component(1), tag, d),
                amount=parse_decimal(segment.component(2), tag, d),
            ))

    def build(self) -> GoodsItem:
        where = f"item {self.sequence}"
        missing = [
            tag for tag, value in (
                ("LOC", self.origin),
                ("QTY", self.quantity),
                ("MOA", self.item_value),
            ) if value is None
        ]
        if missing:
            raise MessageMappingError(
                f"Mandatory {missing[0]} segment ({where}) is missing", segment_tag=missing[0]
            )
        if self.net_weight is None or self.gross_weight is None:
            raise MessageMappingError(f"Mandatory MEA weight segments ({where}) are missing", segment_tag="MEA")
        return GoodsItem(
            sequence=self.sequence,
            classification_code=self.classification_code,
            origin_country=self.origin,
            quantity=self.quantity,
            unit=self.unit,
            net_weight=self.net_weight,
            gross_weight=self.gross_weight,
            item_value=self.item_value,
            description=self.description,
            duty_lines=tuple(self.duty_lines),
        )


def _split_header_and_items(segments: Sequence[Segment]):
    header: List[Segment] = []
    items: List[List[Segment]] = []
    for segment in segments:
        if segment.tag == "CST":
            items.append([segment])
        elif items:
            items[-1].append(segment)
        else:
            header.append(segment)
    return header, items


def first_segment(segments: Sequence[Segment], tag: str, qualifier: Optional[str] = None) -> Optional[Segment]:
    for segment in segments:
        if segment.tag == tag and (qualifier is None or segment.qualifier() == qualifier):
            return segment
    return None


def cusdec_to_declaration(message: Message) -> CusdecContent:
    """
    Map a decoded CUSDEC message to a Declaration.

    Unknown segments are skipped; structural validation of the result
    (sequence contiguity, totals) is left to Declaration.validate().

    Raises:
        MessageMappingError: wrong message type, mandatory segment missing
            or a value that cannot be converted
    """
    require_message_type(message, CUSDEC)
    d = message.envelope.delimiters
    unknown = set(message.unknown_positions)
    known = [s for i, s in enumerate(message.segments) if i not in unknown]
    header, item_groups = _split_header_and_items(known)

    bgm = require_segment(first_segment(header, "BGM"), "BGM", "document header")
    try:
        declaration_type = DeclarationType(bgm.component(0))
    except ValueError as e:
        raise MessageMappingError(f"BGM: unknown declaration type {bgm.component(0)!r}", segment_tag="BGM") from e
    try:
        declaration_id = uuid.UUID(bgm.component(1))
    except ValueError as e:
        raise MessageMappingError(f"BGM: invalid declaration id {bgm.component(1)!r}", segment_tag="BGM") from e
    try:
        function = MessageFunction(bgm.component(2))
    except ValueError as e:
        raise MessageMappingError(f"BGM: unknown message function {bgm.component(2)!r}", segment_tag="BGM") from e

    submitted_at = parse_timestamp(require_segment(first_segment(header, "DTM", DTM_SUBMISSION), "DTM", "submission time"))
    declarant = require_segment(first_segment(header, "NAD", NAD_DECLARANT), "NAD", "declarant").component(1)
    consignee_nad = first_segment(header, "NAD", NAD_CONSIGNEE)
    currency = require_segment(first_segment(header, "CUX"), "CUX", "currency").component(0, 1)
    destination = require_segment(first_segment(header, "LOC", LOC_DESTINATION), "LOC", "destination").component(1)
    total = require_segment(first_segment(header, "MOA", MOA_TOTAL_CUSTOMS_VALUE), "MOA", "total customs value")

    items = []
    for group in item_groups:
        builder = _ItemBuilder(group[0], d)
        for segment in group[1:]:
            builder.add(segment)
        items.append(builder.build())

    declaration = Declaration(
        declaration_id=declaration_id,
        declaration_type=declaration_type,
        declarant_id=declarant,
        consignee_id=consignee_nad.component(1) if consignee_nad else "",
        currency=currency,
        destination_country=destination,
        goods_items=tuple(items),
        total_customs_value=parse_decimal(total.component(0, 1), "MOA", d),
        submitted_at=submitted_at,
    )
    return CusdecContent(declaration=declaration, function=function, reference=message.envelope.reference)


def decode_cusdec(data: Union[bytes, str], encoding: str = DEFAULT_ENCODING) -> CusdecContent:
    return cusdec_to_declaration(decode_message(data, encoding))


# =============================================================================
# EOF
# =============================================================================
