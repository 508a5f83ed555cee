"""
Builders for declarations, goods items and guarantee instruments used across tests.
"""
import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from singlewindow.customs.enums import DeclarationType, GuaranteeType
from singlewindow.customs.guarantee.models import GuaranteeInstrument
from singlewindow.customs.transit.models import GeoPoint, TransitDocument
from singlewindow.customs.value_objects import Declaration, DutyLine, GoodsItem

NOW = datetime(2024, 3, 1, 10, 0, 0, tzinfo=timezone.utc)

# Straight corridor along the 50th parallel
CORRIDOR = (GeoPoint(50.0, 10.0), GeoPoint(50.0, 11.0), GeoPoint(50.0, 12.0))


def make_item(
        sequence=1,
        classification_code="610910",
        origin_country="CN",
        quantity=Decimal("100"),
        item_value=Decimal("500.00"),
        duty=Decimal("60.00"),
        description="Cotton T-shirts",
):
    return GoodsItem(
        sequence=sequence,
        classification_code=classification_code,
        origin_country=origin_country,
        quantity=quantity,
        unit="PCE",
        net_weight=Decimal("20.5"),
        gross_weight=Decimal("22"),
        item_value=item_value,
        description=description,
        duty_lines=(DutyLine(tax_type="CUD", rate=Decimal("12"), amount=duty),) if duty else (),
    )


def make_declaration(
        items=None,
        declaration_type=DeclarationType.IMPORT,
        declarant_id="TRADER-1",
        declaration_id=None,
        destination_country="DE",
        submitted_at=NOW,
):
    items = tuple(items) if items is not None else (make_item(),)
    return Declaration(
        declaration_id=declaration_id or uuid.uuid4(),
        declaration_type=declaration_type,
        declarant_id=declarant_id,
        consignee_id="CONSIGNEE-9",
        currency="EUR",
        destination_country=destination_country,
        goods_items=items,
        total_customs_value=sum((i.item_value for i in items), Decimal("0")),
        submitted_at=submitted_at,
    )


def make_instrument(face_amount=Decimal("1000"), valid_days=30, guarantee_id=None):
    return GuaranteeInstrument(
        guarantee_type=GuaranteeType.COMPREHENSIVE,
        face_amount=face_amount,
        currency="EUR",
        valid_from=NOW - timedelta(days=1),
        valid_until=NOW + timedelta(days=valid_days),
        holder_id="TRADER-1",
        guarantee_id=guarantee_id,
    )


def make_transit_document(
        declaration_id,
        guarantee_id,
        secured_amount=Decimal("300"),
        seals=("S1", "S2"),
        time_limit=None,
):
    return TransitDocument.create(
        movement_reference=f"MRN-{declaration_id.hex[:8].upper()}",
        declaration_id=declaration_id,
        guarantee_id=guarantee_id,
        secured_amount=secured_amount,
        route=CORRIDOR,
        time_limit=time_limit or NOW + timedelta(days=3),
        seals=seals,
    )
