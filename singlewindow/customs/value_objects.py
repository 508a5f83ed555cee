# =============================================================================
# File: singlewindow/customs/value_objects.py
# Description: Value objects for the Customs domain (immutable, no identity)
# =============================================================================

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Optional, Tuple

from singlewindow.customs.enums import DeclarationType
from singlewindow.customs.exceptions import DeclarationValidationError
from singlewindow.utils.datetime_utils import parse_timestamp_robust


@dataclass(frozen=True)
class DutyLine:
    """
    Duty or tax line of one goods item.
    """
    tax_type: str               # e.g. "CUD" customs duty, "VAT"
    rate: Decimal               # percentage
    amount: Decimal             # in declaration currency

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "tax_type": self.tax_type,
            "rate": str(self.rate),
            "amount": str(self.amount),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "DutyLine":
        """Create from dictionary."""
        return cls(
            tax_type=data.get("tax_type", ""),
            rate=Decimal(data.get("rate", "0")),
            amount=Decimal(data.get("amount", "0")),
        )


@dataclass(frozen=True)
class GoodsItem:
    """
    Goods item of a declaration.

    Sequence numbers are 1-based, unique and contiguous within the
    declaration; the item order is significant.
    """
    sequence: int               # 1-based position in the declaration
    classification_code: str    # HS code
    origin_country: str         # ISO 3166-1 alpha-2
    quantity: Decimal
    unit: str                   # Unit of measurement code
    net_weight: Decimal         # kg
    gross_weight: Decimal       # kg
    item_value: Decimal         # declaration currency
    description: str = ""
    duty_lines: Tuple[DutyLine, ...] = field(default_factory=tuple)

    @property
    def unit_value(self) -> Optional[Decimal]:
        if self.quantity <= 0:
            return None
        return self.item_value / self.quantity

    @property
    def total_duty(self) -> Decimal:
        return sum((line.amount for line in self.duty_lines), Decimal("0"))

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "sequence": self.sequence,
            "classification_code": self.classification_code,
            "origin_country": self.origin_country,
            "quantity": str(self.quantity),
            "unit": self.unit,
            "net_weight": str(self.net_weight),
            "gross_weight": str(self.gross_weight),
            "item_value": str(self.item_value),
            "description": self.description,
            "duty_lines": [line.to_dict() for line in self.duty_lines],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "GoodsItem":
        """Create from dictionary."""
        return cls(
            sequence=int(data.get("sequence", 0)),
            classification_code=data.get("classification_code", ""),
            origin_country=data.get("origin_country", ""),
            quantity=Decimal(data.get("quantity", "0")),
            unit=data.get("unit", ""),
            net_weight=Decimal(data.get("net_weight", "0")),
            gross_weight=Decimal(data.get("gross_weight", "0")),
            item_value=Decimal(data.get("item_value", "0")),
            description=data.get("description", ""),
            duty_lines=tuple(DutyLine.from_dict(d) for d in data.get("duty_lines", [])),
        )


@dataclass(frozen=True)
class Declaration:
    """
    Content of a trade declaration as submitted (or amended).

    Lifecycle state and channel are owned by the clearance aggregate; this
    object is replaced wholesale on amendment.
    """
    declaration_id: uuid.UUID
    declaration_type: DeclarationType
    declarant_id: str
    consignee_id: str
    currency: str               # ISO 4217
    destination_country: str    # ISO 3166-1 alpha-2
    goods_items: Tuple[GoodsItem, ...]
    total_customs_value: Decimal
    submitted_at: datetime

    @property
    def total_duty(self) -> Decimal:
        return sum((item.total_duty for item in self.goods_items), Decimal("0"))

    def validate(self) -> None:
        """
        Check structural rules of the declaration.

        Raises:
            DeclarationValidationError: with the failing check name
        """
        if not self.declarant_id:
            raise DeclarationValidationError("Declarant is required", check="declarant_present")
        if len(self.currency) != 3 or not self.currency.isalpha():
            raise DeclarationValidationError(
                f"Currency {self.currency!r} is not an ISO 4217 code", check="currency_code"
            )
        if not self.goods_items:
            raise DeclarationValidationError("At least one goods item is required", check="goods_present")

        sequences = [item.sequence for item in self.goods_items]
        if sequences != list(range(1, len(sequences) + 1)):
            raise DeclarationValidationError(
                f"Goods item sequence numbers must be 1..{len(sequences)} in order, got {sequences}",
                check="goods_sequence",
            )

        for item in self.goods_items:
            if not item.classification_code:
                raise DeclarationValidationError(
                    f"Item {item.sequence}: classification code is required", check="classification_code"
                )
            if item.quantity <= 0:
                raise DeclarationValidationError(
                    f"Item {item.sequence}: quantity must be positive", check="item_quantity"
                )
            if item.net_weight < 0 or item.gross_weight < item.net_weight:
                raise DeclarationValidationError(
                    f"Item {item.sequence}: gross weight must not be below net weight",
                    check="item_weight",
                )
            if item.item_value < 0 or any(line.amount < 0 for line in item.duty_lines):
                raise DeclarationValidationError(
                    f"Item {item.sequence}: amounts must not be negative", check="item_amounts"
                )

        items_total = sum((item.item_value for item in self.goods_items), Decimal("0"))
        if items_total != self.total_customs_value:
            raise DeclarationValidationError(
                f"Total customs value {self.total_customs_value} does not equal item total {items_total}",
                check="total_customs_value",
            )

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "declaration_id": str(self.declaration_id),
            "declaration_type": self.declaration_type.value,
            "declarant_id": self.declarant_id,
            "consignee_id": self.consignee_id,
            "currency": self.currency,
            "destination_country": self.destination_country,
            "goods_items": [item.to_dict() for item in self.goods_items],
            "total_customs_value": str(self.total_customs_value),
            "submitted_at": self.submitted_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Declaration":
        """Create from dictionary."""
        return cls(
            declaration_id=uuid.UUID(data["declaration_id"]),
            declaration_type=DeclarationType(data.get("declaration_type", "IM")),
            declarant_id=data.get("declarant_id", ""),
            consignee_id=data.get("consignee_id", ""),
            currency=data.get("currency", ""),
            destination_country=data.get("destination_country", ""),
            goods_items=tuple(GoodsItem.from_dict(i) for i in data.get("goods_items", [])),
            total_customs_value=Decimal(data.get("total_customs_value", "0")),
            submitted_at=parse_timestamp_robust(data["submitted_at"]),
        )
