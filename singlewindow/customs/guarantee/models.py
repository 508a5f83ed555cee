# =============================================================================
# File: singlewindow/customs/guarantee/models.py
# Description: Guarantee instrument (input) and snapshot (read view)
# =============================================================================

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from singlewindow.customs.enums import GuaranteeType


class GuaranteeInstrument(BaseModel):
    """Financial instrument lodged to back customs obligations."""
    model_config = ConfigDict(frozen=True)

    guarantee_type: GuaranteeType
    face_amount: Decimal = Field(gt=0)
    currency: str = Field(min_length=3, max_length=3)
    valid_from: datetime
    valid_until: datetime
    holder_id: str = ""
    guarantee_id: Optional[str] = None  # generated by the ledger when omitted

    @model_validator(mode="after")
    def _check_window(self) -> "GuaranteeInstrument":
        if self.valid_until <= self.valid_from:
            raise ValueError("valid_until must be after valid_from")
        return self


class GuaranteeSnapshot(BaseModel):
    """
    Point-in-time view of one guarantee.

    consumed = reserved + forfeited, and consumed <= face_amount.
    """
    model_config = ConfigDict(frozen=True)

    guarantee_id: str
    guarantee_type: GuaranteeType
    currency: str
    face_amount: Decimal
    reserved: Decimal
    forfeited: Decimal
    valid_from: datetime
    valid_until: datetime
    closed: bool
    version: int

    @property
    def consumed(self) -> Decimal:
        return self.reserved + self.forfeited

    @property
    def available(self) -> Decimal:
        return self.face_amount - self.consumed
