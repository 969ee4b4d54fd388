from __future__ import annotations

import logging
from datetime import date, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, EmailStr, Field, ValidationInfo, field_validator
from pydantic.alias_generators import to_camel

logger = logging.getLogger(__name__)

SYSTEM_ISSUER = "System"


class DonationType(str, Enum):
    general = "General Donation"
    seva = "Seva Donation"
    annadanam = "Annadanam"
    vastra_danam = "Vastra Danam"
    building_fund = "Building Fund"
    festival_sponsorship = "Festival Sponsorship"
    puja_sponsorship = "Puja Sponsorship"
    gau_seva = "Gau Seva"


class PaymentMode(str, Enum):
    online = "Online"
    offline = "Offline"
    qr_payment = "QR Payment"


def _enum_text(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


def _lenient_date(value: Any, field: str) -> date | None:
    if value is None or (isinstance(value, date) and not isinstance(value, datetime)):
        return value
    if isinstance(value, datetime):
        return value.date()
    text = str(value).strip()
    if not text:
        return None
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        logger.warning("receipt_date_unparsable", extra={"field": field, "value": text})
        return None


class ReceiptRecord(BaseModel):
    """Normalized, read-only input to receipt layout."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True, str_strip_whitespace=True)

    receipt_number: str = Field(min_length=1, max_length=100)
    donor_name: str = Field(min_length=1, max_length=200)
    donor_id: str | None = Field(default=None, max_length=100)
    amount: int = Field(ge=0)
    donation_type: str = DonationType.general.value
    payment_mode: str = PaymentMode.offline.value
    created_at: datetime
    date_of_donation: date | None = None
    start_date: date | None = None
    end_date: date | None = None
    start_date_nepali: str | None = None
    end_date_nepali: str | None = None
    notes: str | None = Field(default=None, max_length=2000)
    created_by: str = SYSTEM_ISSUER

    @field_validator("donation_type", "payment_mode", mode="before")
    @classmethod
    def _enum_values(cls, value: Any) -> Any:
        return _enum_text(value)

    @field_validator("date_of_donation", "start_date", "end_date", mode="before")
    @classmethod
    def _optional_dates(cls, value: Any, info: ValidationInfo) -> date | None:
        return _lenient_date(value, info.field_name)

    @field_validator("donor_id", "start_date_nepali", "end_date_nepali", "notes", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("created_by", mode="before")
    @classmethod
    def _default_issuer(cls, value: Any) -> Any:
        if value is None or (isinstance(value, str) and not value.strip()):
            return SYSTEM_ISSUER
        return value

    @property
    def is_period_donation(self) -> bool:
        return self.donation_type == DonationType.seva.value


class ReceiptPdfRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    receipt: dict[str, Any] | None = None
    include_logos: bool = True
    include_attachment: bool = True
    backend: str | None = None


class ReceiptEmailRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    donor_email: EmailStr | None = None
    receipt: dict[str, Any] | None = None
    include_attachment: bool = False


class ReceiptEmailResponse(BaseModel):
    success: bool
    message: str
