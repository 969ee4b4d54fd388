"""Every string printed on a receipt, resolved before layout.

The composer only places text; dates, amounts and labels are formatted here
with the calendar, numeral and label helpers.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from ashram.schemas.receipt import ReceiptRecord
from ashram.services import nepali_dates, numerals
from ashram.services.donation_labels import resolve_donation_label

REGISTRATION_LEFT: tuple[str, ...] = ("जि.प्र.का.ल.पु.द.नं. ४५४५/०६८", "पान नं ६००५९५६९०")
REGISTRATION_RIGHT: tuple[str, ...] = ("स.क.प.आवद्धता नं. ३५०९१",)

SACRED_SYMBOL = "ॐ"
INVOCATION = "श्रीराधासर्वेश्वरो विजयते"
ORG_NAME = "श्री जगद्‌गुरु आश्रम एवं जगत्‌नारायण मन्दिर"
ORG_SUBTITLE = "व्यवस्थापन तथा सञ्चालन समिति"
ORG_ADDRESS = "ललितपुर म.न.पा.-९, शङ्खमूल, ललितपुर"
ORG_PHONE = "फोन नं. ०१-५९१५६६७"
ORG_EMAIL = "E-mail: jashankhamul@gmail.com"

DONOR_CARD_TITLE = "Donor Information"
DETAILS_CARD_TITLE = "Receipt Details"
DONATION_PANEL_TITLE = "Donation Information"
WORDS_PANEL_TITLE = "Amount in Words"
NOTES_LABEL = "Special Notes"
SIGNATURE_LABEL = "Authorized Signature"

NAME_LABEL = "Name:"
DONOR_ID_LABEL = "Donor ID:"
DONATION_DATE_LABEL = "Donation Date:"
ISSUED_BY_LABEL = "Issued By:"
DONATION_TYPE_LABEL = "Donation Type"
PAYMENT_MODE_LABEL = "Payment Mode"
AMOUNT_LABEL = "Amount Donated"

NEPALI_WORDS_PREFIX = "रुपैयाँ"
NEPALI_WORDS_SUFFIX = "मात्र"


@dataclass(frozen=True)
class ReceiptContent:
    receipt_number: str
    receipt_title: str
    issued_on: str
    donor_name: str
    donor_id: str | None
    donation_date: str
    issued_by: str
    donation_label: str
    payment_mode: str
    amount: str
    words_en: str
    words_ne: str
    notes: str | None
    generated_on: str


def donation_date_text(record: ReceiptRecord) -> str:
    """Seva receipts show the service period; all others show the donation date."""
    if record.is_period_donation:
        if record.start_date_nepali and record.end_date_nepali:
            return f"{record.start_date_nepali} - {record.end_date_nepali}"
        if record.start_date and record.end_date:
            start = nepali_dates.format_numeric_date(record.start_date)
            end = nepali_dates.format_numeric_date(record.end_date)
            return f"{start} - {end}"
        return nepali_dates.NOT_AVAILABLE
    if record.date_of_donation:
        return nepali_dates.format_numeric_date(record.date_of_donation)
    return nepali_dates.NOT_AVAILABLE


def issued_on_text(created_at: datetime) -> str:
    english = nepali_dates.format_numeric_date(created_at)
    nepali = nepali_dates.to_nepali_formatted(created_at)
    if nepali == nepali_dates.NOT_AVAILABLE:
        return f"Issued on {english}"
    return f"Issued on {english} ({nepali})"


def nepali_words_text(amount: int) -> str:
    return f"{NEPALI_WORDS_PREFIX} {numerals.to_words(amount, 'ne')} {NEPALI_WORDS_SUFFIX}"


def build_receipt_content(record: ReceiptRecord, *, now: datetime | None = None) -> ReceiptContent:
    generated = now or datetime.now()
    return ReceiptContent(
        receipt_number=record.receipt_number,
        receipt_title=f"Receipt #{record.receipt_number}",
        issued_on=issued_on_text(record.created_at),
        donor_name=record.donor_name,
        donor_id=record.donor_id,
        donation_date=donation_date_text(record),
        issued_by=record.created_by,
        donation_label=resolve_donation_label(record.donation_type),
        payment_mode=record.payment_mode,
        amount=numerals.to_grouped_currency(record.amount, "ne"),
        words_en=numerals.to_words(record.amount, "en"),
        words_ne=nepali_words_text(record.amount),
        notes=record.notes,
        generated_on=f"Date: {nepali_dates.format_numeric_date(generated)}",
    )
