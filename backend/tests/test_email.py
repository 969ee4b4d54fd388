from email.message import EmailMessage

import pytest

from ashram.core import metrics
from ashram.core.config import settings
from ashram.services import email as email_service
from ashram.services.receipts import build_receipt_record


@pytest.fixture
def sent(monkeypatch: pytest.MonkeyPatch) -> list[EmailMessage]:
    outbox: list[EmailMessage] = []
    monkeypatch.setattr(settings, "smtp_enabled", True)
    monkeypatch.setattr(settings, "smtp_from_email", "receipts@example.org")
    monkeypatch.setattr(email_service, "_deliver", outbox.append)
    return outbox


def test_receipt_templates_render(receipt_fields: dict) -> None:
    record = build_receipt_record({**receipt_fields, "notes": "Guru Purnima <seva>"})
    text, html = email_service.render_template(
        "receipt.txt.j2", email_service.receipt_email_context(record, has_attachment=True)
    )

    assert "Dear Test Donor," in text
    assert "Receipt ID: ASH123456" in text
    assert "Amount: Rs. 5,000" in text
    assert "Date: 15 Aug 2024" in text
    assert "Notes: Guru Purnima <seva>" in text
    assert "attached as a PDF" in text
    assert "jashankhamul@gmail.com" in text
    assert "ASH123456" in html
    assert "Guru Purnima &lt;seva&gt;" in html


@pytest.mark.anyio
async def test_disabled_smtp_returns_false(monkeypatch: pytest.MonkeyPatch, receipt_fields: dict) -> None:
    monkeypatch.setattr(settings, "smtp_enabled", False)
    delivered: list[EmailMessage] = []
    monkeypatch.setattr(email_service, "_deliver", delivered.append)

    assert await email_service.send_receipt_email("donor@example.org", build_receipt_record(receipt_fields)) is False
    assert delivered == []
    assert "receipt_emails_sent" not in metrics.snapshot()


@pytest.mark.anyio
async def test_receipt_pdf_is_attached(sent: list[EmailMessage], receipt_fields: dict) -> None:
    record = build_receipt_record(receipt_fields)
    ok = await email_service.send_receipt_email("donor@example.org", record, b"%PDF-1.4 receipt")

    assert ok is True
    msg = sent[0]
    assert msg["To"] == "donor@example.org"
    assert msg["Subject"] == "Receipt for Your Donation - ASH123456"
    assert "receipts@example.org" in msg["From"]
    attachments = list(msg.iter_attachments())
    assert [(part.get_filename(), part.get_content_type()) for part in attachments] == [
        ("Receipt-ASH123456.pdf", "application/pdf")
    ]
    assert attachments[0].get_content() == b"%PDF-1.4 receipt"
    assert metrics.snapshot()["receipt_emails_sent"] == 1


@pytest.mark.anyio
async def test_email_without_pdf_has_no_attachment(sent: list[EmailMessage], receipt_fields: dict) -> None:
    assert await email_service.send_receipt_email("donor@example.org", build_receipt_record(receipt_fields)) is True
    assert list(sent[0].iter_attachments()) == []


@pytest.mark.anyio
async def test_transport_failure_returns_false(monkeypatch: pytest.MonkeyPatch, receipt_fields: dict) -> None:
    monkeypatch.setattr(settings, "smtp_enabled", True)

    def refuse(msg: EmailMessage) -> None:
        raise ConnectionRefusedError("smtp down")

    monkeypatch.setattr(email_service, "_deliver", refuse)

    assert await email_service.send_receipt_email("donor@example.org", build_receipt_record(receipt_fields)) is False
    assert "receipt_emails_sent" not in metrics.snapshot()
