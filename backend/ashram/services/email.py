import asyncio
import logging
import smtplib
from email.message import EmailMessage
from email.utils import formataddr
from pathlib import Path
from typing import Sequence

from jinja2 import Environment, FileSystemLoader, select_autoescape

from ashram.core import metrics
from ashram.core.config import settings
from ashram.schemas.receipt import ReceiptRecord
from ashram.services import nepali_dates, numerals
from ashram.services.receipt_content import ORG_EMAIL, ORG_NAME
from ashram.services.receipts import receipt_filename

logger = logging.getLogger(__name__)

TEMPLATE_PATH = Path(__file__).parent.parent / "templates" / "emails"
env = Environment(loader=FileSystemLoader(TEMPLATE_PATH), autoescape=select_autoescape(["html.j2"]))

Attachment = tuple[str, bytes, str]


def _build_message(
    to_email: str,
    subject: str,
    text_body: str,
    html_body: str | None = None,
    attachments: Sequence[Attachment] = (),
) -> EmailMessage:
    msg = EmailMessage()
    msg["Subject"] = subject
    msg["From"] = formataddr((settings.smtp_from_name, settings.smtp_from_email or "no-reply@ashram.local"))
    msg["To"] = to_email
    msg.set_content(text_body)
    if html_body:
        msg.add_alternative(html_body, subtype="html")
    for filename, data, mime in attachments:
        maintype, _, subtype = mime.partition("/")
        msg.add_attachment(data, maintype=maintype, subtype=subtype, filename=filename)
    return msg


def _deliver(msg: EmailMessage) -> None:
    with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=10) as smtp:
        if settings.smtp_use_tls:
            smtp.starttls()
        if settings.smtp_username and settings.smtp_password:
            smtp.login(settings.smtp_username, settings.smtp_password)
        smtp.send_message(msg)


async def send_email(
    to_email: str,
    subject: str,
    text_body: str,
    html_body: str | None = None,
    attachments: Sequence[Attachment] = (),
) -> bool:
    if not settings.smtp_enabled:
        logger.info("email_disabled", extra={"subject": subject})
        return False
    msg = _build_message(to_email, subject, text_body, html_body, attachments)
    try:
        await asyncio.to_thread(_deliver, msg)
        return True
    except Exception as exc:
        logger.warning("email_send_failed", extra={"subject": subject, "error": str(exc)})
        return False


def render_template(template_name: str, context: dict) -> tuple[str, str]:
    base_text = env.get_template("base.txt.j2")
    base_html = env.get_template("base.html.j2")
    body_text = env.get_template(template_name).render(**context)
    body_html = env.get_template(template_name.replace(".txt.j2", ".html.j2")).render(**context)
    footer = {"org_name": ORG_NAME, "org_email": ORG_EMAIL.removeprefix("E-mail: ")}
    return base_text.render(body=body_text, **footer), base_html.render(body=body_html, **footer)


def receipt_email_context(record: ReceiptRecord, *, has_attachment: bool = False) -> dict:
    return {
        "receipt_number": record.receipt_number,
        "donor_name": record.donor_name,
        "amount": numerals.to_grouped_currency(record.amount, "en"),
        "date": nepali_dates.format_english_date(record.created_at),
        "donation_type": record.donation_type,
        "notes": record.notes,
        "has_attachment": has_attachment,
    }


async def send_receipt_email(to_email: str, record: ReceiptRecord, pdf: bytes | None = None) -> bool:
    """Email a donation receipt; the PDF, when given, is attached as-is."""
    subject = f"Receipt for Your Donation - {record.receipt_number}"
    text_body, html_body = render_template("receipt.txt.j2", receipt_email_context(record, has_attachment=bool(pdf)))
    attachments: list[Attachment] = []
    if pdf:
        attachments.append((receipt_filename(record.receipt_number), pdf, "application/pdf"))
    sent = await send_email(to_email, subject, text_body, html_body, attachments)
    if sent:
        metrics.record_receipt_email_sent()
        logger.info("receipt_email_sent", extra={"receipt_number": record.receipt_number, "attachment": bool(pdf)})
    return sent
