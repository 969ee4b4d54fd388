import logging
from urllib.parse import quote

from fastapi import APIRouter, Depends, Response, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import HTMLResponse, JSONResponse

from ashram.core.dependencies import get_browser_pool, get_resource_provider
from ashram.schemas.error import BackendAttemptRead, ErrorResponse
from ashram.schemas.receipt import ReceiptEmailRequest, ReceiptEmailResponse, ReceiptPdfRequest
from ashram.services import email as email_service
from ashram.services.browser_pool import BrowserPool
from ashram.services.receipt_html import render_receipt_html
from ashram.services.receipts import (
    ReceiptGenerationError,
    ReceiptInputError,
    ascii_filename,
    build_receipt_record,
    generate_receipt,
    prepare_receipt,
)
from ashram.services.resources import ResourceProvider

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/receipts", tags=["receipts"])


def _error(status_code: int, message: str, code: str, attempts: list[BackendAttemptRead] | None = None) -> JSONResponse:
    payload = ErrorResponse(error=message, code=code, backends=attempts)
    return JSONResponse(status_code=status_code, content=jsonable_encoder(payload.model_dump(exclude_none=True)))


def _input_error(exc: ReceiptInputError) -> JSONResponse:
    return _error(status.HTTP_400_BAD_REQUEST, str(exc), "invalid_receipt")


def _generation_error(exc: ReceiptGenerationError) -> JSONResponse:
    attempts = [BackendAttemptRead(backend=attempt.backend, message=attempt.message) for attempt in exc.attempts]
    return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to generate receipt PDF", "generation_failed", attempts)


def _content_disposition(disposition: str, filename: str) -> str:
    return f"{disposition}; filename=\"{ascii_filename(filename)}\"; filename*=UTF-8''{quote(filename, safe='')}"


@router.post(
    "/pdf",
    response_class=Response,
    responses={200: {"content": {"application/pdf": {}}}, 400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def receipt_pdf(
    payload: ReceiptPdfRequest,
    pool: BrowserPool | None = Depends(get_browser_pool),
    provider: ResourceProvider = Depends(get_resource_provider),
):
    try:
        result = await generate_receipt(
            payload.receipt,
            include_logos=payload.include_logos,
            backend=payload.backend,
            provider=provider,
            browser_pool=pool,
        )
    except ReceiptInputError as exc:
        return _input_error(exc)
    except ReceiptGenerationError as exc:
        return _generation_error(exc)
    disposition = "attachment" if payload.include_attachment else "inline"
    headers = {
        "Content-Disposition": _content_disposition(disposition, result.filename),
        "Content-Length": str(len(result.pdf)),
        "Cache-Control": "no-cache",
        "X-Receipt-Backend": result.backend,
    }
    return Response(content=result.pdf, media_type="application/pdf", headers=headers)


@router.post("/html", response_class=HTMLResponse, responses={400: {"model": ErrorResponse}})
def receipt_html(payload: ReceiptPdfRequest, provider: ResourceProvider = Depends(get_resource_provider)):
    try:
        prepared = prepare_receipt(payload.receipt, include_logos=payload.include_logos, provider=provider)
    except ReceiptInputError as exc:
        return _input_error(exc)
    return HTMLResponse(render_receipt_html(prepared.program, prepared.resources.fonts))


@router.post(
    "/email",
    response_model=ReceiptEmailResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def email_receipt(
    payload: ReceiptEmailRequest,
    pool: BrowserPool | None = Depends(get_browser_pool),
    provider: ResourceProvider = Depends(get_resource_provider),
):
    if not payload.donor_email or payload.receipt is None:
        return _error(status.HTTP_400_BAD_REQUEST, "Donor email and receipt data are required", "invalid_request")
    try:
        record = build_receipt_record(payload.receipt)
        pdf = None
        if payload.include_attachment:
            pdf = (await generate_receipt(record, provider=provider, browser_pool=pool)).pdf
    except ReceiptInputError as exc:
        return _input_error(exc)
    except ReceiptGenerationError as exc:
        return _generation_error(exc)
    sent = await email_service.send_receipt_email(payload.donor_email, record, pdf)
    if not sent:
        logger.warning("receipt_email_not_sent", extra={"receipt_number": record.receipt_number})
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to send receipt email", "email_failed")
    return ReceiptEmailResponse(success=True, message=f"Receipt email sent to {payload.donor_email}")
