"""Receipt generation pipeline.

``idle -> normalizing_input -> rendering_primary -> (success | rendering_fallback -> (success | failed))``

Input problems raise :class:`ReceiptInputError` before any backend runs. A
backend that raises, times out or returns nothing is recorded and the next
backend is tried; when none succeeds :class:`ReceiptGenerationError` lists
every attempt.
"""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Mapping, Sequence

from pydantic import ValidationError

from ashram.core import metrics
from ashram.core.config import settings
from ashram.schemas.receipt import DonationType, PaymentMode, ReceiptRecord
from ashram.services.browser_pool import BrowserPool
from ashram.services.draw_program import DrawProgram
from ashram.services.receipt_content import ReceiptContent, build_receipt_content
from ashram.services.receipt_layout import compose_receipt
from ashram.services.receipt_renderers import RENDERER_NAMES, Renderer, UnknownBackendError, build_renderer
from ashram.services.resources import ReceiptResources, ResourceProvider, default_provider, load_receipt_resources

logger = logging.getLogger(__name__)

REQUIRED_FIELDS: tuple[str, ...] = ("receiptNumber", "donorName", "amount")


class GenerationStage(str, Enum):
    idle = "idle"
    normalizing_input = "normalizing_input"
    rendering_primary = "rendering_primary"
    rendering_fallback = "rendering_fallback"
    success = "success"
    failed = "failed"


class ReceiptInputError(ValueError):
    def __init__(self, message: str, missing: Sequence[str] = ()) -> None:
        super().__init__(message)
        self.missing = list(missing)


@dataclass(frozen=True)
class BackendFailure:
    backend: str
    message: str


class ReceiptGenerationError(RuntimeError):
    def __init__(self, attempts: Sequence[BackendFailure]) -> None:
        self.attempts = list(attempts)
        detail = "; ".join(f"{attempt.backend}: {attempt.message}" for attempt in self.attempts) or "no render backend configured"
        super().__init__(f"Failed to generate receipt PDF ({detail})")

    @property
    def backends(self) -> list[str]:
        return [attempt.backend for attempt in self.attempts]


@dataclass(frozen=True)
class PreparedReceipt:
    record: ReceiptRecord
    content: ReceiptContent
    resources: ReceiptResources
    program: DrawProgram


@dataclass(frozen=True)
class GeneratedReceipt:
    pdf: bytes = field(repr=False)
    backend: str
    attempts: list[BackendFailure]
    prepared: PreparedReceipt

    @property
    def filename(self) -> str:
        return receipt_filename(self.prepared.record.receipt_number)


def receipt_filename(receipt_number: str) -> str:
    return f"Receipt-{receipt_number}.pdf"


_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._-]")


def ascii_filename(filename: str) -> str:
    """Filename reduced to characters that are safe in a quoted header value and as a path segment."""
    return _UNSAFE_FILENAME_CHARS.sub("_", filename)


def _snake(name: str) -> str:
    return "".join(f"_{char.lower()}" if char.isupper() else char for char in name)


def _field(data: Mapping[str, Any], name: str) -> Any:
    if name in data:
        return data[name]
    return data.get(_snake(name))


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _set_default(data: dict[str, Any], name: str, value: Any) -> None:
    data.pop(_snake(name), None)
    data[name] = value


def _unparsable_timestamp(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    try:
        datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        return True
    return False


def _describe(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()))
        parts.append(f"{location}: {error.get('msg', 'invalid value')}" if location else str(error.get("msg")))
    return "Invalid receipt data: " + "; ".join(parts)


def build_receipt_record(fields: Mapping[str, Any] | ReceiptRecord | None, *, now: datetime | None = None) -> ReceiptRecord:
    """Validate caller-supplied receipt fields and fill the optional defaults."""
    if isinstance(fields, ReceiptRecord):
        return fields
    if not isinstance(fields, Mapping):
        raise ReceiptInputError("Receipt data is required", missing=["receipt"])
    data = dict(fields)
    missing = [name for name in REQUIRED_FIELDS if _blank(_field(data, name))]
    if missing:
        raise ReceiptInputError(f"Missing required receipt fields: {', '.join(missing)}", missing=missing)
    created_at = _field(data, "createdAt")
    if not _blank(created_at) and _unparsable_timestamp(created_at):
        logger.warning("receipt_date_unparsable", extra={"field": "created_at", "value": created_at})
        created_at = None
    if _blank(created_at):
        _set_default(data, "createdAt", now or datetime.now(timezone.utc))
    if _blank(_field(data, "donationType")):
        _set_default(data, "donationType", DonationType.general.value)
    if _blank(_field(data, "paymentMode")):
        _set_default(data, "paymentMode", PaymentMode.offline.value)
    try:
        return ReceiptRecord.model_validate(data)
    except ValidationError as exc:
        raise ReceiptInputError(_describe(exc)) from exc


def prepare_receipt(
    receipt: Mapping[str, Any] | ReceiptRecord | None,
    *,
    include_logos: bool = True,
    provider: ResourceProvider | None = None,
    now: datetime | None = None,
) -> PreparedReceipt:
    record = build_receipt_record(receipt, now=now)
    content = build_receipt_content(record, now=now)
    resources = load_receipt_resources(provider or default_provider(), include_logos=include_logos)
    program = compose_receipt(content, resources.fonts, resources.logos)
    return PreparedReceipt(record=record, content=content, resources=resources, program=program)


def backend_order(hint: str | None = None, configured: Sequence[str] | None = None) -> list[str]:
    """Hinted backend first, then the configured order, without duplicates."""
    names: list[str] = []
    requested = (hint or "").strip().lower()
    if requested:
        if requested not in RENDERER_NAMES:
            raise ReceiptInputError(str(UnknownBackendError(hint or "")))
        names.append(requested)
    for name in settings.receipt_render_backends if configured is None else configured:
        normalized = name.strip().lower()
        if normalized not in RENDERER_NAMES:
            logger.warning("receipt_backend_unknown", extra={"backend": name})
            continue
        if normalized not in names:
            names.append(normalized)
    return names


def _log_stage(stage: GenerationStage, receipt_number: str | None, **extra: Any) -> None:
    logger.info("receipt_generation_stage", extra={"stage": stage.value, "receipt_number": receipt_number, **extra})


async def _attempt(renderer: Renderer, program: DrawProgram, timeout: float) -> tuple[bytes | None, str | None]:
    try:
        pdf = await asyncio.wait_for(renderer.render(program), timeout=timeout)
    except TimeoutError:
        return None, f"timed out after {timeout:g}s"
    except Exception as exc:
        logger.debug("receipt_backend_exception", exc_info=True, extra={"backend": renderer.name})
        return None, str(exc) or type(exc).__name__
    if not pdf:
        return None, "renderer returned an empty document"
    return pdf, None


async def generate_receipt(
    receipt: Mapping[str, Any] | ReceiptRecord | None,
    *,
    include_logos: bool = True,
    backend: str | None = None,
    provider: ResourceProvider | None = None,
    browser_pool: BrowserPool | None = None,
    renderers: Sequence[Renderer] | None = None,
    timeout: float | None = None,
    now: datetime | None = None,
) -> GeneratedReceipt:
    _log_stage(GenerationStage.normalizing_input, None)
    prepared = prepare_receipt(receipt, include_logos=include_logos, provider=provider, now=now)
    receipt_number = prepared.record.receipt_number

    if renderers is None:
        fonts = prepared.resources.fonts
        renderers = [build_renderer(name, fonts, browser_pool=browser_pool) for name in backend_order(backend)]
    limit = settings.receipt_render_timeout_seconds if timeout is None else timeout

    attempts: list[BackendFailure] = []
    for index, renderer in enumerate(renderers):
        stage = GenerationStage.rendering_primary if index == 0 else GenerationStage.rendering_fallback
        _log_stage(stage, receipt_number, backend=renderer.name)
        pdf, error = await _attempt(renderer, prepared.program, limit)
        if pdf is not None:
            metrics.record_receipt_rendered(renderer.name)
            _log_stage(GenerationStage.success, receipt_number, backend=renderer.name, size=len(pdf))
            return GeneratedReceipt(pdf=pdf, backend=renderer.name, attempts=attempts, prepared=prepared)
        failure = BackendFailure(renderer.name, error or "unknown error")
        attempts.append(failure)
        metrics.record_backend_failure(renderer.name)
        logger.warning(
            "receipt_backend_failed",
            extra={"backend": failure.backend, "receipt_number": receipt_number, "error": failure.message},
        )

    metrics.record_generation_failure()
    _log_stage(GenerationStage.failed, receipt_number, backends=[attempt.backend for attempt in attempts])
    raise ReceiptGenerationError(attempts)


async def generate_receipt_pdf(
    receipt: Mapping[str, Any] | ReceiptRecord | None,
    *,
    include_logos: bool = True,
    backend: str | None = None,
    provider: ResourceProvider | None = None,
    browser_pool: BrowserPool | None = None,
    renderers: Sequence[Renderer] | None = None,
    timeout: float | None = None,
    now: datetime | None = None,
) -> bytes:
    """Render a receipt to PDF bytes, falling back across backends."""
    result = await generate_receipt(
        receipt,
        include_logos=include_logos,
        backend=backend,
        provider=provider,
        browser_pool=browser_pool,
        renderers=renderers,
        timeout=timeout,
        now=now,
    )
    return result.pdf
