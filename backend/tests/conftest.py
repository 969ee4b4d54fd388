import io
import os
from collections.abc import Generator

import pytest
from PIL import Image

# Keep pytest output high-signal by disabling outbound Sentry capture in tests.
os.environ["SENTRY_DSN"] = ""

from ashram.core import metrics
from ashram.services.resources import StaticResourceProvider


@pytest.fixture(scope="module")
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture(autouse=True)
def _reset_metrics() -> Generator[None, None, None]:
    metrics.reset()
    yield
    metrics.reset()


def png_bytes(color: str = "#ea580c", size: tuple[int, int] = (64, 64)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", size, color).save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def receipt_fields() -> dict:
    return {
        "receiptNumber": "ASH123456",
        "donorName": "Test Donor",
        "amount": 5000,
        "donationType": "General Donation",
        "paymentMode": "Online",
        "createdAt": "2024-08-15T10:00:00Z",
        "dateOfDonation": "2024-08-15",
    }


@pytest.fixture
def bare_provider() -> StaticResourceProvider:
    return StaticResourceProvider()


@pytest.fixture
def logo_provider() -> StaticResourceProvider:
    return StaticResourceProvider(logos={"left": png_bytes(), "right": png_bytes("#1d4ed8", (80, 40))})


@pytest.fixture
def make_png():
    return png_bytes
