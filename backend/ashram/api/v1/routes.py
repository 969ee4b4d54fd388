from fastapi import APIRouter, Depends

from ashram.api.v1 import receipts
from ashram.core.dependencies import get_browser_pool, get_resource_provider
from ashram.core.metrics import snapshot as metrics_snapshot
from ashram.services.browser_pool import BrowserPool
from ashram.services.resources import ResourceProvider

api_router = APIRouter()

api_router.include_router(receipts.router)


@api_router.get("/health", tags=["health"])
def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@api_router.get("/health/ready", tags=["health"])
def readiness(
    pool: BrowserPool | None = Depends(get_browser_pool),
    provider: ResourceProvider = Depends(get_resource_provider),
) -> dict[str, str | bool]:
    # The browser starts on first use, so an idle pool is still ready.
    return {
        "status": "ready",
        "fonts": provider.get_font("regular") is not None,
        "browser": "running" if pool is not None and pool.is_healthy() else "idle",
    }


@api_router.get("/metrics", tags=["metrics"])
def metrics() -> dict:
    return metrics_snapshot()
