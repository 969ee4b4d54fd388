from fastapi import Request

from ashram.services.browser_pool import BrowserPool
from ashram.services.resources import ResourceProvider, default_provider


def get_browser_pool(request: Request) -> BrowserPool | None:
    return getattr(request.app.state, "browser_pool", None)


def get_resource_provider() -> ResourceProvider:
    return default_provider()
