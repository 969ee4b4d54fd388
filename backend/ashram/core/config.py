from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

_PACKAGE_ROOT = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    """Application settings loaded from environment variables or a .env file."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", case_sensitive=False)

    app_name: str = "Ashram Receipts API"
    app_version: str = "0.1.0"
    environment: str = "local"
    log_json: bool = False

    sentry_dsn: str | None = None
    sentry_traces_sample_rate: float = 0.0
    sentry_enable_logs: bool = False
    sentry_log_level: str = "error"

    smtp_enabled: bool = False
    smtp_host: str = "localhost"
    smtp_port: int = 1025
    smtp_username: str | None = None
    smtp_password: str | None = None
    smtp_use_tls: bool = False
    smtp_from_email: str | None = None
    smtp_from_name: str = "Ashram Management"

    receipt_font_dirs: list[str] = [
        str(_PACKAGE_ROOT / "assets" / "fonts"),
        "/usr/share/fonts/truetype/noto",
        "/usr/share/fonts/opentype/noto",
        "/usr/share/fonts/noto",
        "/usr/share/fonts/truetype/lohit-devanagari",
        "/usr/share/fonts/truetype/dejavu",
    ]
    receipt_font_files_regular: list[str] = [
        "NotoSansDevanagari-Regular.ttf",
        "NotoSansDevanagari-VariableFont_wdth,wght.ttf",
        "NotoSansDevanagariUI-Regular.ttf",
        "Lohit-Devanagari.ttf",
        "DejaVuSans.ttf",
    ]
    receipt_font_files_bold: list[str] = [
        "NotoSansDevanagari-Bold.ttf",
        "NotoSansDevanagariUI-Bold.ttf",
        "DejaVuSans-Bold.ttf",
    ]
    receipt_logo_dirs: list[str] = [str(_PACKAGE_ROOT / "assets" / "logos")]
    receipt_logo_files_left: list[str] = ["logo-left.png", "logo-left.jpeg", "logo11.jpeg"]
    receipt_logo_files_right: list[str] = ["logo-right.png", "logo-right.jpeg", "logo22.jpeg"]

    receipt_render_backends: list[str] = ["vector", "raster"]
    receipt_render_timeout_seconds: float = 30.0

    browser_page_timeout_seconds: float = 15.0
    browser_launch_args: list[str] = [
        "--no-sandbox",
        "--disable-setuid-sandbox",
        "--disable-dev-shm-usage",
        "--disable-gpu",
        "--font-render-hinting=none",
        "--force-color-profile=srgb",
        "--lang=en-US,ne-NP",
    ]


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
