"""Font and logo bytes for receipt rendering.

The layout and render code only depend on :class:`ResourceProvider`. Where
the bytes come from is the provider's business: :class:`FileResourceProvider`
probes an explicit, ordered search path; :class:`StaticResourceProvider`
serves bytes the caller already holds.
"""

from __future__ import annotations

import hashlib
import io
import logging
from dataclasses import dataclass, field
from pathlib import Path
from threading import Lock
from typing import Literal, Mapping, Protocol, Sequence

from PIL import Image

from ashram.core.config import Settings, settings
from ashram.services.font_utils import TextMeasurer, covers_devanagari, font_from_bytes

logger = logging.getLogger(__name__)

FontWeight = Literal["regular", "bold"]
LogoSlot = Literal["left", "right"]

FONT_WEIGHTS: tuple[FontWeight, ...] = ("regular", "bold")
LOGO_SLOTS: tuple[LogoSlot, ...] = ("left", "right")


class ResourceProvider(Protocol):
    def get_font(self, weight: FontWeight) -> bytes | None: ...

    def get_logo(self, slot: LogoSlot) -> bytes | None: ...


@dataclass(frozen=True)
class FontCandidate:
    weight: str
    path: str
    exists: bool
    size: int
    devanagari: bool


def _candidate_paths(dirs: Sequence[str], names: Sequence[str]) -> list[Path]:
    # File name order wins over directory order: a Devanagari family found in a
    # later directory beats a Latin-only family found earlier.
    return [Path(directory) / name for name in names for directory in dirs]


def _read_bytes(path: Path) -> bytes | None:
    try:
        return path.read_bytes()
    except OSError as exc:
        logger.warning("receipt_resource_unreadable", extra={"path": str(path), "error": str(exc)})
        return None


class FileResourceProvider:
    """Reads fonts and logos from the first matching file on an injected search path."""

    def __init__(
        self,
        *,
        font_dirs: Sequence[str],
        font_files: Mapping[str, Sequence[str]],
        logo_dirs: Sequence[str] = (),
        logo_files: Mapping[str, Sequence[str]] | None = None,
    ) -> None:
        self.font_dirs = list(font_dirs)
        self.font_files = {weight: list(names) for weight, names in font_files.items()}
        self.logo_dirs = list(logo_dirs)
        self.logo_files = {slot: list(names) for slot, names in (logo_files or {}).items()}
        self._cache: dict[tuple[str, str], bytes | None] = {}
        self._lock = Lock()

    @classmethod
    def from_settings(cls, cfg: Settings | None = None) -> FileResourceProvider:
        cfg = cfg or settings
        return cls(
            font_dirs=cfg.receipt_font_dirs,
            font_files={"regular": cfg.receipt_font_files_regular, "bold": cfg.receipt_font_files_bold},
            logo_dirs=cfg.receipt_logo_dirs,
            logo_files={"left": cfg.receipt_logo_files_left, "right": cfg.receipt_logo_files_right},
        )

    def _cached(self, key: tuple[str, str], load) -> bytes | None:
        with self._lock:
            if key in self._cache:
                return self._cache[key]
        data = load()
        with self._lock:
            return self._cache.setdefault(key, data)

    def _font_paths(self, weight: str) -> list[Path]:
        return [path for path in _candidate_paths(self.font_dirs, self.font_files.get(weight, [])) if path.is_file()]

    def _pick_font(self, weight: str, *, require_devanagari: bool) -> bytes | None:
        first: bytes | None = None
        for path in self._font_paths(weight):
            data = _read_bytes(path)
            if not data:
                continue
            if covers_devanagari(data):
                logger.debug("receipt_font_selected", extra={"weight": weight, "path": str(path)})
                return data
            if first is None:
                first = data
        if require_devanagari:
            return None
        if first is not None:
            logger.warning("receipt_font_without_devanagari", extra={"weight": weight})
        return first

    def get_font(self, weight: FontWeight) -> bytes | None:
        if weight == "regular":
            return self._cached(("font", weight), lambda: self._pick_font("regular", require_devanagari=False))
        # Bold must cover Devanagari whenever regular does; otherwise callers fall
        # back to synthetic bold of the regular face.
        regular = self.get_font("regular")
        strict = covers_devanagari(regular)
        return self._cached(("font", weight), lambda: self._pick_font(weight, require_devanagari=strict))

    def get_logo(self, slot: LogoSlot) -> bytes | None:
        def load() -> bytes | None:
            for path in _candidate_paths(self.logo_dirs, self.logo_files.get(slot, [])):
                if path.is_file():
                    return _read_bytes(path)
            logger.info("receipt_logo_missing", extra={"slot": slot})
            return None

        return self._cached(("logo", slot), load)

    def describe_fonts(self) -> list[FontCandidate]:
        rows: list[FontCandidate] = []
        for weight in FONT_WEIGHTS:
            for path in _candidate_paths(self.font_dirs, self.font_files.get(weight, [])):
                exists = path.is_file()
                data = _read_bytes(path) if exists else None
                rows.append(
                    FontCandidate(
                        weight=weight,
                        path=str(path),
                        exists=exists,
                        size=len(data or b""),
                        devanagari=covers_devanagari(data),
                    )
                )
        return rows


class StaticResourceProvider:
    def __init__(
        self,
        fonts: Mapping[str, bytes | None] | None = None,
        logos: Mapping[str, bytes | None] | None = None,
    ) -> None:
        self._fonts = dict(fonts or {})
        self._logos = dict(logos or {})

    def get_font(self, weight: FontWeight) -> bytes | None:
        return self._fonts.get(weight)

    def get_logo(self, slot: LogoSlot) -> bytes | None:
        return self._logos.get(slot)


@dataclass(frozen=True)
class ReceiptFonts:
    """Resolved font bytes shared by the layout measurer and every backend."""

    regular: bytes | None = None
    bold: bytes | None = None
    devanagari: bool = False
    _measurer: TextMeasurer | None = field(default=None, init=False, repr=False, compare=False)

    @property
    def synthetic_bold(self) -> bool:
        return self.regular is not None and self.bold is None

    def data(self, bold: bool = False) -> bytes | None:
        return (self.bold or self.regular) if bold else self.regular

    def digest(self, bold: bool = False) -> str | None:
        data = self.data(bold)
        return hashlib.sha1(data).hexdigest()[:10] if data else None

    def measure(self, text: str, size: float, *, bold: bool = False) -> float:
        measurer = self._measurer
        if measurer is None:
            measurer = TextMeasurer(self.regular, self.bold)
            object.__setattr__(self, "_measurer", measurer)
        return measurer.width(text, size, bold=bold)


@dataclass(frozen=True)
class ReceiptResources:
    fonts: ReceiptFonts
    logos: dict[str, bytes | None]


def _safe_get(getter, name: str, kind: str) -> bytes | None:
    try:
        data = getter(name)
    except Exception as exc:  # resource failures never fail a render
        logger.warning("receipt_resource_failed", extra={"kind": kind, "name": name, "error": str(exc)})
        return None
    return data or None


def _usable_font(data: bytes | None, weight: str) -> bytes | None:
    if data is None:
        return None
    try:
        font_from_bytes(data, 12)
    except OSError as exc:
        logger.warning("receipt_font_unusable", extra={"weight": weight, "error": str(exc)})
        return None
    return data


def _usable_image(data: bytes | None, slot: str) -> bytes | None:
    if data is None:
        return None
    try:
        with Image.open(io.BytesIO(data)) as image:
            image.verify()
    except (OSError, SyntaxError, ValueError) as exc:
        logger.warning("receipt_logo_unusable", extra={"slot": slot, "error": str(exc)})
        return None
    return data


def load_receipt_fonts(provider: ResourceProvider) -> ReceiptFonts:
    regular = _usable_font(_safe_get(provider.get_font, "regular", "font"), "regular")
    bold = _usable_font(_safe_get(provider.get_font, "bold", "font"), "bold")
    if regular is None and bold is not None:
        regular = bold
    devanagari = covers_devanagari(regular)
    if regular is None:
        logger.warning("receipt_fonts_unavailable")
    return ReceiptFonts(regular=regular, bold=bold, devanagari=devanagari)


def load_receipt_resources(provider: ResourceProvider, *, include_logos: bool = True) -> ReceiptResources:
    logos: dict[str, bytes | None] = {slot: None for slot in LOGO_SLOTS}
    if include_logos:
        for slot in LOGO_SLOTS:
            logos[slot] = _usable_image(_safe_get(provider.get_logo, slot, "logo"), slot)
    return ReceiptResources(fonts=load_receipt_fonts(provider), logos=logos)


_default_provider: FileResourceProvider | None = None
_default_lock = Lock()


def default_provider() -> FileResourceProvider:
    global _default_provider
    with _default_lock:
        if _default_provider is None:
            _default_provider = FileResourceProvider.from_settings()
        return _default_provider
