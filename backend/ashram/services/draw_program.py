"""Backend-agnostic page description produced by the receipt layout.

Coordinates are PDF points measured from the top-left corner of the page.
A :class:`TextRun` is positioned by its baseline. Every op names the layout
region it belongs to so callers can inspect structure without rendering.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, Literal, Union

from reportlab.lib.pagesizes import A4

PAGE_WIDTH, PAGE_HEIGHT = A4

FontRole = Literal["regular", "bold", "italic", "mono"]
Align = Literal["left", "center", "right"]


@dataclass(frozen=True)
class TextRun:
    region: str
    x: float
    y: float
    text: str
    size: float
    font: FontRole = "regular"
    color: str = "#111827"
    align: Align = "left"

    @property
    def bold(self) -> bool:
        return self.font == "bold"


@dataclass(frozen=True)
class Rect:
    region: str
    x: float
    y: float
    width: float
    height: float
    fill: str | None = None
    stroke: str | None = None
    stroke_width: float = 1.0
    radius: float = 0.0
    dash: tuple[float, ...] | None = None


@dataclass(frozen=True)
class Line:
    region: str
    x1: float
    y1: float
    x2: float
    y2: float
    color: str = "#111827"
    width: float = 1.0
    dash: tuple[float, ...] | None = None


@dataclass(frozen=True)
class Ellipse:
    region: str
    cx: float
    cy: float
    rx: float
    ry: float
    fill: str | None = None
    stroke: str | None = None
    stroke_width: float = 1.0


@dataclass(frozen=True)
class ImageBox:
    region: str
    x: float
    y: float
    width: float
    height: float
    data: bytes = field(repr=False)


DrawOp = Union[TextRun, Rect, Line, Ellipse, ImageBox]


@dataclass(frozen=True)
class Region:
    name: str
    x: float
    y: float
    width: float
    height: float

    @property
    def bottom(self) -> float:
        return self.y + self.height


@dataclass
class DrawProgram:
    """Ordered paint operations for a single page, painted first to last."""

    width: float = PAGE_WIDTH
    height: float = PAGE_HEIGHT
    title: str = ""
    ops: list[DrawOp] = field(default_factory=list)
    regions: list[Region] = field(default_factory=list)

    def add(self, op: DrawOp) -> DrawOp:
        self.ops.append(op)
        return op

    def add_region(self, name: str, x: float, y: float, width: float, height: float) -> Region:
        region = Region(name, x, y, width, height)
        self.regions.append(region)
        return region

    def region(self, name: str) -> Region | None:
        return next((region for region in self.regions if region.name == name), None)

    def region_names(self) -> list[str]:
        return [region.name for region in self.regions]

    def ops_in(self, region: str) -> list[DrawOp]:
        return [op for op in self.ops if op.region == region]

    def text_runs(self, region: str | None = None) -> Iterator[TextRun]:
        for op in self.ops:
            if isinstance(op, TextRun) and (region is None or op.region == region):
                yield op

    def texts(self, region: str | None = None) -> list[str]:
        return [run.text for run in self.text_runs(region)]

    def images(self) -> list[ImageBox]:
        return [op for op in self.ops if isinstance(op, ImageBox)]
