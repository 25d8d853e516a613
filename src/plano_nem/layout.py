"""
layout.py – Format-independent layout primitives and presentation themes
==========================================================================
Section renderers emit these primitives; the PDF adapter lays them out on
fixed pages (pagination.py → pdf_export.py) and the Word adapter maps them
onto headings, paragraphs and tables (docx_export.py).

Primitives
----------
  TextRun    Styled block of text (heading or body).  May wrap across pages.
  Table      Column widths + optional repeated header row + body rows.
             Rows are atomic: a row is never split across pages.
  Row        Sequence of Cells.  kind="band" spans the full table width;
             kind="title" is a band used as the document title.
  Cell       Text with independent wrapping and optional fill / colour.
  PageBreak  Forces the next primitive onto a fresh page.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Union


# ─── Themes ──────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Theme:
    name:          str   = "nem"
    primary:       str   = "#0f172a"   # slate 900 – banner, phase bands
    secondary:     str   = "#334155"   # slate 700 – subject bands, table heads
    text:          str   = "#0f172a"
    muted:         str   = "#64748b"
    banner_text:   str   = "#ffffff"
    banner_subtle: str   = "#c8c8c8"
    key_fill:      str   = "#f1f5f9"   # label column of key/value tables
    light_fill:    str   = "#fafafa"
    band_fill:     str   = "#e2e8f0"   # phase description band
    grid:          str   = "#cbd5e1"
    footer:        str   = "#969696"
    font:          str   = "Helvetica"
    bold_font:     str   = "Helvetica-Bold"
    heading_size:  float = 10
    body_size:     float = 8
    table_size:    float = 7.5
    session_size:  float = 7
    footer_size:   float = 7
    cell_padding:  float = 5
    line_spacing:  float = 1.25

    def font_for(self, bold: bool) -> str:
        return self.bold_font if bold else self.font

    def leading(self, size: float) -> float:
        return size * self.line_spacing


THEMES: dict[str, Theme] = {
    "nem":    Theme(),
    "indigo": Theme(
        name="indigo",
        primary="#312e81",
        secondary="#4f46e5",
        text="#1e1b4b",
        key_fill="#eef2ff",
        band_fill="#e0e7ff",
        grid="#c7d2fe",
    ),
}


def get_theme(name: str = "nem") -> Theme:
    """Return the named theme, falling back to the default NEM look."""
    return THEMES.get((name or "nem").lower(), THEMES["nem"])


# ─── Primitives ──────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class TextRun:
    text:           str
    size:           float = 8
    bold:           bool  = False
    color:          Optional[str] = None
    align:          str   = "left"      # "left" | "center"
    level:          int   = 0           # 0 = body, 1–2 = heading level
    space_before:   float = 0
    space_after:    float = 4
    keep_with_next: bool  = False


@dataclass(frozen=True)
class Cell:
    text:  str
    bold:  bool = False
    align: str  = "left"
    fill:  Optional[str] = None
    color: Optional[str] = None
    size:  Optional[float] = None       # defaults to the table's font size


@dataclass(frozen=True)
class Row:
    cells: tuple[Cell, ...]
    kind:  str = "body"                 # "body" | "band" | "title"

    @property
    def spans_full_width(self) -> bool:
        return self.kind in ("band", "title")

    def texts(self) -> list[str]:
        return [c.text for c in self.cells]


@dataclass(frozen=True)
class Table:
    columns:       tuple[float, ...]    # relative widths, summing to 1
    rows:          tuple[Row, ...]
    header:        Optional[Row] = None
    font_size:     float = 7.5
    padding:       float = 5
    grid:          bool  = True
    banner:        bool  = False        # identity banner (no grid, rendered as text in Word)
    repeat_header: bool  = True
    space_after:   float = 10

    def __post_init__(self) -> None:
        if not self.columns:
            raise ValueError("a table needs at least one column")
        for row in self.all_rows():
            if not row.spans_full_width and len(row.cells) != len(self.columns):
                raise ValueError(
                    f"row has {len(row.cells)} cells but the table has {len(self.columns)} columns"
                )

    def all_rows(self) -> list[Row]:
        return ([self.header] if self.header else []) + list(self.rows)


@dataclass(frozen=True)
class PageBreak:
    reason: str = ""


Primitive = Union[TextRun, Table, PageBreak]


# ─── Small constructors used by the section renderers ────────────────────────

def heading(text: str, theme: Theme, level: int = 1) -> TextRun:
    return TextRun(
        text=text,
        size=theme.heading_size if level == 1 else theme.body_size + 1,
        bold=True,
        color=theme.primary,
        level=level,
        space_before=4 if level == 1 else 2,
        space_after=4,
        keep_with_next=True,
    )


def band(text: str, fill: str, color: str, *, bold: bool = True,
         size: Optional[float] = None, kind: str = "band") -> Row:
    return Row(cells=(Cell(text=text, bold=bold, fill=fill, color=color, size=size),), kind=kind)


@dataclass
class Section:
    """Named, ordered group of primitives produced by one section renderer."""
    key:        str
    primitives: list[Primitive] = field(default_factory=list)

    def __bool__(self) -> bool:
        return bool(self.primitives)
