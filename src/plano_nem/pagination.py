"""
pagination.py – Fixed-page layout engine
=========================================
LayoutEngine lays an ordered stream of primitives onto A4 pages with a
single vertical cursor that belongs to one engine instance (one export
call).  Nothing here is module-level mutable state.

Rules
-----
  • Text runs wrap to the content width and may continue on the next page
    line by line.
  • Table rows are atomic.  A row that cannot fit a fresh page (below the
    table header and its band rows) is cut at line boundaries as it is
    placed: the first piece fills what is left of the current page, later
    pieces fill whole pages.
  • Table headers repeat at the top of each continuation page; band rows
    stay on the same page as the row that follows them.
  • A heading marked keep_with_next moves to a new page with the first
    unit of the next primitive.
  • A page break on an empty page does nothing.
  • finish() drops a trailing empty page and stamps "page N of TOTAL" on
    every page; the engine is closed afterwards.

Coordinates are points, measured from the TOP edge of the page.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Iterable, Optional, Union

from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.pdfbase.pdfmetrics import stringWidth

from plano_nem.config import DEFAULT_FOOTER_TEMPLATE
from plano_nem.layout import PageBreak, Primitive, Row, Table, TextRun, Theme, get_theme

_EPS = 1e-6


# ─── Text measurement ────────────────────────────────────────────────────────

def _fit_prefix(word: str, font: str, size: float, width: float) -> int:
    """Longest prefix length of *word* that fits *width* (at least one char)."""
    n = len(word)
    while n > 1 and stringWidth(word[:n], font, size) > width:
        n -= 1
    return n


def wrap_text(text: str, font: str, size: float, width: float) -> list[str]:
    """
    Greedy word wrap using real font metrics.

    Explicit newlines (and blank lines) are kept; a word wider than *width*
    is broken across lines.  Always returns at least one line.
    """
    lines: list[str] = []
    for paragraph in (text or "").split("\n"):
        words = paragraph.split()
        if not words:
            lines.append("")
            continue
        current = ""
        for word in words:
            candidate = f"{current} {word}" if current else word
            if stringWidth(candidate, font, size) <= width:
                current = candidate
                continue
            if current:
                lines.append(current)
            while stringWidth(word, font, size) > width and len(word) > 1:
                cut = _fit_prefix(word, font, size, width)
                lines.append(word[:cut])
                word = word[cut:]
            current = word
        lines.append(current)
    return lines or [""]


# ─── Geometry and placed content ─────────────────────────────────────────────

@dataclass(frozen=True)
class PageGeometry:
    width:         float = A4[0]
    height:        float = A4[1]
    margin_left:   float = 18 * mm
    margin_right:  float = 18 * mm
    margin_top:    float = 20 * mm
    margin_bottom: float = 20 * mm
    footer_offset: float = 10 * mm    # footer baseline above the bottom edge

    @property
    def content_width(self) -> float:
        return self.width - self.margin_left - self.margin_right

    @property
    def content_height(self) -> float:
        return self.height - self.margin_top - self.margin_bottom

    @property
    def bottom_limit(self) -> float:
        return self.height - self.margin_bottom


@dataclass(frozen=True)
class CellBox:
    x:       float
    width:   float
    lines:   tuple[str, ...]
    font:    str
    size:    float
    leading: float
    color:   str
    fill:    Optional[str] = None
    align:   str = "left"
    padding: float = 0

    @property
    def text_height(self) -> float:
        return len(self.lines) * self.leading


@dataclass(frozen=True)
class Placement:
    kind:      str                        # "text" | "row"
    top:       float
    height:    float
    boxes:     tuple[CellBox, ...]
    source:    Union[TextRun, Table]
    row:       Optional[Row] = None
    grid:      bool = False
    header:    bool = False               # repeated table header
    continued: bool = False               # continuation of a split text run or row

    @property
    def bottom(self) -> float:
        return self.top + self.height

    def text(self) -> str:
        return "\n".join(line for box in self.boxes for line in box.lines)


@dataclass
class Page:
    number:     int
    placements: list[Placement] = field(default_factory=list)
    footer:     str = ""

    def text(self) -> str:
        return "\n".join(p.text() for p in self.placements)

    def rows(self) -> list[Row]:
        return [p.row for p in self.placements if p.row is not None and not p.header]


@dataclass(frozen=True)
class _MeasuredRow:
    row:       Row
    boxes:     tuple[CellBox, ...]
    height:    float
    padding:   float
    continued: bool = False


# ─── Engine ──────────────────────────────────────────────────────────────────

class LayoutEngine:
    """
    Single-use layout cursor: place() primitives in order, then finish().

    Usage:
        engine = LayoutEngine()
        engine.place_all(primitives)
        pages = engine.finish()
    """

    def __init__(self, geometry: Optional[PageGeometry] = None, theme: Optional[Theme] = None) -> None:
        self.geometry = geometry or PageGeometry()
        self.theme    = theme or get_theme()
        self.pages:    list[Page] = [Page(number=1)]
        self._offset   = self.geometry.margin_top
        self._finished = False

    # ── Cursor ───────────────────────────────────────────────────────────────

    @property
    def current_page(self) -> Page:
        return self.pages[-1]

    @property
    def offset(self) -> float:
        return self._offset

    @property
    def remaining(self) -> float:
        return self.geometry.bottom_limit - self._offset

    def _fits(self, height: float) -> bool:
        return height <= self.remaining + _EPS

    def _check_open(self) -> None:
        if self._finished:
            raise RuntimeError("layout already finished; create a new LayoutEngine")

    def _new_page(self) -> None:
        self.pages.append(Page(number=len(self.pages) + 1))
        self._offset = self.geometry.margin_top

    def _add(self, placement: Placement) -> None:
        self.current_page.placements.append(placement)
        self._offset += placement.height

    def page_break(self) -> None:
        """Force a fresh page, unless the current one is still empty."""
        self._check_open()
        if self.current_page.placements:
            self._new_page()

    # ── Placement ────────────────────────────────────────────────────────────

    def place(self, primitive: Primitive) -> None:
        self._check_open()
        if isinstance(primitive, TextRun):
            self._place_text(primitive)
        elif isinstance(primitive, Table):
            self._place_table(primitive)
        elif isinstance(primitive, PageBreak):
            self.page_break()
        else:
            raise TypeError(f"cannot lay out {type(primitive).__name__}")

    def place_all(self, primitives: Iterable[Primitive]) -> None:
        items = list(primitives)
        for i, primitive in enumerate(items):
            if isinstance(primitive, TextRun) and primitive.keep_with_next and i + 1 < len(items):
                needed = self._text_lead_in(primitive) + self._first_unit_height(items[i + 1])
                if not self._fits(needed) and self.current_page.placements:
                    self._new_page()
            self.place(primitive)

    # ── Text runs ────────────────────────────────────────────────────────────

    def _text_lines(self, run: TextRun) -> list[str]:
        return wrap_text(run.text, self.theme.font_for(run.bold), run.size, self.geometry.content_width)

    def _text_lead_in(self, run: TextRun) -> float:
        lines = self._text_lines(run)
        gap = run.space_before if self.current_page.placements else 0
        return gap + len(lines) * self.theme.leading(run.size) + run.space_after

    def _place_text(self, run: TextRun) -> None:
        t       = self.theme
        font    = t.font_for(run.bold)
        leading = t.leading(run.size)
        pending = self._text_lines(run)

        if self.current_page.placements:
            self._offset += run.space_before

        continued = False
        while pending:
            fit = int((self.remaining + _EPS) // leading)
            if fit <= 0:
                if not self.current_page.placements:
                    fit = 1
                else:
                    self._new_page()
                    continue
            chunk, pending = pending[:fit], pending[fit:]
            box = CellBox(
                x=self.geometry.margin_left, width=self.geometry.content_width,
                lines=tuple(chunk), font=font, size=run.size, leading=leading,
                color=run.color or t.text, align=run.align,
            )
            self._add(Placement(kind="text", top=self._offset, height=box.text_height,
                                boxes=(box,), source=run, continued=continued))
            continued = True
            if pending:
                self._new_page()
        self._offset += run.space_after

    # ── Tables ───────────────────────────────────────────────────────────────

    def _measure(self, table: Table, row: Row) -> _MeasuredRow:
        t     = self.theme
        left  = self.geometry.margin_left
        width = self.geometry.content_width
        pad   = table.padding

        if row.spans_full_width:
            slots = [(row.cells[0], left, width)]
        else:
            total = sum(table.columns)
            slots, x = [], left
            for cell, fraction in zip(row.cells, table.columns):
                w = width * fraction / total
                slots.append((cell, x, w))
                x += w

        boxes = []
        for cell, x, w in slots:
            size = cell.size or table.font_size
            font = t.font_for(cell.bold)
            boxes.append(CellBox(
                x=x, width=w,
                lines=tuple(wrap_text(cell.text, font, size, w - 2 * pad)),
                font=font, size=size, leading=t.leading(size),
                color=cell.color or t.text, fill=cell.fill, align=cell.align, padding=pad,
            ))
        height = max(b.text_height for b in boxes) + 2 * pad
        return _MeasuredRow(row=row, boxes=tuple(boxes), height=height, padding=pad)

    @staticmethod
    def _min_height(measured: _MeasuredRow) -> float:
        """Height of the first line of *measured*, the smallest piece it can be cut to."""
        lead = max((b.leading for b in measured.boxes if b.lines), default=0.0)
        return lead + 2 * measured.padding

    @staticmethod
    def _cut(measured: _MeasuredRow, room: float) -> tuple[Optional[_MeasuredRow], Optional[_MeasuredRow]]:
        """
        Cut *measured* at line boundaries into a piece at most *room* tall and
        the rest.  Returns (None, measured) when not even one line fits and
        (measured, None) when nothing needs cutting.
        """
        heads, tails = [], []
        for box in measured.boxes:
            n = max(int((room - 2 * measured.padding + _EPS) // box.leading), 0)
            heads.append(replace(box, lines=box.lines[:n]))
            tails.append(replace(box, lines=box.lines[n:]))
        if not any(b.lines for b in heads):
            return None, measured
        if not any(b.lines for b in tails):
            return measured, None

        def piece(boxes: list[CellBox], continued: bool) -> _MeasuredRow:
            height = max(b.text_height for b in boxes) + 2 * measured.padding
            return _MeasuredRow(row=measured.row, boxes=tuple(boxes), height=height,
                                padding=measured.padding, continued=continued)

        return piece(heads, measured.continued), piece(tails, True)

    @staticmethod
    def _keep_together(units: list[_MeasuredRow]) -> list[list[_MeasuredRow]]:
        """Group each run of band rows with the row that follows it."""
        groups: list[list[_MeasuredRow]] = []
        current: list[_MeasuredRow] = []
        for unit in units:
            current.append(unit)
            if not unit.row.spans_full_width:
                groups.append(current)
                current = []
        if current:
            groups.append(current)
        return groups

    def _units(self, table: Table) -> tuple[Optional[_MeasuredRow], list[list[_MeasuredRow]], float]:
        header   = self._measure(table, table.header) if table.header else None
        capacity = self.geometry.content_height - (header.height if header else 0.0)
        units    = [self._measure(table, row) for row in table.rows]
        return header, self._keep_together(units), capacity

    def _group_lead_in(self, group: list[_MeasuredRow], capacity: float) -> float:
        """Space a group needs on the current page: whole, or up to the first line of a row that gets cut."""
        *lead, last = group
        lead_h = sum(u.height for u in lead)
        if last.height <= capacity - lead_h + _EPS:
            return lead_h + last.height
        return lead_h + self._min_height(last)

    def _first_unit_height(self, primitive: Primitive) -> float:
        if isinstance(primitive, TextRun):
            return self.theme.leading(primitive.size)
        if isinstance(primitive, Table):
            header, groups, capacity = self._units(primitive)
            first = self._group_lead_in(groups[0], capacity) if groups else 0.0
            return (header.height if header else 0.0) + first
        return 0.0

    def _put_row(self, table: Table, unit: _MeasuredRow, header: bool = False) -> None:
        self._add(Placement(
            kind="row", top=self._offset, height=unit.height, boxes=unit.boxes, source=table,
            row=unit.row, grid=table.grid, header=header, continued=unit.continued,
        ))

    def _place_table(self, table: Table) -> None:
        header, groups, capacity = self._units(table)
        header_due    = header is not None
        header_placed = False

        def next_page() -> None:
            nonlocal header_due
            self._new_page()
            header_due = header is not None and (table.repeat_header or not header_placed)

        def make_room(height: float) -> None:
            needed = height + (header.height if header_due else 0.0)
            if not self._fits(needed) and self.current_page.placements:
                next_page()

        def fresh() -> bool:
            return all(p.header and p.source is table for p in self.current_page.placements)

        def put_header() -> None:
            nonlocal header_due, header_placed
            if header_due:
                self._put_row(table, header, header=True)
                header_due, header_placed = False, True

        for group in groups:
            *lead, last = group
            lead_h = sum(u.height for u in lead)
            atomic = last.height <= capacity - lead_h + _EPS
            make_room(self._group_lead_in(group, capacity))
            put_header()
            for unit in lead:
                make_room(unit.height)
                put_header()
                self._put_row(table, unit)

            pending: Optional[_MeasuredRow] = last
            while pending is not None:
                if self._fits(pending.height):
                    piece, pending = pending, None
                elif atomic and not fresh():
                    next_page()
                    put_header()
                    continue
                else:
                    piece, rest = self._cut(pending, self.remaining)
                    if piece is None:
                        if not fresh():
                            next_page()
                            put_header()
                            continue
                        # not even one line fits a fresh page
                        piece, rest = pending, None
                    pending = rest
                self._put_row(table, piece)
                if pending is not None:
                    next_page()
                    put_header()

        if header is not None and not header_placed:
            # table without body rows still shows its header
            make_room(0.0)
            put_header()
        self._offset += table.space_after

    # ── Numbering pass ───────────────────────────────────────────────────────

    def finish(self, footer_template: str = DEFAULT_FOOTER_TEMPLATE) -> list[Page]:
        """Close the layout and stamp every page with its 1-based number and the total."""
        self._check_open()
        if len(self.pages) > 1 and not self.current_page.placements:
            self.pages.pop()
        total = len(self.pages)
        for page in self.pages:
            page.footer = footer_template.format(page=page.number, total=total)
        self._finished = True
        return list(self.pages)


def paginate(
    primitives: Iterable[Primitive],
    geometry: Optional[PageGeometry] = None,
    theme: Optional[Theme] = None,
    footer_template: str = DEFAULT_FOOTER_TEMPLATE,
) -> list[Page]:
    engine = LayoutEngine(geometry=geometry, theme=theme)
    engine.place_all(primitives)
    return engine.finish(footer_template)
