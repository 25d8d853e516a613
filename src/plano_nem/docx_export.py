"""
docx_export.py – Flow-document (Word) adapter
==============================================
Maps the same layout primitives the PDF path paginates onto python-docx
headings, paragraphs and tables.  Word paginates on its own, so this
adapter only carries the intent of the fixed-page rules:

  Table header row  → repeated on each page (w:tblHeader)
  Any table row     → never split across pages (w:cantSplit)
  Band row          → one merged cell spanning the table, shaded
  PageBreak         → hard page break
  Footer            → template with live PAGE / NUMPAGES fields
"""

from __future__ import annotations

import io
import re
from typing import Iterable, Optional

from docx import Document
from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.oxml import OxmlElement
from docx.oxml.ns import qn
from docx.shared import Mm, Pt, RGBColor

from plano_nem.config import DEFAULT_FOOTER_TEMPLATE
from plano_nem.layout import Cell, PageBreak, Primitive, Row, Table, TextRun, Theme, get_theme

PAGE_WIDTH_MM  = 210
PAGE_HEIGHT_MM = 297
SIDE_MARGIN_MM = 18
V_MARGIN_MM    = 20

_FIELD_TOKENS = re.compile(r"(\{page\}|\{total\})")


def _rgb(hex_str: str) -> RGBColor:
    return RGBColor.from_string(hex_str.lstrip("#").upper())


# ─── Low-level OOXML helpers ─────────────────────────────────────────────────

def _shade(cell, hex_fill: str) -> None:
    shd = OxmlElement("w:shd")
    shd.set(qn("w:val"), "clear")
    shd.set(qn("w:color"), "auto")
    shd.set(qn("w:fill"), hex_fill.lstrip("#").upper())
    cell._tc.get_or_add_tcPr().append(shd)


def _flag_row(row, tag: str) -> None:
    row._tr.get_or_add_trPr().append(OxmlElement(tag))


def _add_field(paragraph, instruction: str) -> None:
    fld = OxmlElement("w:fldSimple")
    fld.set(qn("w:instr"), f" {instruction} ")
    run = OxmlElement("w:r")
    text = OxmlElement("w:t")
    text.text = "1"
    run.append(text)
    fld.append(run)
    paragraph._p.append(fld)


# ─── Text ────────────────────────────────────────────────────────────────────

def _write_lines(paragraph, text: str, *, bold: bool, size: float, color: Optional[str]) -> None:
    lines = text.split("\n")
    for i, line in enumerate(lines):
        run = paragraph.add_run(line)
        run.bold = bold
        run.font.size = Pt(size)
        if color:
            run.font.color.rgb = _rgb(color)
        if i < len(lines) - 1:
            run.add_break()


def _add_text(doc, run: TextRun, theme: Theme) -> None:
    if run.level > 0:
        para = doc.add_heading(run.text, level=run.level)
        for r in para.runs:
            r.font.color.rgb = _rgb(run.color or theme.primary)
    else:
        para = doc.add_paragraph()
        _write_lines(para, run.text, bold=run.bold, size=run.size, color=run.color or theme.text)
    if run.align == "center":
        para.alignment = WD_ALIGN_PARAGRAPH.CENTER
    para.paragraph_format.keep_with_next = run.keep_with_next


def _add_banner(doc, table: Table, theme: Theme) -> None:
    """The PDF banner becomes a title heading surrounded by identity lines."""
    for row in table.rows:
        cell = row.cells[0]
        if row.kind == "title":
            para = doc.add_heading(cell.text, level=0)
            for r in para.runs:
                r.font.color.rgb = _rgb(theme.primary)
            continue
        strong = cell.color != theme.banner_subtle
        para = doc.add_paragraph()
        _write_lines(para, cell.text, bold=cell.bold, size=cell.size or table.font_size,
                     color=theme.primary if strong else theme.muted)
        para.paragraph_format.space_after = Pt(0)


# ─── Tables ──────────────────────────────────────────────────────────────────

def _fill_cell(target, cell: Cell, table: Table, theme: Theme) -> None:
    para = target.paragraphs[0]
    if cell.align == "center":
        para.alignment = WD_ALIGN_PARAGRAPH.CENTER
    _write_lines(para, cell.text, bold=cell.bold, size=cell.size or table.font_size,
                 color=cell.color or theme.text)
    if cell.fill:
        _shade(target, cell.fill)


def _add_row(wtable, row: Row, table: Table, theme: Theme, widths: list, header: bool) -> None:
    wrow = wtable.add_row()
    cells = wrow.cells
    if row.spans_full_width:
        target = cells[0].merge(cells[-1]) if len(cells) > 1 else cells[0]
        _fill_cell(target, row.cells[0], table, theme)
    else:
        for target, cell, width in zip(cells, row.cells, widths):
            target.width = width
            _fill_cell(target, cell, table, theme)
    _flag_row(wrow, "w:cantSplit")
    if header and table.repeat_header:
        _flag_row(wrow, "w:tblHeader")


def _add_table(doc, table: Table, theme: Theme) -> None:
    content_mm = PAGE_WIDTH_MM - 2 * SIDE_MARGIN_MM
    total = sum(table.columns)
    widths = [Mm(content_mm * f / total) for f in table.columns]

    wtable = doc.add_table(rows=0, cols=len(table.columns))
    wtable.style = "Table Grid"
    wtable.autofit = False
    if table.header is not None:
        _add_row(wtable, table.header, table, theme, widths, header=True)
    for row in table.rows:
        _add_row(wtable, row, table, theme, widths, header=False)
    doc.add_paragraph()


# ─── Document ────────────────────────────────────────────────────────────────

def _setup_page(doc, footer_template: str, theme: Theme) -> None:
    section = doc.sections[0]
    section.page_width    = Mm(PAGE_WIDTH_MM)
    section.page_height   = Mm(PAGE_HEIGHT_MM)
    section.left_margin   = Mm(SIDE_MARGIN_MM)
    section.right_margin  = Mm(SIDE_MARGIN_MM)
    section.top_margin    = Mm(V_MARGIN_MM)
    section.bottom_margin = Mm(V_MARGIN_MM)

    para = section.footer.paragraphs[0]
    para.alignment = WD_ALIGN_PARAGRAPH.CENTER
    for part in _FIELD_TOKENS.split(footer_template):
        if part == "{page}":
            _add_field(para, "PAGE")
        elif part == "{total}":
            _add_field(para, "NUMPAGES")
        elif part:
            run = para.add_run(part)
            run.font.size = Pt(theme.footer_size)
            run.font.color.rgb = _rgb(theme.footer)


def render_docx(
    primitives: Iterable[Primitive],
    theme: Optional[Theme] = None,
    *,
    title: str = "",
    author: str = "",
    subject: str = "",
    footer_template: str = DEFAULT_FOOTER_TEMPLATE,
) -> bytes:
    """Build a .docx from layout primitives and return its bytes."""
    theme = theme or get_theme()
    doc = Document()
    _setup_page(doc, footer_template, theme)

    props = doc.core_properties
    props.title   = title
    props.author  = author
    props.subject = subject

    for primitive in primitives:
        if isinstance(primitive, TextRun):
            _add_text(doc, primitive, theme)
        elif isinstance(primitive, Table):
            if primitive.banner:
                _add_banner(doc, primitive, theme)
            else:
                _add_table(doc, primitive, theme)
        elif isinstance(primitive, PageBreak):
            doc.add_page_break()
        else:
            raise TypeError(f"cannot convert {type(primitive).__name__} to Word")

    buf = io.BytesIO()
    doc.save(buf)
    return buf.getvalue()
