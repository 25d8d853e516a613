"""
pdf_export.py – Draw laid-out pages with the reportlab canvas
==============================================================
render_pdf() takes the pages produced by pagination.paginate() and paints
them: cell fills, grid lines, wrapped text and the footer stamped by the
numbering pass.  All positioning decisions were made by the layout engine;
this module only converts top-down coordinates to PDF space.

Output is produced in reportlab's invariant mode, so the same pages give
byte-identical PDFs.
"""

from __future__ import annotations

import io
from typing import Optional, Sequence

from reportlab.lib import colors as rl_colors
from reportlab.pdfgen import canvas

from plano_nem.layout import Theme, get_theme
from plano_nem.pagination import CellBox, Page, PageGeometry, Placement

PDF_CREATOR = "Planeador Maestro NEM Pro+"


def _rl_colour(hex_str: str):
    """Convert a CSS hex colour string to a reportlab Color."""
    h = hex_str.lstrip("#")
    if len(h) == 3:
        h = "".join(c * 2 for c in h)
    r, g, b = int(h[0:2], 16) / 255, int(h[2:4], 16) / 255, int(h[4:6], 16) / 255
    return rl_colors.Color(r, g, b)


def _draw_box(c: canvas.Canvas, box: CellBox, top_y: float, height: float,
              grid: Optional[str]) -> None:
    if box.fill:
        c.setFillColor(_rl_colour(box.fill))
        c.rect(box.x, top_y - height, box.width, height, stroke=0, fill=1)
    if grid:
        c.setStrokeColor(_rl_colour(grid))
        c.setLineWidth(0.5)
        c.rect(box.x, top_y - height, box.width, height, stroke=1, fill=0)

    c.setFillColor(_rl_colour(box.color))
    c.setFont(box.font, box.size)
    for i, line in enumerate(box.lines):
        if not line:
            continue
        baseline = top_y - box.padding - box.size - i * box.leading
        if box.align == "center":
            c.drawCentredString(box.x + box.width / 2, baseline, line)
        else:
            c.drawString(box.x + box.padding, baseline, line)


def _draw_placement(c: canvas.Canvas, placement: Placement, geometry: PageGeometry,
                    theme: Theme) -> None:
    top_y = geometry.height - placement.top
    grid  = theme.grid if placement.grid else None
    for box in placement.boxes:
        _draw_box(c, box, top_y, placement.height, grid)


def _draw_footer(c: canvas.Canvas, page: Page, geometry: PageGeometry, theme: Theme) -> None:
    c.setFont(theme.font, theme.footer_size)
    c.setFillColor(_rl_colour(theme.footer))
    c.drawCentredString(geometry.width / 2, geometry.footer_offset, page.footer)


def render_pdf(
    pages: Sequence[Page],
    geometry: Optional[PageGeometry] = None,
    theme: Optional[Theme] = None,
    *,
    title: str = "",
    author: str = "",
    subject: str = "",
) -> bytes:
    """Paint numbered pages onto a PDF and return its bytes."""
    if not pages:
        raise ValueError("nothing to render: the layout produced no pages")
    geometry = geometry or PageGeometry()
    theme    = theme or get_theme()

    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=(geometry.width, geometry.height), invariant=1)
    c.setTitle(title)
    c.setAuthor(author)
    c.setSubject(subject)
    c.setCreator(PDF_CREATOR)

    for page in pages:
        for placement in page.placements:
            _draw_placement(c, placement, geometry, theme)
        _draw_footer(c, page, geometry, theme)
        c.showPage()

    c.save()
    return buf.getvalue()
