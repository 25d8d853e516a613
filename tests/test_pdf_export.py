"""
Tests for the reportlab PDF adapter.
"""
import io

import pytest
from pypdf import PdfReader

from factories import make_phase, make_plan

from plano_nem.layout import get_theme
from plano_nem.pagination import paginate
from plano_nem.pdf_export import _rl_colour, render_pdf
from plano_nem.sections import build_document, flatten


def _pdf(plan, theme=None):
    pages = paginate(flatten(build_document(plan, theme)), theme=theme)
    return pages, render_pdf(pages, theme=theme, title=plan.titulo_proyecto, author=plan.nombre_docente)


class TestRenderPdf:
    def test_signature_and_page_count(self, plan):
        pages, data = _pdf(plan)
        assert data.startswith(b"%PDF")
        assert len(PdfReader(io.BytesIO(data)).pages) == len(pages)

    def test_identical_bytes_for_identical_pages(self, plan):
        assert _pdf(plan)[1] == _pdf(plan)[1]

    def test_text_and_footer_present(self, plan):
        _, data = _pdf(plan)
        reader = PdfReader(io.BytesIO(data))
        first = reader.pages[0].extract_text()
        assert "PROYECTO" in first
        total = len(reader.pages)
        assert f"Hoja 1 de {total}" in first

    def test_metadata(self, plan):
        _, data = _pdf(plan)
        meta = PdfReader(io.BytesIO(data)).metadata
        assert meta.title == plan.titulo_proyecto
        assert meta.author == plan.nombre_docente

    def test_long_plan_has_several_pages(self):
        plan = make_plan(phases=[make_phase("Acción", sessions=12, activities=6)])
        pages, data = _pdf(plan, get_theme("indigo"))
        assert len(pages) >= 3
        assert len(PdfReader(io.BytesIO(data)).pages) == len(pages)

    def test_no_pages_rejected(self):
        with pytest.raises(ValueError):
            render_pdf([])


class TestColour:
    def test_hex_conversion(self):
        colour = _rl_colour("#0f172a")
        assert round(colour.red * 255) == 15
        assert round(colour.blue * 255) == 42

    def test_short_hex(self):
        assert _rl_colour("#fff").green == 1
