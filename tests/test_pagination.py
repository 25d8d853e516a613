"""
Tests for the fixed-page layout engine.
"""
import pytest
from reportlab.pdfbase.pdfmetrics import stringWidth

from factories import make_phase, make_plan

from plano_nem.layout import Cell, PageBreak, Row, Table, TextRun, band, get_theme
from plano_nem.pagination import LayoutEngine, PageGeometry, paginate, wrap_text
from plano_nem.sections import build_document, flatten

EPS = 1e-6


def _body(text: str, lines: int = 1) -> Row:
    return Row(cells=(Cell(text="\n".join([text] * lines)),))


def _lines_run(n: int) -> TextRun:
    """Body text of exactly *n* lines, no trailing space."""
    return TextRun(text="\n".join(f"línea {i}" for i in range(n)), size=8, space_after=0)


def _document_pages(plan):
    return paginate(flatten(build_document(plan)))


class TestWrapText:
    def test_lines_fit_width(self):
        text = "La comunidad escolar analiza el consumo de agua " * 10
        for line in wrap_text(text, "Helvetica", 8, 120):
            assert stringWidth(line, "Helvetica", 8) <= 120

    def test_keeps_explicit_and_blank_lines(self):
        assert wrap_text("uno\n\ndos", "Helvetica", 8, 200) == ["uno", "", "dos"]

    def test_long_word_is_broken(self):
        word = "x" * 200
        lines = wrap_text(word, "Helvetica", 8, 50)
        assert len(lines) > 1
        assert "".join(lines) == word

    def test_empty_text_is_one_line(self):
        assert wrap_text("", "Helvetica", 8, 100) == [""]


class TestPlacementRules:
    def test_no_placement_overflows(self):
        geometry = PageGeometry()
        for page in _document_pages(make_plan()):
            for placement in page.placements:
                assert placement.top >= geometry.margin_top - EPS
                assert placement.bottom <= geometry.bottom_limit + EPS

    def test_every_row_placed_exactly_once(self):
        plan = make_plan(phases=[make_phase("Acción", sessions=12, activities=5)])
        primitives = flatten(build_document(plan))
        pages = paginate(primitives)
        placed = [id(row) for page in pages for row in page.rows()]
        expected = [id(row) for p in primitives if isinstance(p, Table) for row in p.rows]
        assert sorted(placed) == sorted(expected)

    def test_twelve_sessions_span_pages_intact(self):
        plan = make_plan(phases=[make_phase("Acción", sessions=12, activities=6)])
        pages = _document_pages(plan)
        session_pages = {}
        for page in pages:
            for placement in page.placements:
                text = placement.text()
                if placement.row is not None and text.startswith("SESIÓN"):
                    assert not placement.continued
                    label = text.splitlines()[0]
                    session_pages.setdefault(label, []).append(page.number)
                    body = placement.boxes[1].lines
                    joined = "\n".join(body)
                    assert joined.index("INICIO:") < joined.index("DESARROLLO:") < joined.index("CIERRE:")
        assert len(session_pages) == 12
        assert all(len(p) == 1 for p in session_pages.values())
        assert len({p[0] for p in session_pages.values()}) >= 2

    def test_header_repeats_on_continuation_page(self):
        header = Row(cells=(Cell(text="A"), Cell(text="B")))
        rows = tuple(Row(cells=(Cell(text=f"r{i}"), Cell(text="x\nx\nx"))) for i in range(80))
        pages = paginate([Table(columns=(0.5, 0.5), header=header, rows=rows)])
        assert len(pages) >= 2
        for page in pages:
            assert page.placements[0].header

    def test_band_kept_with_next_row(self):
        t = get_theme()
        table = Table(columns=(1.0,), rows=(
            band("FASE", t.primary, t.banner_text),
            _body("sesión", lines=5),
        ))
        dry = paginate([table])[0].placements
        band_h, row_h = dry[0].height, dry[1].height

        engine = LayoutEngine()
        content = engine.geometry.content_height
        engine.place(_lines_run(int((content - band_h - row_h / 2) // t.leading(8))))
        assert band_h <= engine.remaining < band_h + row_h
        engine.place(table)
        pages = engine.finish()
        assert len(pages) == 2
        assert [p.row.kind for p in pages[1].placements] == ["band", "body"]

    def test_heading_kept_with_next(self):
        t = get_theme()
        heading = TextRun(text="II. MALLA", size=10, bold=True, keep_with_next=True, space_after=0)
        table = Table(columns=(1.0,), rows=(_body("fila", lines=6),))
        engine = LayoutEngine()
        content = engine.geometry.content_height
        engine.place(_lines_run(int((content - t.leading(10) - 10) // t.leading(8))))
        assert engine.remaining >= t.leading(10)
        engine.place_all([heading, table])
        pages = engine.finish()
        assert pages[1].placements[0].source is heading

    def test_oversize_row_is_split_into_atomic_pieces(self):
        geometry = PageGeometry()
        row = _body("renglón largo", lines=200)
        pages = paginate([Table(columns=(1.0,), rows=(row,))])
        pieces = [p for page in pages for p in page.placements if p.row is row]
        assert len(pages) >= 2
        assert [p.continued for p in pieces] == [False] + [True] * (len(pieces) - 1)
        assert all(p.height <= geometry.content_height + EPS for p in pieces)
        assert sum(len(p.boxes[0].lines) for p in pieces) == 200

    def test_text_run_continues_line_by_line(self):
        pages = paginate([_lines_run(150)])
        assert len(pages) >= 2
        lines = [l for page in pages for p in page.placements for l in p.boxes[0].lines]
        assert lines == [f"línea {i}" for i in range(150)]


class TestLongContent:
    LONG = "La comunidad enfrenta escasez de agua potable. " * 200

    @staticmethod
    def _is_heading(placement) -> bool:
        return isinstance(placement.source, TextRun) and placement.source.keep_with_next

    @pytest.mark.parametrize("field", ["diagnostico_socioeducativo", "proposito"])
    def test_heading_never_ends_a_page(self, field):
        pages = _document_pages(make_plan(**{field: self.LONG}))
        for page in pages:
            assert not self._is_heading(page.placements[-1])

    def test_long_diagnostic_starts_under_its_heading(self):
        pages = _document_pages(make_plan(diagnostico_socioeducativo=self.LONG))
        first = pages[0].placements
        i = next(i for i, p in enumerate(first) if p.text() == "I. FUNDAMENTACIÓN Y CONTEXTO")
        following = first[i + 1]
        assert following.row is not None and not following.continued
        assert following.text().startswith("DIAGNÓSTICO")

    def test_long_diagnostic_stays_within_pages(self):
        geometry = PageGeometry()
        pages = _document_pages(make_plan(diagnostico_socioeducativo=self.LONG))
        assert len(pages) >= 3
        for page in pages:
            assert page.placements
            for placement in page.placements:
                assert placement.bottom <= geometry.bottom_limit + EPS

    def test_cut_row_fills_rest_of_current_page(self):
        t = get_theme()
        heading = TextRun(text="I. DIAGNÓSTICO", size=10, bold=True, keep_with_next=True, space_after=0)
        row = _body("renglón largo", lines=200)
        engine = LayoutEngine()
        engine.place(_lines_run(20))
        engine.place_all([heading, Table(columns=(1.0,), rows=(row,))])
        pages = engine.finish()
        first = pages[0].placements
        assert first[-2].source is heading
        assert first[-1].row is row and not first[-1].continued
        assert engine.geometry.bottom_limit - first[-1].bottom < t.leading(7.5) + EPS
        assert sum(len(p.boxes[0].lines) for page in pages for p in page.placements if p.row is row) == 200


class TestHeaderWithoutRepeat:
    def test_header_placed_once_after_page_break(self):
        header = Row(cells=(Cell(text="ENCABEZADO"),))
        rows = tuple(Row(cells=(Cell(text=f"r{i}\nx\nx"),)) for i in range(80))
        engine = LayoutEngine()
        engine.place(_lines_run(int(engine.geometry.content_height // get_theme().leading(8))))
        engine.place(Table(columns=(1.0,), header=header, rows=rows, repeat_header=False))
        pages = engine.finish()
        headers = [page.number for page in pages for p in page.placements if p.header]
        assert len(pages) >= 3
        assert headers == [2]
        assert pages[1].placements[0].header


class TestPageBreaks:
    def test_break_on_empty_page_is_noop(self):
        pages = paginate([PageBreak(), TextRun(text="hola"), PageBreak(), PageBreak(), TextRun(text="adiós")])
        assert len(pages) == 2

    def test_trailing_empty_page_dropped(self):
        pages = paginate([TextRun(text="hola"), PageBreak()])
        assert len(pages) == 1

    def test_sequence_starts_on_new_page(self, plan):
        pages = _document_pages(plan)
        start = next(p for p in pages if "III. PLANO DIDÁCTICO (ACTIVIDADES)" in p.text())
        assert start.number > 1
        assert start.placements[0].text() == "III. PLANO DIDÁCTICO (ACTIVIDADES)"


class TestNumbering:
    def test_every_page_labelled_once(self):
        plan = make_plan(phases=[make_phase("Acción", sessions=12, activities=6)])
        pages = _document_pages(plan)
        total = len(pages)
        assert [p.number for p in pages] == list(range(1, total + 1))
        assert [p.footer for p in pages] == [
            f"Hoja {i} de {total} | Planeador Maestro NEM Pro+" for i in range(1, total + 1)
        ]

    def test_custom_template(self):
        pages = paginate([TextRun(text="x")], footer_template="Página {page}/{total}")
        assert pages[0].footer == "Página 1/1"

    def test_place_after_finish_raises(self):
        engine = LayoutEngine()
        engine.place(TextRun(text="x"))
        engine.finish()
        with pytest.raises(RuntimeError):
            engine.place(TextRun(text="y"))

    def test_unknown_primitive_raises_type_error(self):
        with pytest.raises(TypeError):
            LayoutEngine().place("texto suelto")

    def test_independent_engines(self, plan):
        primitives = flatten(build_document(plan))
        first, second = paginate(primitives), paginate(primitives)
        assert [p.text() for p in first] == [p.text() for p in second]
