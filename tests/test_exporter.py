"""
Tests for the export orchestrator.
"""
import io

import pytest
from docx import Document

from factories import make_plan, make_raw_plan

import plano_nem.exporter as exporter
from plano_nem.exporter import (
    UNSUPPORTED_FORMAT_MESSAGE,
    ExportArtifact,
    ExportError,
    ExportFormat,
    attempt_export,
    export_plan,
    export_raw,
    save_artifact,
    suggest_filename,
)
from plano_nem.normalizer import NOT_READY_MESSAGE, PlanNotReadyError


class TestSuggestFilename:
    def test_prefix_truncation_and_underscores(self):
        name = suggest_filename("Mi proyecto de ciencias naturales", ExportFormat.PDF)
        assert name == "Planeacion_NEM_Mi_proyecto_de_.pdf"

    def test_docx_extension(self):
        assert suggest_filename("Agua", "docx").endswith("_Agua.docx")

    def test_illegal_characters_removed(self):
        assert suggest_filename("a/b:c?", "pdf") == "Planeacion_NEM_abc.pdf"

    def test_custom_prefix_and_length(self):
        assert suggest_filename("Proyecto largo", "pdf", prefix="NEM", title_chars=4) == "NEM_Proy.pdf"


class TestExportPlan:
    def test_pdf_artifact(self, plan, settings):
        artifact = export_plan(plan, ExportFormat.PDF, settings=settings)
        assert isinstance(artifact, ExportArtifact)
        assert artifact.content.startswith(b"%PDF")
        assert artifact.mime_type == "application/pdf"
        assert artifact.filename == "Planeacion_NEM_Cuidemos_el_agu.pdf"
        assert artifact.page_count >= 2
        assert artifact.sections == (
            "header", "diagnostic", "curriculum", "sequence", "evaluation", "bibliography",
        )

    def test_docx_artifact(self, plan, settings):
        artifact = export_plan(plan, "docx", settings=settings)
        assert artifact.filename.endswith(".docx")
        assert artifact.page_count is None
        doc = Document(io.BytesIO(artifact.content))
        assert any("MALLA CURRICULAR" in p.text for p in doc.paragraphs)

    @pytest.mark.parametrize("fmt", list(ExportFormat))
    def test_idempotent(self, plan, settings, fmt):
        first  = export_plan(plan, fmt, settings=settings)
        second = export_plan(plan, fmt, settings=settings)
        assert first.sections == second.sections
        assert first.page_count == second.page_count
        assert first.filename == second.filename

    def test_pdf_bytes_identical(self, plan, settings):
        assert export_plan(plan, "pdf", settings=settings).content == \
            export_plan(plan, "pdf", settings=settings).content

    def test_both_formats_share_sections(self, plan, settings):
        pdf  = export_plan(plan, "pdf", settings=settings)
        docx = export_plan(plan, "docx", settings=settings)
        assert pdf.sections == docx.sections

    def test_identity_only_plan_exports(self, minimal_plan, settings):
        artifact = export_plan(minimal_plan, "pdf", settings=settings)
        assert artifact.sections == ("header", "diagnostic", "curriculum", "sequence", "evaluation")
        assert artifact.content.startswith(b"%PDF")

    def test_render_failure_is_wrapped(self, plan, settings, monkeypatch):
        def boom(*args, **kwargs):
            raise ZeroDivisionError("layout exploded")
        monkeypatch.setattr(exporter, "paginate", boom)
        with pytest.raises(ExportError) as info:
            export_plan(plan, "pdf", settings=settings)
        assert str(info.value) == "Error al generar PDF."
        assert isinstance(info.value.__cause__, ZeroDivisionError)

    def test_docx_failure_message(self, plan, settings, monkeypatch):
        monkeypatch.setattr(exporter, "render_docx", lambda *a, **k: 1 / 0)
        with pytest.raises(ExportError, match="Error al generar Word."):
            export_plan(plan, "docx", settings=settings)

    def test_raw_dict_is_a_contract_violation(self, settings):
        with pytest.raises(ExportError) as info:
            export_plan(make_raw_plan(), "pdf", settings=settings)
        assert isinstance(info.value.__cause__, TypeError)


class TestExportRaw:
    def test_normalizes_first(self, settings):
        artifact = export_raw(make_raw_plan(bibliography="nada"), "pdf", settings=settings)
        assert "bibliography" not in artifact.sections

    def test_not_ready_stops_before_rendering(self, settings, monkeypatch):
        called = []
        monkeypatch.setattr(exporter, "build_document", lambda *a: called.append(a))
        with pytest.raises(PlanNotReadyError):
            export_raw({}, "pdf", settings=settings)
        assert not called


class TestAttemptExport:
    def test_success(self, settings):
        artifact, message = attempt_export(make_raw_plan(), "pdf", settings=settings)
        assert artifact is not None
        assert artifact.filename in message

    def test_not_ready(self, settings):
        artifact, message = attempt_export({}, "pdf", settings=settings)
        assert artifact is None
        assert message == NOT_READY_MESSAGE

    def test_failure_does_not_raise(self, settings, monkeypatch):
        monkeypatch.setattr(exporter, "render_pdf", lambda *a, **k: 1 / 0)
        artifact, message = attempt_export(make_raw_plan(), "pdf", settings=settings)
        assert artifact is None
        assert message == "Error al generar PDF."

    def test_unknown_format_does_not_raise(self, settings):
        artifact, message = attempt_export(make_raw_plan(), "xlsx", settings=settings)
        assert artifact is None
        assert message == UNSUPPORTED_FORMAT_MESSAGE.format(fmt="xlsx")


class TestSaveArtifact:
    def test_writes_file(self, plan, settings, tmp_path):
        artifact = export_plan(plan, "pdf", settings=settings)
        path = save_artifact(artifact, tmp_path / "out")
        assert path.read_bytes() == artifact.content
        assert path.name == artifact.filename
