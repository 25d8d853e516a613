"""
Tests for the typer CLI.  Generation runs in mock mode; files go to tmp_path.
"""
import json

from typer.testing import CliRunner

from factories import make_raw_plan

from plano_nem.cli import OutputFormat, app
from plano_nem.exporter import ExportFormat

runner = CliRunner()


class TestOutputFormat:
    def test_targets(self):
        assert OutputFormat.pdf.targets() == [ExportFormat.PDF]
        assert OutputFormat.both.targets() == [ExportFormat.PDF, ExportFormat.DOCX]


class TestStatusCommand:
    def test_shows_mock_mode(self):
        result = runner.invoke(app, ["status"])
        assert result.exit_code == 0
        assert "Generation mode" in result.output
        assert "Mock" in result.output


class TestExportCommand:
    def test_exports_both_formats(self, tmp_path):
        source = tmp_path / "plan.json"
        source.write_text(json.dumps(make_raw_plan(), ensure_ascii=False), encoding="utf-8")
        out = tmp_path / "out"

        result = runner.invoke(app, ["export", str(source), "-f", "both", "-o", str(out)])

        assert result.exit_code == 0, result.output
        assert sorted(p.suffix for p in out.iterdir()) == [".docx", ".pdf"]
        pdf = next(out.glob("*.pdf"))
        assert pdf.read_bytes().startswith(b"%PDF")

    def test_plan_not_ready(self, tmp_path):
        source = tmp_path / "empty.json"
        source.write_text("{}", encoding="utf-8")
        result = runner.invoke(app, ["export", str(source), "-o", str(tmp_path)])
        assert result.exit_code == 2
        assert "Validando Plano Didáctico" in result.output

    def test_invalid_json(self, tmp_path):
        source = tmp_path / "broken.json"
        source.write_text("{no es json", encoding="utf-8")
        assert runner.invoke(app, ["export", str(source)]).exit_code == 2

    def test_invalid_utf8_is_not_ready(self, tmp_path):
        source = tmp_path / "latin.json"
        source.write_bytes(b'{"titulo_proyecto": "\xff\xfe"}')
        result = runner.invoke(app, ["export", str(source), "-o", str(tmp_path)])
        assert result.exit_code == 2
        assert "Validando Plano Didáctico" in result.output

    def test_unwritable_output_dir_fails_cleanly(self, tmp_path):
        source = tmp_path / "plan.json"
        source.write_text(json.dumps(make_raw_plan(), ensure_ascii=False), encoding="utf-8")
        blocker = tmp_path / "ocupado"
        blocker.write_text("no soy una carpeta", encoding="utf-8")

        result = runner.invoke(app, ["export", str(source), "-o", str(blocker)])

        assert result.exit_code == 1
        assert not isinstance(result.exception, OSError)
        assert "Error al generar PDF." in result.output


class TestGenerateCommand:
    def test_mock_generation_exports(self, tmp_path):
        result = runner.invoke(app, [
            "generate",
            "--docente", "Ana Ruiz",
            "--escuela", "Primaria Benito Juárez",
            "--grado", "4° Primaria",
            "--sesiones", "4",
            "--contexto", "Mucha basura en el patio.",
            "-f", "docx",
            "-o", str(tmp_path),
            "--save-json",
        ])
        assert result.exit_code == 0, result.output
        (json_path,) = tmp_path.glob("*.json")
        data = json.loads(json_path.read_text(encoding="utf-8"))
        assert data["nombre_docente"] == "Ana Ruiz"
        assert data["fase_nem"] == "Fase 4"
        assert len(list(tmp_path.glob("*.docx"))) == 1

    def test_blank_teacher_blocks(self, tmp_path):
        result = runner.invoke(app, [
            "generate", "--docente", " ", "--escuela", "Escuela", "-o", str(tmp_path),
        ])
        assert result.exit_code == 1
        assert "DATO FALTANTE" in result.output

    def test_live_without_key_fails(self, tmp_path):
        result = runner.invoke(app, [
            "generate", "--docente", "Ana", "--escuela", "Escuela", "--live", "-o", str(tmp_path),
        ])
        assert result.exit_code == 1
        assert "CONFIGURACIÓN REQUERIDA" in result.output
