"""
Tests for the request and plan guardrails.
"""
import pytest

from factories import make_pdf_bytes, make_phase, make_plan, make_request, make_session

from plano_nem.guardrails import (
    MISSING_IDENTITY_MESSAGE,
    GuardrailLevel,
    GuardrailsPipeline,
)


@pytest.fixture
def guards(settings):
    return GuardrailsPipeline(settings)


class TestRequestGuardrails:
    def test_valid_request_passes(self, guards):
        result = guards.check_request(make_request())
        assert result.passed
        assert result.violations == []
        assert "Todas las validaciones" in result.summary()

    @pytest.mark.parametrize("docente,escuela", [("", "Escuela"), ("Ana", "   "), ("", "")])
    def test_g01_identity_blocks(self, guards, docente, escuela):
        result = guards.check_request(make_request(docente=docente, escuela=escuela))
        assert result.blocked
        assert "G-01" in result.codes()
        assert all(v.message == MISSING_IDENTITY_MESSAGE for v in result.violations if v.code == "G-01")

    def test_g02_zero_sessions_blocks(self, guards):
        result = guards.check_request(make_request(sesiones=0))
        assert result.blocked and result.codes() == ["G-02"]

    def test_g02_too_many_sessions_warns(self, guards, settings):
        result = guards.check_request(make_request(sesiones=settings.app.max_sessions + 1))
        assert result.passed
        assert [v.code for v in result.warnings] == ["G-02"]

    def test_g03_unknown_methodology(self, guards):
        result = guards.check_request(make_request(metodologia="Clase magistral"))
        assert result.blocked and "G-03" in result.codes()

    def test_g04_unknown_grade_warns(self, guards):
        result = guards.check_request(make_request(grado="7° Secundaria"))
        assert result.passed and "G-04" in result.codes()

    def test_g04_phase_mismatch(self, guards):
        result = guards.check_request(make_request(grado="3° Primaria", fase="Fase 6"))
        (violation,) = result.violations
        assert violation.code == "G-04" and violation.field == "fase"
        assert violation.level is GuardrailLevel.WARN

    def test_g04_accepts_full_phase_name(self, guards):
        result = guards.check_request(make_request(fase="Fase 6: Educación Secundaria"))
        assert result.violations == []

    def test_g05_not_a_pdf(self, guards):
        result = guards.check_request(make_request(pdf_bytes=b"hola mundo"))
        assert result.blocked and "G-05" in result.codes()

    def test_g05_real_pdf_passes(self, guards):
        assert guards.check_request(make_request(pdf_bytes=make_pdf_bytes())).passed

    def test_g06_long_context_warns(self, guards):
        result = guards.check_request(make_request(contexto="a" * 4_001))
        assert result.passed and [v.code for v in result.warnings] == ["G-06"]


class TestPlanGuardrails:
    def test_complete_plan_is_clean(self, guards, plan):
        assert guards.check_plan(plan, requested=6).violations == []

    def test_minimal_plan_warns_but_never_blocks(self, guards, minimal_plan):
        result = guards.check_plan(minimal_plan, requested=10)
        assert result.passed
        assert {"G-07", "G-08", "G-09"} <= set(result.codes())

    def test_g09_session_mismatch_is_info(self, guards, plan):
        result = guards.check_plan(plan, requested=10)
        (violation,) = result.infos
        assert violation.code == "G-09"
        assert "10" in violation.message and "6" in violation.message

    def test_g10_duplicates(self, guards):
        plan = make_plan(phases=[{"nombre": "F", "sesiones": [make_session(1), make_session(1)]}])
        result = guards.check_plan(plan)
        assert result.codes() == ["G-10"]
        assert "repetidos" in result.violations[0].message

    def test_g10_gap(self, guards):
        plan = make_plan(phases=[{"nombre": "F", "sesiones": [make_session(1), make_session(3)]}])
        assert "consecutivos" in guards.check_plan(plan).violations[0].message

    def test_g10_text_labels_not_checked(self, guards):
        plan = make_plan(phases=[{"nombre": "F", "sesiones": [make_session("1-2"), make_session("3")]}])
        assert guards.check_plan(plan).violations == []

    def test_g11_content_without_pda(self, guards):
        plan = make_plan(links=[{"asignatura": "Lenguajes", "contenido": "Lectura", "pda_vinculados": []}])
        assert "G-11" in guards.check_plan(plan).codes()

    def test_merge(self, guards, plan):
        merged = guards.merge(
            guards.check_request(make_request(sesiones=0)),
            guards.check_plan(plan, requested=10),
        )
        assert merged.blocked
        assert merged.codes() == ["G-02", "G-09"]
