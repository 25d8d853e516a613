"""
guardrails.py – Request and plan guardrails
============================================
Checks that wrap the two transitions of the pipeline: the planning request
before it is sent for generation, and the normalized plan before export.

Guardrail levels
----------------
BLOCK   – Hard-stop: generation does not proceed.
WARN    – Soft-stop: the pipeline proceeds with a visible warning.
INFO    – Advisory: informational note shown next to the plan summary.

Guards implemented
------------------
Request guards (before generation):
  G-01  Teacher name and school name are required
  G-02  Session count ≥ 1 (BLOCK) and ≤ MAX_SESSIONS (WARN)
  G-03  Methodology is one of the four recognised methodologies
  G-04  Grade is known and belongs to the selected NEM phase
  G-05  Attachment is a PDF within MAX_ATTACHMENT_MB
  G-06  Free-text context is not excessively long (>4 000 chars)

Plan guards (after normalization; never BLOCK, degraded output is exported):
  G-07  Plan has at least one phase
  G-08  Plan has at least one curriculum link
  G-09  Generated session count matches the requested one
  G-10  Session labels (numero) are unique and consecutive
  G-11  Every content item links at least one PDA
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from plano_nem.attachments import looks_like_pdf
from plano_nem.config import Settings, get_settings
from plano_nem.models import LessonPlan, Methodology, PlanningRequest, find_phase_for_grade

MAX_CONTEXT_CHARS = 4_000
MISSING_IDENTITY_MESSAGE = "DATO FALTANTE: El nombre del docente y de la escuela son obligatorios."


# ─── Enums & data models ─────────────────────────────────────────────────────

class GuardrailLevel(str, Enum):
    BLOCK = "BLOCK"
    WARN  = "WARN"
    INFO  = "INFO"


@dataclass
class GuardrailViolation:
    code:    str
    level:   GuardrailLevel
    message: str
    field:   str = ""   # which field triggered the violation


@dataclass
class GuardrailResult:
    passed:     bool
    violations: list[GuardrailViolation] = field(default_factory=list)

    @property
    def blocked(self) -> bool:
        return any(v.level == GuardrailLevel.BLOCK for v in self.violations)

    @property
    def warnings(self) -> list[GuardrailViolation]:
        return [v for v in self.violations if v.level == GuardrailLevel.WARN]

    @property
    def infos(self) -> list[GuardrailViolation]:
        return [v for v in self.violations if v.level == GuardrailLevel.INFO]

    def codes(self) -> list[str]:
        return [v.code for v in self.violations]

    def summary(self) -> str:
        if not self.violations:
            return "✅ Todas las validaciones pasaron."
        icons = {GuardrailLevel.BLOCK: "🚫", GuardrailLevel.WARN: "⚠️", GuardrailLevel.INFO: "ℹ️"}
        return "\n".join(f"{icons[v.level]} [{v.code}] {v.message}" for v in self.violations)


def _result(violations: list[GuardrailViolation]) -> GuardrailResult:
    return GuardrailResult(
        passed=not any(v.level == GuardrailLevel.BLOCK for v in violations),
        violations=violations,
    )


# ─── Request guards ──────────────────────────────────────────────────────────

class RequestGuardrails:
    """G-01 – G-06: Validates a PlanningRequest before generation."""

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self._settings = settings or get_settings()

    def check(self, request: PlanningRequest) -> GuardrailResult:
        app = self._settings.app
        violations: list[GuardrailViolation] = []

        # G-01 Identity fields
        for name in ("nombre_docente", "nombre_escuela"):
            if not (getattr(request, name) or "").strip():
                violations.append(GuardrailViolation(
                    code="G-01", level=GuardrailLevel.BLOCK, field=name,
                    message=MISSING_IDENTITY_MESSAGE,
                ))

        # G-02 Session count
        if request.num_sesiones < 1:
            violations.append(GuardrailViolation(
                code="G-02", level=GuardrailLevel.BLOCK, field="num_sesiones",
                message="El número de sesiones debe ser al menos 1.",
            ))
        elif request.num_sesiones > app.max_sessions:
            violations.append(GuardrailViolation(
                code="G-02", level=GuardrailLevel.WARN, field="num_sesiones",
                message=(
                    f"{request.num_sesiones} sesiones supera el máximo recomendado "
                    f"({app.max_sessions}). La respuesta puede quedar incompleta."
                ),
            ))

        # G-03 Methodology
        try:
            Methodology(request.metodologia)
        except ValueError:
            violations.append(GuardrailViolation(
                code="G-03", level=GuardrailLevel.BLOCK, field="metodologia",
                message=f"Metodología no reconocida: '{request.metodologia}'.",
            ))

        # G-04 Grade ↔ phase consistency
        expected = find_phase_for_grade(request.grado)
        if expected is None:
            violations.append(GuardrailViolation(
                code="G-04", level=GuardrailLevel.WARN, field="grado",
                message=f"Grado '{request.grado}' no está en el catálogo NEM.",
            ))
        elif request.fase.split(":")[0].strip() != expected:
            violations.append(GuardrailViolation(
                code="G-04", level=GuardrailLevel.WARN, field="fase",
                message=f"'{request.grado}' corresponde a {expected}, no a '{request.fase}'.",
            ))

        # G-05 Attachment
        if request.pdf_bytes is not None:
            limit = app.max_attachment_mb * 1024 * 1024
            if not looks_like_pdf(request.pdf_bytes):
                violations.append(GuardrailViolation(
                    code="G-05", level=GuardrailLevel.BLOCK, field="pdf_bytes",
                    message=f"El archivo adjunto '{request.pdf_name or 'sin nombre'}' no es un PDF.",
                ))
            elif len(request.pdf_bytes) > limit:
                violations.append(GuardrailViolation(
                    code="G-05", level=GuardrailLevel.BLOCK, field="pdf_bytes",
                    message=f"El PDF adjunto supera el límite de {app.max_attachment_mb:g} MB.",
                ))

        # G-06 Context length
        if len(request.contexto_adicional or "") > MAX_CONTEXT_CHARS:
            violations.append(GuardrailViolation(
                code="G-06", level=GuardrailLevel.WARN, field="contexto_adicional",
                message=(
                    f"El contexto tiene {len(request.contexto_adicional)} caracteres; "
                    f"se recomienda no exceder {MAX_CONTEXT_CHARS}."
                ),
            ))

        return _result(violations)


# ─── Plan guards ─────────────────────────────────────────────────────────────

def _consecutive(labels: list[str]) -> bool:
    if not all(label.isdigit() for label in labels):
        return True
    numbers = [int(label) for label in labels]
    return all(b == a + 1 for a, b in zip(numbers, numbers[1:]))


class PlanGuardrails:
    """G-07 – G-11: Reviews a normalized LessonPlan before export."""

    def check(self, plan: LessonPlan, requested_sessions: Optional[int] = None) -> GuardrailResult:
        violations: list[GuardrailViolation] = []

        # G-07 Phases
        if not plan.fases_desarrollo:
            violations.append(GuardrailViolation(
                code="G-07", level=GuardrailLevel.WARN, field="fases_desarrollo",
                message="El plan no contiene fases de desarrollo.",
            ))

        # G-08 Curriculum links
        if not plan.vinculacion_contenido_pda:
            violations.append(GuardrailViolation(
                code="G-08", level=GuardrailLevel.WARN, field="vinculacion_contenido_pda",
                message="El plan no contiene vinculación de contenidos y PDA.",
            ))

        # G-09 Session count vs request
        count = plan.session_count()
        if requested_sessions is not None and count != requested_sessions:
            violations.append(GuardrailViolation(
                code="G-09", level=GuardrailLevel.INFO, field="fases_desarrollo",
                message=f"Se solicitaron {requested_sessions} sesiones y el plan contiene {count}.",
            ))

        # G-10 Session labels (shown verbatim, never re-sequenced)
        labels = [s.numero for s in plan.all_sessions()]
        duplicates = sorted(label for label, n in Counter(labels).items() if n > 1)
        if duplicates:
            violations.append(GuardrailViolation(
                code="G-10", level=GuardrailLevel.INFO, field="numero",
                message=f"Números de sesión repetidos: {', '.join(duplicates)}.",
            ))
        elif not _consecutive(labels):
            violations.append(GuardrailViolation(
                code="G-10", level=GuardrailLevel.INFO, field="numero",
                message="Los números de sesión no son consecutivos.",
            ))

        # G-11 Content without PDA
        orphans = [link.contenido for link in plan.vinculacion_contenido_pda if not link.pda_vinculados]
        if orphans:
            violations.append(GuardrailViolation(
                code="G-11", level=GuardrailLevel.INFO, field="pda_vinculados",
                message=f"{len(orphans)} contenido(s) sin PDA vinculados.",
            ))

        return _result(violations)


# ─── Pipeline ────────────────────────────────────────────────────────────────

class GuardrailsPipeline:
    """
    Single entry-point for both checkpoints.

    Usage::

        gp = GuardrailsPipeline()
        result = gp.check_request(planning_request)      # before generation
        result = gp.check_plan(lesson_plan, requested=10) # before export
    """

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self.request_guard = RequestGuardrails(settings)
        self.plan_guard    = PlanGuardrails()

    def check_request(self, request: PlanningRequest) -> GuardrailResult:
        return self.request_guard.check(request)

    def check_plan(self, plan: LessonPlan, requested: Optional[int] = None) -> GuardrailResult:
        return self.plan_guard.check(plan, requested)

    def merge(self, *results: GuardrailResult) -> GuardrailResult:
        """Merge multiple GuardrailResult objects into one."""
        all_v = []
        for r in results:
            all_v.extend(r.violations)
        return _result(all_v)
