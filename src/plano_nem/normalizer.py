"""
normalizer.py – Schema validator / normalizer for generated lesson plans
=========================================================================
The generation service returns JSON whose shape is only probabilistically
right.  normalize_plan() is the single place where that shape is repaired:

  • input that is not an object, or has no ``titulo_proyecto``, raises
    PlanNotReadyError (the caller shows a "not ready" placeholder);
  • every sequence field that is not a list becomes an empty tuple;
  • every display scalar that is missing, empty, or an absent-value token
    ("undefined", "null", "none") becomes a fallback sentinel.

Everything downstream (grouping, section renderers, exporters) can assume
the strict LessonPlan schema holds.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from plano_nem.models import (
    FALLBACK_AUTHOR,
    FALLBACK_BOOK_TITLE,
    FALLBACK_CODE,
    FALLBACK_CONTENT,
    FALLBACK_CRITERION,
    FALLBACK_DESCRIPTION,
    FALLBACK_DURATION,
    FALLBACK_GRADE,
    FALLBACK_METHODOLOGY,
    FALLBACK_PHASE_NEM,
    FALLBACK_SCHOOL,
    FALLBACK_SESSION,
    FALLBACK_SUBJECT,
    FALLBACK_TEACHER,
    FALLBACK_TEXT,
    FALLBACK_USE,
    FALLBACK_YEAR,
    BibliographyEntry,
    ContentLink,
    Evaluation,
    LessonPlan,
    Phase,
    Session,
)

logger = logging.getLogger(__name__)

# Literal tokens a JS/LLM producer emits for "no value"
_ABSENT_TOKENS = frozenset({"undefined", "null", "none", "nan"})

NOT_READY_MESSAGE = (
    "Validando Plano Didáctico: estamos preparando los datos para su visualización..."
)


class PlanNotReadyError(ValueError):
    """Raised when the input cannot be treated as a lesson plan at all."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason

    @property
    def user_message(self) -> str:
        return NOT_READY_MESSAGE


# ─── Coercion helpers ────────────────────────────────────────────────────────

def _clean(value: Any) -> Optional[str]:
    """Return a stripped display string, or None when the value counts as missing."""
    if value is None or isinstance(value, (dict, list, tuple, set)):
        return None
    if isinstance(value, bool):
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    text = str(value).strip()
    if not text or text.lower() in _ABSENT_TOKENS:
        return None
    return text


def _text(value: Any, fallback: str, repaired: list[str], path: str) -> str:
    text = _clean(value)
    if text is None:
        repaired.append(path)
        return fallback
    return text


def safe_list(value: Any) -> list:
    """The sequence itself when *value* is a list/tuple, otherwise an empty list."""
    return list(value) if isinstance(value, (list, tuple)) else []


def _strings(value: Any, repaired: list[str], path: str) -> tuple[str, ...]:
    """Coerce a string-sequence field: non-sequences → (), missing items dropped."""
    if value is not None and not isinstance(value, (list, tuple)):
        repaired.append(path)
    items = []
    for item in safe_list(value):
        text = _clean(item)
        if text is not None:
            items.append(text)
    return tuple(items)


def _objects(value: Any, repaired: list[str], path: str) -> list[dict]:
    """Coerce an object-sequence field, dropping entries that are not objects."""
    if value is not None and not isinstance(value, (list, tuple)):
        repaired.append(path)
    entries = safe_list(value)
    objects = [e for e in entries if isinstance(e, dict)]
    if len(objects) != len(entries):
        repaired.append(f"{path}[non-object entries dropped]")
    return objects


# ─── Per-record normalizers ──────────────────────────────────────────────────

def _content_link(raw: dict, repaired: list[str], path: str) -> ContentLink:
    return ContentLink(
        asignatura      = _text(raw.get("asignatura"), FALLBACK_SUBJECT, repaired, f"{path}.asignatura"),
        contenido       = _text(raw.get("contenido"), FALLBACK_CONTENT, repaired, f"{path}.contenido"),
        pda_vinculados  = _strings(raw.get("pda_vinculados"), repaired, f"{path}.pda_vinculados"),
        subject_missing = _clean(raw.get("asignatura")) is None,
    )


def _session(raw: dict, position: int, repaired: list[str], path: str) -> Session:
    # numero is display text; when absent, fall back to the position in its phase
    return Session(
        numero                 = _text(raw.get("numero"), str(position), repaired, f"{path}.numero"),
        titulo                 = _text(raw.get("titulo"), FALLBACK_SESSION, repaired, f"{path}.titulo"),
        duracion               = _text(raw.get("duracion"), FALLBACK_DURATION, repaired, f"{path}.duracion"),
        actividades_inicio     = _strings(raw.get("actividades_inicio"), repaired, f"{path}.actividades_inicio"),
        actividades_desarrollo = _strings(raw.get("actividades_desarrollo"), repaired, f"{path}.actividades_desarrollo"),
        actividades_cierre     = _strings(raw.get("actividades_cierre"), repaired, f"{path}.actividades_cierre"),
        recursos               = _strings(raw.get("recursos"), repaired, f"{path}.recursos"),
        evaluacion_sesion      = _text(raw.get("evaluacion_sesion"), FALLBACK_CRITERION, repaired, f"{path}.evaluacion_sesion"),
    )


def _phase(raw: dict, position: int, repaired: list[str], path: str) -> Phase:
    sessions = _objects(raw.get("sesiones"), repaired, f"{path}.sesiones")
    return Phase(
        nombre      = _text(raw.get("nombre"), f"Fase {position}", repaired, f"{path}.nombre"),
        descripcion = _text(raw.get("descripcion"), FALLBACK_DESCRIPTION, repaired, f"{path}.descripcion"),
        sesiones    = tuple(
            _session(s, i, repaired, f"{path}.sesiones[{i - 1}]")
            for i, s in enumerate(sessions, start=1)
        ),
    )


def _evaluation(raw: Any, repaired: list[str]) -> Evaluation:
    if not isinstance(raw, dict):
        repaired.append("evaluacion_formativa")
        return Evaluation()
    return Evaluation(
        tecnicas             = _strings(raw.get("tecnicas"), repaired, "evaluacion_formativa.tecnicas"),
        instrumentos         = _strings(raw.get("instrumentos"), repaired, "evaluacion_formativa.instrumentos"),
        criterios_evaluacion = _strings(raw.get("criterios_evaluacion"), repaired,
                                        "evaluacion_formativa.criterios_evaluacion"),
    )


def _bibliography(raw: dict, repaired: list[str], path: str) -> BibliographyEntry:
    year = raw.get("año", raw.get("anio"))
    return BibliographyEntry(
        autor  = _text(raw.get("autor"), FALLBACK_AUTHOR, repaired, f"{path}.autor"),
        titulo = _text(raw.get("titulo"), FALLBACK_BOOK_TITLE, repaired, f"{path}.titulo"),
        anio   = _text(year, FALLBACK_YEAR, repaired, f"{path}.año"),
        uso    = _text(raw.get("uso"), FALLBACK_USE, repaired, f"{path}.uso"),
    )


# ─── Public interface ────────────────────────────────────────────────────────

def is_plan_ready(raw: Any) -> bool:
    """True when *raw* carries the structural marker (a usable project title)."""
    return isinstance(raw, dict) and _clean(raw.get("titulo_proyecto")) is not None


def normalize_plan(raw: Any) -> LessonPlan:
    """
    Turn an arbitrary decoded JSON value into a fully-resolved LessonPlan.

    Raises:
        PlanNotReadyError – input is not an object or lacks ``titulo_proyecto``.
    """
    if isinstance(raw, LessonPlan):
        return raw
    if not isinstance(raw, dict):
        raise PlanNotReadyError(f"expected a JSON object, got {type(raw).__name__}")
    if not is_plan_ready(raw):
        raise PlanNotReadyError("missing titulo_proyecto")

    repaired: list[str] = []

    links  = _objects(raw.get("vinculacion_contenido_pda"), repaired, "vinculacion_contenido_pda")
    phases = _objects(raw.get("fases_desarrollo"), repaired, "fases_desarrollo")
    biblio = _objects(raw.get("bibliografia_especializada"), repaired, "bibliografia_especializada")

    plan = LessonPlan(
        titulo_proyecto = _clean(raw.get("titulo_proyecto")),
        nombre_docente  = _text(raw.get("nombre_docente"), FALLBACK_TEACHER, repaired, "nombre_docente"),
        nombre_escuela  = _text(raw.get("nombre_escuela"), FALLBACK_SCHOOL, repaired, "nombre_escuela"),
        cct             = _text(raw.get("cct"), FALLBACK_CODE, repaired, "cct"),
        zona_escolar    = _text(raw.get("zona_escolar"), FALLBACK_CODE, repaired, "zona_escolar"),
        grado           = _text(raw.get("grado"), FALLBACK_GRADE, repaired, "grado"),
        fase_nem        = _text(raw.get("fase_nem"), FALLBACK_PHASE_NEM, repaired, "fase_nem"),
        metodologia     = _text(raw.get("metodologia"), FALLBACK_METHODOLOGY, repaired, "metodologia"),

        campo_formativo    = _strings(raw.get("campo_formativo"), repaired, "campo_formativo"),
        ejes_articuladores = _strings(raw.get("ejes_articuladores"), repaired, "ejes_articuladores"),

        proposito                  = _text(raw.get("proposito"), FALLBACK_TEXT, repaired, "proposito"),
        diagnostico_socioeducativo = _text(raw.get("diagnostico_socioeducativo"), FALLBACK_TEXT,
                                           repaired, "diagnostico_socioeducativo"),
        temporalidad_realista      = _text(raw.get("temporalidad_realista"), FALLBACK_TEXT,
                                           repaired, "temporalidad_realista"),

        vinculacion_contenido_pda = tuple(
            _content_link(link, repaired, f"vinculacion_contenido_pda[{i}]")
            for i, link in enumerate(links)
        ),
        fases_desarrollo = tuple(
            _phase(phase, i, repaired, f"fases_desarrollo[{i - 1}]")
            for i, phase in enumerate(phases, start=1)
        ),
        evaluacion_formativa = _evaluation(raw.get("evaluacion_formativa"), repaired),
        bibliografia_especializada = tuple(
            _bibliography(entry, repaired, f"bibliografia_especializada[{i}]")
            for i, entry in enumerate(biblio)
        ),
    )

    for path in repaired:
        logger.debug("Repaired field %s", path)
    logger.info(
        "Normalized plan %r: %d phases, %d sessions, %d curriculum links, %d repaired fields",
        plan.titulo_proyecto, len(plan.fases_desarrollo), plan.session_count(),
        len(plan.vinculacion_contenido_pda), len(repaired),
    )
    return plan
