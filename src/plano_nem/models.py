"""
Data models for the Plano Didáctico NEM generator.

The planning request collected from the teacher is a plain dataclass; the
normalized lesson plan and its parts are frozen Pydantic models so a plan
cannot be mutated once normalizer.normalize_plan() has produced it.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


# ─── Enumerations ────────────────────────────────────────────────────────────

class Methodology(str, Enum):
    """The four socio-critical methodologies of the NEM 2022 plan."""
    PROYECTOS_COMUNITARIOS = "Proyectos Comunitarios"
    STEAM                  = "Aprendizaje Basado en Indagación (STEAM)"
    ABP                    = "Aprendizaje Basado en Problemas (ABP)"
    APRENDIZAJE_SERVICIO   = "Aprendizaje Servicio (AS)"


METODOLOGIAS: list[Methodology] = list(Methodology)


# ─── NEM phase / grade registry ──────────────────────────────────────────────

FASES_NEM: list[dict] = [
    {"id": "Fase 1", "nombre": "Fase 1: Educación Inicial",
     "grados": ["Educación Inicial"]},
    {"id": "Fase 2", "nombre": "Fase 2: Educación Preescolar",
     "grados": ["1° Preescolar", "2° Preescolar", "3° Preescolar"]},
    {"id": "Fase 3", "nombre": "Fase 3: Educación Primaria",
     "grados": ["1° Primaria", "2° Primaria"]},
    {"id": "Fase 4", "nombre": "Fase 4: Educación Primaria",
     "grados": ["3° Primaria", "4° Primaria"]},
    {"id": "Fase 5", "nombre": "Fase 5: Educación Primaria",
     "grados": ["5° Primaria", "6° Primaria"]},
    {"id": "Fase 6", "nombre": "Fase 6: Educación Secundaria",
     "grados": ["1° Secundaria", "2° Secundaria", "3° Secundaria"]},
]

# Flat grade → phase index (one entry per grade)
GRADOS_FLAT: list[dict] = [
    {"grado": grado, "fase_id": fase["id"], "fase_nombre": fase["nombre"]}
    for fase in FASES_NEM
    for grado in fase["grados"]
]


def find_phase_for_grade(grade: str) -> Optional[str]:
    """Return the phase id (e.g. "Fase 6") a grade belongs to, or None."""
    return next((g["fase_id"] for g in GRADOS_FLAT if g["grado"] == grade), None)


MARCO_PEDAGOGICO: dict[Methodology, dict] = {
    Methodology.PROYECTOS_COMUNITARIOS: {
        "enfoque": "Exploración del entorno social y resolución de problemas de la comunidad.",
        "fases": [
            "1. Planeación (Identificación y recuperación)",
            "2. Acción (Acercamiento y producciones)",
            "3. Intervención (Difusión y seguimiento)",
        ],
    },
    Methodology.STEAM: {
        "enfoque": "Ciencia, Tecnología, Ingeniería, Artes y Matemáticas bajo indagación científica.",
        "fases": [
            "1. Introducción al tema",
            "2. Diseño de investigación",
            "3. Respuesta a preguntas",
            "4. Comunicación y aplicación",
            "5. Reflexión sobre el proceso",
        ],
    },
    Methodology.ABP: {
        "enfoque": "Situaciones problema reales para movilizar conocimientos y pensamiento crítico.",
        "fases": [
            "Presentamos",
            "Recolectamos",
            "Formulamos el problema",
            "Organicemos la experiencia",
            "Vivamos la experiencia",
            "Resultados y análisis",
        ],
    },
    Methodology.APRENDIZAJE_SERVICIO: {
        "enfoque": "Aprendizaje combinado con compromiso social y servicio solidario.",
        "fases": [
            "1. Punto de partida",
            "2. Lo que sé y lo que quiero saber",
            "3. Organicemos las actividades",
            "4. Creatividad en marcha",
            "5. Compartimos y evaluamos",
        ],
    },
}


def phase_names_for(methodology: Methodology) -> list[str]:
    """Official phase names for *methodology*, in pedagogical order."""
    return list(MARCO_PEDAGOGICO[Methodology(methodology)]["fases"])


CAMPOS_FORMATIVOS: list[str] = [
    "Lenguajes",
    "Saberes y Pensamiento Científico",
    "Ética, Naturaleza y Sociedades",
    "De lo Humano y lo Comunitario",
]

EJES_ARTICULADORES: list[str] = [
    "Inclusión",
    "Pensamiento crítico",
    "Interculturalidad crítica",
    "Igualdad de género",
    "Vida saludable",
    "Apropiación de las culturas a través de la lectura y la escritura",
    "Artes y experiencias estéticas",
]


# ─── Fallback sentinels ──────────────────────────────────────────────────────

# Substituted by the normalizer for missing scalars so renderers never emit
# an empty cell or an absent-value token.
FALLBACK_TITLE       = "Proyecto sin título"
FALLBACK_TEACHER     = "Docente no especificado"
FALLBACK_SCHOOL      = "Escuela no especificada"
FALLBACK_CODE        = "N/A"
FALLBACK_GRADE       = "Grado no especificado"
FALLBACK_PHASE_NEM   = "Fase no especificada"
FALLBACK_METHODOLOGY = "Metodología no especificada"
FALLBACK_TEXT        = "Sin información registrada"
FALLBACK_SUBJECT     = "Campo Formativo"
FALLBACK_CONTENT     = "Contenido no especificado"
FALLBACK_DESCRIPTION = "Sin descripción"
FALLBACK_SESSION     = "Actividad de Aprendizaje"
FALLBACK_DURATION    = "S/D"
FALLBACK_CRITERION   = "Sin criterio de evaluación"
FALLBACK_AUTHOR      = "Anónimo"
FALLBACK_BOOK_TITLE  = "Sin título"
FALLBACK_YEAR        = "S/F"
FALLBACK_USE         = "Referencia general"


# ─── Generation request ──────────────────────────────────────────────────────

@dataclass
class PlanningRequest:
    """
    Parameters the teacher fills in before generation.
    Identity fields here are authoritative: they overwrite whatever the
    model echoes back.
    """
    nombre_docente:     str
    nombre_escuela:     str
    grado:              str                   # e.g. "1° Secundaria"
    fase:               str                   # e.g. "Fase 6"
    metodologia:        Methodology | str
    num_sesiones:       int = 10
    cct:                str = ""
    zona_escolar:       str = ""
    contexto_adicional: str = ""              # problemática / free-text context
    pdf_bytes:          Optional[bytes] = None
    pdf_name:           str = ""


# ─── Normalized lesson plan ──────────────────────────────────────────────────

class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)


class ContentLink(_Frozen):
    """A curriculum content item and the PDA (learning progressions) it links."""
    asignatura:      str
    contenido:       str
    pda_vinculados:  tuple[str, ...] = ()
    # asignatura holds FALLBACK_SUBJECT when the source gave none
    subject_missing: bool = Field(default=False, exclude=True)


class Session(_Frozen):
    """
    One class session.  ``numero`` is an opaque display label: it is shown
    verbatim and never used for indexing.
    """
    numero:                 str
    titulo:                 str
    duracion:               str
    actividades_inicio:     tuple[str, ...] = ()
    actividades_desarrollo: tuple[str, ...] = ()
    actividades_cierre:     tuple[str, ...] = ()
    recursos:               tuple[str, ...] = ()
    evaluacion_sesion:      str


class Phase(_Frozen):
    nombre:      str
    descripcion: str
    sesiones:    tuple[Session, ...] = ()

    @property
    def has_description(self) -> bool:
        return self.descripcion != FALLBACK_DESCRIPTION


class Evaluation(_Frozen):
    tecnicas:             tuple[str, ...] = ()
    instrumentos:         tuple[str, ...] = ()
    criterios_evaluacion: tuple[str, ...] = ()


class BibliographyEntry(_Frozen):
    autor:  str
    titulo: str
    anio:   str = Field(alias="año")
    uso:    str


class LessonPlan(_Frozen):
    """
    Normalized plan: every sequence is a tuple (possibly empty) and every
    scalar is a non-empty string (possibly a fallback sentinel).
    """
    titulo_proyecto: str
    nombre_docente:  str
    nombre_escuela:  str
    cct:             str
    zona_escolar:    str
    grado:           str
    fase_nem:        str
    metodologia:     str

    campo_formativo:    tuple[str, ...] = ()
    ejes_articuladores: tuple[str, ...] = ()

    proposito:                  str
    diagnostico_socioeducativo: str
    temporalidad_realista:      str

    vinculacion_contenido_pda:  tuple[ContentLink, ...] = ()
    fases_desarrollo:           tuple[Phase, ...] = ()
    evaluacion_formativa:       Evaluation = Field(default_factory=Evaluation)
    bibliografia_especializada: tuple[BibliographyEntry, ...] = ()

    # ── Derived helpers ──────────────────────────────────────────────────────

    def all_sessions(self) -> list[Session]:
        return [s for phase in self.fases_desarrollo for s in phase.sesiones]

    def session_count(self) -> int:
        return len(self.all_sessions())

    def to_json_dict(self) -> dict:
        """Plain dict using the original JSON field names (``año``)."""
        return self.model_dump(mode="json", by_alias=True)
