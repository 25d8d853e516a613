"""
mock_generator.py – Rule-based lesson plan generator (no Gemini key needed).

Builds the same JSON shape the live model returns so the whole pipeline
(normalize → render → export) runs offline and in tests.

Logic covers:
  • Context keywords → ejes articuladores
  • Methodology → official phase names (MARCO_PEDAGOGICO)
  • Session count → distributed over the phases, numbered 1..N
  • One curriculum link per campo formativo, two PDA each
"""

from __future__ import annotations

import re

from plano_nem.models import (
    CAMPOS_FORMATIVOS,
    EJES_ARTICULADORES,
    MARCO_PEDAGOGICO,
    Methodology,
    PlanningRequest,
)

# ── Keyword sets ──────────────────────────────────────────────────────────────

_CONTEXT_EJE_MAP: list[tuple[re.Pattern, str]] = [
    (re.compile(r"discapacidad|inclusi|acoso|bullying|convivencia|violencia", re.I), "Inclusión"),
    (re.compile(r"ind[ií]gena|lengua materna|tradici|cultura|migra", re.I),        "Interculturalidad crítica"),
    (re.compile(r"g[eé]nero|igualdad|mujeres|estereotipo", re.I),                   "Igualdad de género"),
    (re.compile(r"salud|aliment|higiene|ejercicio|agua|basura|contamina", re.I),    "Vida saludable"),
    (re.compile(r"lectura|escritura|leer|escribir|biblioteca", re.I),
     "Apropiación de las culturas a través de la lectura y la escritura"),
    (re.compile(r"arte|m[uú]sica|danza|teatro|pintura", re.I),                      "Artes y experiencias estéticas"),
]

_CONTENIDOS: dict[str, str] = {
    "Lenguajes":
        "Comprensión y producción de textos expositivos para difundir información de la comunidad",
    "Saberes y Pensamiento Científico":
        "Indagación de fenómenos del entorno y registro sistemático de datos",
    "Ética, Naturaleza y Sociedades":
        "Participación ciudadana en la atención de problemáticas comunitarias",
    "De lo Humano y lo Comunitario":
        "Construcción de acuerdos y trabajo colaborativo para el bien común",
}

_DEFAULT_TOPIC = "nuestra comunidad"


# ── Helpers ───────────────────────────────────────────────────────────────────

def _topic(context: str, limit: int = 60) -> str:
    """First sentence of the context, cut at a word boundary."""
    first = re.split(r"[.\n!?]", context.strip(), maxsplit=1)[0].strip()
    if not first:
        return _DEFAULT_TOPIC
    if len(first) <= limit:
        return first
    return first[:limit].rsplit(" ", 1)[0]


def _ejes(context: str) -> list[str]:
    found = {eje for pattern, eje in _CONTEXT_EJE_MAP if pattern.search(context)}
    found.add("Pensamiento crítico")
    return [eje for eje in EJES_ARTICULADORES if eje in found]


def _methodology(value) -> Methodology:
    try:
        return Methodology(value)
    except ValueError:
        return Methodology.PROYECTOS_COMUNITARIOS


def distribute_sessions(total: int, phases: int) -> list[int]:
    """Split *total* sessions over *phases* by largest remainder; earlier phases get the extras."""
    if phases <= 0:
        return []
    total = max(total, 0)
    base, extra = divmod(total, phases)
    return [base + (1 if i < extra else 0) for i in range(phases)]


def _session(numero: int, phase_name: str, position: int, topic: str) -> dict:
    stage = phase_name.split(".", 1)[-1].strip() or phase_name
    return {
        "numero": numero,
        "titulo": f"{stage}: sesión {position}",
        "duracion": "50 min",
        "actividades_inicio": [
            f"Recuperación de saberes previos sobre {topic}.",
            "Planteamiento de la pregunta detonadora de la sesión.",
        ],
        "actividades_desarrollo": [
            f"Trabajo en equipos vinculado a la etapa «{stage}».",
            "Registro de hallazgos en el cuaderno de evidencias.",
            "Socialización guiada por el docente.",
        ],
        "actividades_cierre": [
            "Reflexión grupal sobre lo aprendido.",
            "Acuerdos para la siguiente sesión.",
        ],
        "recursos": ["Libros de texto gratuitos", "Cuaderno de evidencias", "Papel bond y marcadores"],
        "evaluacion_sesion": "Participación y pertinencia de las evidencias del equipo.",
    }


# ── Public interface ──────────────────────────────────────────────────────────

class MockPlanGenerator:
    """Deterministic stand-in for the live model: same request → same plan."""

    def generate(self, request: PlanningRequest) -> dict:
        methodology = _methodology(request.metodologia)
        frame       = MARCO_PEDAGOGICO[methodology]
        context     = request.contexto_adicional or ""
        topic       = _topic(context)
        total       = max(int(request.num_sesiones), 0)

        phases, numero = [], 0
        for name, count in zip(frame["fases"], distribute_sessions(total, len(frame["fases"]))):
            sessions = []
            for position in range(1, count + 1):
                numero += 1
                sessions.append(_session(numero, name, position, topic))
            phases.append({"nombre": name, "descripcion": frame["enfoque"], "sesiones": sessions})

        return {
            "titulo_proyecto": f"Transformando {topic}",
            "nombre_docente": request.nombre_docente,
            "nombre_escuela": request.nombre_escuela,
            "cct": request.cct,
            "zona_escolar": request.zona_escolar,
            "grado": request.grado,
            "fase_nem": request.fase,
            "metodologia": methodology.value,
            "campo_formativo": list(CAMPOS_FORMATIVOS),
            "ejes_articuladores": _ejes(context),
            "proposito": (
                f"Que las y los estudiantes de {request.grado} analicen {topic} y propongan "
                "acciones viables para su comunidad escolar."
            ),
            "diagnostico_socioeducativo": (
                context.strip()
                or "El grupo muestra interés por su entorno y requiere fortalecer el trabajo colaborativo."
            ),
            "temporalidad_realista": f"{total} sesiones de 50 minutos",
            "vinculacion_contenido_pda": [
                {
                    "asignatura": campo,
                    "contenido": _CONTENIDOS[campo],
                    "pda_vinculados": [
                        f"Identifica información relevante sobre {topic}.",
                        "Comunica sus hallazgos de manera clara y respetuosa.",
                    ],
                }
                for campo in CAMPOS_FORMATIVOS
            ],
            "fases_desarrollo": phases,
            "evaluacion_formativa": {
                "tecnicas": ["Observación", "Análisis del desempeño"],
                "instrumentos": ["Lista de cotejo", "Rúbrica", "Diario de clase"],
                "criterios_evaluacion": [
                    "Argumenta sus propuestas con información verificable.",
                    "Colabora de manera respetuosa con sus pares.",
                ],
            },
            "bibliografia_especializada": [
                {"autor": "SEP", "titulo": "Plan de Estudio para la educación preescolar, primaria y secundaria",
                 "año": "2022", "uso": "Marco curricular de referencia"},
                {"autor": "SEP", "titulo": f"Programa Sintético de la {request.fase}",
                 "año": "2023", "uso": "Selección de contenidos y PDA"},
            ],
        }
