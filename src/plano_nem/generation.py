"""
generation.py – Lesson plan generation with Gemini
===================================================
LessonPlanGenerator turns a PlanningRequest into a raw JSON plan (and,
via normalize_plan, into a LessonPlan).

Two modes, chosen automatically:
  live  Gemini through its OpenAI-compatible endpoint, using the openai SDK
        in JSON mode (a pre-built client can be injected).
  mock  MockPlanGenerator, when no real key is set or FORCE_MOCK_MODE=true.

Failures are classified into GenerationError kinds, each with its own
Spanish message for the teacher.  Nothing is retried here: the caller
decides whether to try again.
"""

from __future__ import annotations

import json
import logging
import textwrap
from enum import Enum
from typing import Any, Optional

import openai
from openai import OpenAI

from plano_nem.attachments import extract_pdf_text
from plano_nem.config import Settings, get_settings
from plano_nem.mock_generator import MockPlanGenerator
from plano_nem.models import LessonPlan, Methodology, PlanningRequest, phase_names_for
from plano_nem.normalizer import normalize_plan

logger = logging.getLogger(__name__)

IDENTITY_FIELDS = ("nombre_docente", "nombre_escuela", "cct", "zona_escolar")


# ─── Errors ──────────────────────────────────────────────────────────────────

class GenerationErrorKind(str, Enum):
    NOT_CONFIGURED     = "not_configured"
    INVALID_CREDENTIAL = "invalid_credential"
    QUOTA_EXCEEDED     = "quota_exceeded"
    UNSUPPORTED_REGION = "unsupported_region"
    MALFORMED_RESPONSE = "malformed_response"
    TRANSPORT          = "transport"


_USER_MESSAGES: dict[GenerationErrorKind, str] = {
    GenerationErrorKind.NOT_CONFIGURED:
        "CONFIGURACIÓN REQUERIDA: No se detectó una API_KEY válida. "
        "Define GEMINI_API_KEY en tu archivo .env.",
    GenerationErrorKind.INVALID_CREDENTIAL:
        "CREDENCIAL INVÁLIDA: El servicio rechazó la API_KEY. Verifica que esté vigente.",
    GenerationErrorKind.QUOTA_EXCEEDED:
        "CUOTA EXCEDIDA: Se alcanzó el límite de solicitudes. Intenta de nuevo en unos minutos.",
    GenerationErrorKind.UNSUPPORTED_REGION:
        "REGIÓN NO DISPONIBLE: El servicio de IA no está disponible en la ubicación del servidor.",
    GenerationErrorKind.MALFORMED_RESPONSE:
        "La IA no generó un formato compatible. Intenta generar nuevamente.",
    GenerationErrorKind.TRANSPORT:
        "ERROR DE CONEXIÓN: No fue posible comunicarse con el servicio de generación.",
}


class GenerationError(RuntimeError):
    """Classified failure of the generation service."""

    def __init__(self, kind: GenerationErrorKind, detail: str = "") -> None:
        super().__init__(f"{kind.value}: {detail}" if detail else kind.value)
        self.kind   = kind
        self.detail = detail

    @property
    def user_message(self) -> str:
        return _USER_MESSAGES[self.kind]


def classify_exception(exc: BaseException) -> GenerationError:
    """Map an SDK / parsing exception onto a GenerationError kind."""
    if isinstance(exc, GenerationError):
        return exc

    detail    = str(exc)[:200]
    low       = detail.lower()
    mentions_region = "location" in low or "region" in low

    if isinstance(exc, json.JSONDecodeError):
        kind = GenerationErrorKind.MALFORMED_RESPONSE
    elif isinstance(exc, openai.RateLimitError) or "resource_exhausted" in low or "quota" in low:
        kind = GenerationErrorKind.QUOTA_EXCEEDED
    elif isinstance(exc, (openai.AuthenticationError, openai.PermissionDeniedError)):
        kind = (GenerationErrorKind.UNSUPPORTED_REGION if mentions_region
                else GenerationErrorKind.INVALID_CREDENTIAL)
    elif isinstance(exc, openai.BadRequestError) and "api key not valid" in low:
        kind = GenerationErrorKind.INVALID_CREDENTIAL
    elif isinstance(exc, openai.BadRequestError) and "location is not supported" in low:
        kind = GenerationErrorKind.UNSUPPORTED_REGION
    else:
        # connection errors, timeouts and any other API failure
        kind = GenerationErrorKind.TRANSPORT
    return GenerationError(kind, detail)


# ─── Prompt ──────────────────────────────────────────────────────────────────

_SYSTEM_PROMPT = textwrap.dedent("""\
    Eres un Doctor en Pedagogía y Especialista de alto nivel en el Plan de Estudio 2022
    de la Nueva Escuela Mexicana (NEM).
    Tu tarea es diseñar un "Plano Didáctico" de excelencia con un enfoque INTEGRAL e
    INTERDISCIPLINARIO.

    REQUISITO CRÍTICO CURRICULAR: Debes realizar un mapeo exhaustivo de los Programas
    Sintéticos de la SEP para la {fase} y el grado {grado}.
    Busca la máxima vinculación posible: selecciona TODOS los contenidos y sus respectivos
    PDA que tengan una relación lógica, directa o transversal con la problemática o
    contexto proporcionado.

    No inventes los contenidos ni los PDA; deben ser los oficiales.
    Responde EXCLUSIVAMENTE con el objeto JSON solicitado.
""")

_USER_PROMPT = textwrap.dedent("""\
    Genera una planeación didáctica profesional con los siguientes datos:
    - Grado: {grado}
    - Fase: {fase}
    - Metodología: {metodologia}
    - Número de Sesiones: {num_sesiones}
    - Problemática/Contexto: {contexto}
    - Escuela: {escuela}
    - Docente: {docente}

    INSTRUCCIONES PARA VINCULACIÓN CURRICULAR MAXIMIZADA:
    En la propiedad "vinculacion_contenido_pda", incluye la MAYOR CANTIDAD de contenidos y
    PDA de los diferentes campos formativos que puedan abordarse con la problemática.
    Cada par contenido-PDA debe contribuir directamente a la resolución o análisis de la
    situación problema. Organiza "fases_desarrollo" con las fases oficiales de la
    metodología, en orden, y numera las sesiones de 1 a {num_sesiones}.

    ESTRUCTURA JSON OBLIGATORIA:
""")

_ATTACHMENT_BLOCK = "\n\nMATERIAL DE REFERENCIA (extraído del PDF adjunto «{name}»):\n{text}\n"


def _methodology_label(value: Any) -> str:
    return value.value if isinstance(value, Methodology) else str(value)


def _structure_template(request: PlanningRequest) -> dict:
    try:
        phases = phase_names_for(request.metodologia)
    except ValueError:
        phases = ["Nombre de la fase"]
    session = {
        "numero": 1,
        "titulo": "Título de sesión",
        "duracion": "50-60 min",
        "actividades_inicio": ["..."],
        "actividades_desarrollo": ["..."],
        "actividades_cierre": ["..."],
        "recursos": ["..."],
        "evaluacion_sesion": "Criterio",
    }
    return {
        "titulo_proyecto": "Título creativo y pedagógico",
        "nombre_docente": request.nombre_docente,
        "nombre_escuela": request.nombre_escuela,
        "cct": request.cct,
        "zona_escolar": request.zona_escolar,
        "grado": request.grado,
        "fase_nem": request.fase,
        "metodologia": _methodology_label(request.metodologia),
        "campo_formativo": ["Lista de todos los campos involucrados"],
        "ejes_articuladores": ["Lista de todos los ejes que se movilizan"],
        "proposito": "Propósito general del proyecto de acuerdo a la NEM",
        "diagnostico_socioeducativo": "Análisis profundo basado en el contexto",
        "temporalidad_realista": f"Ej. 2 semanas / {request.num_sesiones} sesiones",
        "vinculacion_contenido_pda": [{
            "asignatura": "Nombre del Campo Formativo o Disciplina",
            "contenido": "Nombre completo del contenido del programa sintético",
            "pda_vinculados": ["PDA 1 oficial", "PDA 2 oficial", "... todos los que apliquen"],
        }],
        "fases_desarrollo": [
            {"nombre": name, "descripcion": "Enfoque", "sesiones": [session]} for name in phases
        ],
        "evaluacion_formativa": {
            "tecnicas": ["..."], "instrumentos": ["..."], "criterios_evaluacion": ["..."],
        },
        "bibliografia_especializada": [
            {"autor": "...", "titulo": "...", "año": "...", "uso": "..."},
        ],
    }


def build_prompt(request: PlanningRequest, attachment_text: str = "") -> tuple[str, str]:
    """Return (system instruction, user prompt) for one planning request."""
    system = _SYSTEM_PROMPT.format(fase=request.fase, grado=request.grado)
    user = _USER_PROMPT.format(
        grado        = request.grado,
        fase         = request.fase,
        metodologia  = _methodology_label(request.metodologia),
        num_sesiones = request.num_sesiones,
        contexto     = request.contexto_adicional.strip() or "General",
        escuela      = request.nombre_escuela,
        docente      = request.nombre_docente,
    )
    user += json.dumps(_structure_template(request), ensure_ascii=False, indent=2)
    if attachment_text:
        user += _ATTACHMENT_BLOCK.format(name=request.pdf_name or "documento.pdf", text=attachment_text)
    return system, user


# ─── Response handling ───────────────────────────────────────────────────────

def extract_json_object(text: Optional[str]) -> dict:
    """
    Parse the span from the first ``{`` to the last ``}``.

    Raises:
        GenerationError(MALFORMED_RESPONSE) – no braces, invalid JSON, or not an object.
    """
    text  = text or ""
    first = text.find("{")
    last  = text.rfind("}")
    if first == -1 or last < first:
        raise GenerationError(GenerationErrorKind.MALFORMED_RESPONSE, "no JSON object in response")
    try:
        value = json.loads(text[first:last + 1])
    except json.JSONDecodeError as exc:
        raise GenerationError(GenerationErrorKind.MALFORMED_RESPONSE, str(exc)) from exc
    if not isinstance(value, dict):
        raise GenerationError(GenerationErrorKind.MALFORMED_RESPONSE,
                              f"expected an object, got {type(value).__name__}")
    return value


def overlay_identity(data: dict, request: PlanningRequest) -> dict:
    """The form is authoritative for identity fields, whatever the model echoed."""
    for field_name in IDENTITY_FIELDS:
        data[field_name] = getattr(request, field_name)
    return data


# ─── Generator ───────────────────────────────────────────────────────────────

class LessonPlanGenerator:
    """
    Generates lesson plans from planning requests.

    Args:
        settings:   configuration; read from the environment when omitted.
        client:     pre-built OpenAI-compatible client (forces live mode).
        allow_mock: when False, a missing credential raises NOT_CONFIGURED
                    instead of falling back to the offline generator.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        client: Any = None,
        allow_mock: bool = True,
    ) -> None:
        self._settings   = settings or get_settings()
        self._cfg        = self._settings.gemini
        self._client     = client
        self._allow_mock = allow_mock
        self._mock       = MockPlanGenerator()

    @property
    def mode(self) -> str:
        if self._client is not None or self._settings.live_mode:
            return "live"
        return "mock"

    def _get_client(self):
        if self._client is None:
            if not self._cfg.is_configured:
                raise GenerationError(GenerationErrorKind.NOT_CONFIGURED)
            self._client = OpenAI(
                api_key=self._cfg.api_key,
                base_url=self._cfg.base_url,
                timeout=self._cfg.timeout_s,
            )
        return self._client

    def _call_live(self, request: PlanningRequest, attachment_text: str) -> dict:
        system, user = build_prompt(request, attachment_text)
        try:
            response = self._get_client().chat.completions.create(
                model=self._cfg.model,
                response_format={"type": "json_object"},
                messages=[
                    {"role": "system", "content": system},
                    {"role": "user",   "content": user},
                ],
                temperature=self._cfg.temperature,
            )
            content = response.choices[0].message.content
        except Exception as exc:
            error = classify_exception(exc)
            logger.warning("Generation failed (%s): %s", error.kind.value, error.detail)
            raise error from exc

        try:
            return extract_json_object(content)
        except GenerationError as exc:
            logger.warning("Generation failed (%s): %s", exc.kind.value, exc.detail)
            raise

    def generate_raw(self, request: PlanningRequest) -> dict:
        """
        Return the raw JSON plan (identity fields overlaid from the request).

        Raises:
            GenerationError – classified service / response failure.
            AttachmentError – the attached PDF cannot be read.
        """
        if self.mode == "mock" and not self._allow_mock:
            raise GenerationError(GenerationErrorKind.NOT_CONFIGURED)

        attachment_text = extract_pdf_text(request.pdf_bytes) if request.pdf_bytes else ""

        if self.mode == "live":
            logger.info("Generating plan with %s (live)", self._cfg.model)
            data = self._call_live(request, attachment_text)
        else:
            logger.info("Generating plan in mock mode")
            data = self._mock.generate(request)
        return overlay_identity(data, request)

    def generate(self, request: PlanningRequest) -> LessonPlan:
        """generate_raw() + normalize_plan(); PlanNotReadyError propagates."""
        return normalize_plan(self.generate_raw(request))
