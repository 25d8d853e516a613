"""
sections.py – Section renderers for the Plano Didáctico document
================================================================
Each ``render_*`` function maps one sub-tree of a normalized LessonPlan to
an ordered list of layout primitives (see layout.py).  Renderers are pure:
they never touch the page cursor and never raise on missing data, because
every optional value was already resolved by normalizer.normalize_plan().

Document order
--------------
  1. header        identity banner (school, codes, teacher, grade, title)
  2. diagnostic    I.   Fundamentación y contexto
  3. curriculum    II.  Malla curricular vinculada (one table per subject)
  4. sequence      III. Plano didáctico – phases and sessions (new page)
  5. evaluation    IV.  Evaluación formativa
  6. bibliography  V.   Bibliografía especializada (omitted when empty)
"""

from __future__ import annotations

from typing import Optional, Sequence

from plano_nem.grouping import group_by_subject, subject_title
from plano_nem.layout import (
    Cell,
    PageBreak,
    Primitive,
    Row,
    Section,
    Table,
    TextRun,
    Theme,
    band,
    get_theme,
    heading,
)
from plano_nem.models import LessonPlan, Phase, Session

EMPTY_MARK    = "—"
EMPTY_SECTION = "Sin registros."
NO_PDA        = "Sin PDA vinculados"
NO_SESSIONS   = "Sin sesiones registradas."

SECTION_ORDER = ("header", "diagnostic", "curriculum", "sequence", "evaluation", "bibliography")


def _require_plan(plan: object) -> LessonPlan:
    if not isinstance(plan, LessonPlan):
        raise TypeError(
            f"section renderers take a normalized LessonPlan, got {type(plan).__name__}"
        )
    return plan


def _theme(theme: Optional[Theme]) -> Theme:
    return theme or get_theme()


def _bullets(items: Sequence[str]) -> str:
    return "\n".join(f"• {item}" for item in items) if items else EMPTY_MARK


def _joined(items: Sequence[str], sep: str) -> str:
    return sep.join(items) if items else EMPTY_MARK


def _empty_note(theme: Theme) -> TextRun:
    return TextRun(text=EMPTY_SECTION, size=theme.body_size, color=theme.muted, space_after=10)


def _key_value(label: str, value: str, theme: Theme) -> Row:
    return Row(cells=(
        Cell(text=label, bold=True, fill=theme.key_fill, color=theme.primary),
        Cell(text=value, fill=theme.light_fill),
    ))


def _column_header(labels: Sequence[str], theme: Theme) -> Row:
    return Row(cells=tuple(
        Cell(text=label, bold=True, align="center", fill=theme.secondary, color=theme.banner_text)
        for label in labels
    ))


# ─── 1. Identity header ──────────────────────────────────────────────────────

def render_header(plan: LessonPlan, theme: Optional[Theme] = None) -> list[Primitive]:
    """Coloured identity banner; the project title wraps inside its own row."""
    plan = _require_plan(plan)
    t = _theme(theme)
    fill, strong, subtle = t.primary, t.banner_text, t.banner_subtle

    rows = (
        band(plan.nombre_escuela.upper(), fill, strong, size=13),
        band(f"C.C.T: {plan.cct}  |  ZONA ESCOLAR: {plan.zona_escolar}", fill, subtle, bold=False, size=8),
        band("SUBSECRETARÍA DE EDUCACIÓN BÁSICA | PLANO DIDÁCTICO (NEM)", fill, subtle, size=7),
        band(f"DOCENTE: {plan.nombre_docente.upper()}", fill, strong, size=9),
        band(f"{plan.grado} | {plan.fase_nem} | METODOLOGÍA: {plan.metodologia.upper()}",
             fill, strong, bold=False, size=8),
        band(f"PROYECTO: {plan.titulo_proyecto.upper()}", fill, strong, size=11, kind="title"),
    )
    return [Table(columns=(1.0,), rows=rows, padding=3, grid=False, banner=True, space_after=14)]


# ─── 2. Diagnostic / purpose ─────────────────────────────────────────────────

def render_diagnostic(plan: LessonPlan, theme: Optional[Theme] = None) -> list[Primitive]:
    plan = _require_plan(plan)
    t = _theme(theme)
    rows = (
        _key_value("DIAGNÓSTICO", plan.diagnostico_socioeducativo, t),
        _key_value("PROPÓSITO", plan.proposito, t),
        _key_value("TEMPORALIDAD", plan.temporalidad_realista, t),
        _key_value("CAMPOS FORMATIVOS", _joined(plan.campo_formativo, " | "), t),
        _key_value("EJES ARTICULADORES", _joined(plan.ejes_articuladores, ", "), t),
    )
    return [
        heading("I. FUNDAMENTACIÓN Y CONTEXTO", t),
        Table(columns=(0.25, 0.75), rows=rows, font_size=t.table_size, padding=t.cell_padding),
    ]


# ─── 3. Curriculum linkage ───────────────────────────────────────────────────

def render_curriculum(plan: LessonPlan, theme: Optional[Theme] = None) -> list[Primitive]:
    """
    One table per subject group.  A content item with several PDA becomes
    several rows; the content cell is only filled on the first of them.
    """
    plan = _require_plan(plan)
    t = _theme(theme)
    out: list[Primitive] = [heading("II. MALLA CURRICULAR VINCULADA", t)]

    groups = group_by_subject(plan.vinculacion_contenido_pda)
    if not groups:
        out.append(_empty_note(t))
        return out

    for subject, links in groups.items():
        rows: list[Row] = []
        for link in links:
            pdas = link.pda_vinculados or (None,)
            for i, pda in enumerate(pdas):
                rows.append(Row(cells=(
                    Cell(text=link.contenido if i == 0 else "", bold=True, fill=t.key_fill),
                    Cell(text=f"• {pda}" if pda else NO_PDA, color=None if pda else t.muted),
                )))
        out.append(Table(
            columns=(0.35, 0.65),
            header=band(subject_title(subject).upper(), t.secondary, t.banner_text),
            rows=tuple(rows),
            font_size=t.table_size,
            padding=t.cell_padding,
        ))
    return out


# ─── 4. Phase / session sequence ─────────────────────────────────────────────

def session_detail(session: Session) -> str:
    """Right-hand cell of a session row: title, the three clusters, resources, evaluation."""
    return "\n".join([
        f"TÍTULO: {session.titulo}",
        "",
        "INICIO:",
        _bullets(session.actividades_inicio),
        "",
        "DESARROLLO:",
        _bullets(session.actividades_desarrollo),
        "",
        "CIERRE:",
        _bullets(session.actividades_cierre),
        "",
        f"RECURSOS: {_joined(session.recursos, ', ')}",
        f"EVALUACIÓN: {session.evaluacion_sesion}",
    ])


def _phase_table(phase: Phase, t: Theme) -> Table:
    rows: list[Row] = [band(phase.nombre.upper(), t.primary, t.banner_text)]
    if phase.has_description:
        rows.append(band(phase.descripcion, t.band_fill, t.text, bold=False))
    if not phase.sesiones:
        rows.append(band(NO_SESSIONS, t.light_fill, t.muted, bold=False))

    # positional order inside the phase; numero is only displayed
    for session in phase.sesiones:
        rows.append(Row(cells=(
            Cell(text=f"SESIÓN {session.numero}\n{session.duracion}", bold=True, align="center",
                 fill=t.key_fill, color=t.primary, size=t.session_size),
            Cell(text=session_detail(session), size=t.session_size),
        )))
    return Table(columns=(0.16, 0.84), rows=tuple(rows), font_size=t.session_size, padding=t.cell_padding)


def render_sequence(plan: LessonPlan, theme: Optional[Theme] = None) -> list[Primitive]:
    """Starts on a fresh page; one table per phase in pedagogical order."""
    plan = _require_plan(plan)
    t = _theme(theme)
    out: list[Primitive] = [
        PageBreak(reason="sequence"),
        heading("III. PLANO DIDÁCTICO (ACTIVIDADES)", t),
    ]
    if not plan.fases_desarrollo:
        out.append(_empty_note(t))
        return out
    out.extend(_phase_table(phase, t) for phase in plan.fases_desarrollo)
    return out


# ─── 5. Formative evaluation ─────────────────────────────────────────────────

def render_evaluation(plan: LessonPlan, theme: Optional[Theme] = None) -> list[Primitive]:
    plan = _require_plan(plan)
    t = _theme(theme)
    ev = plan.evaluacion_formativa
    body = Row(cells=tuple(
        Cell(text="\n".join(items) if items else EMPTY_MARK)
        for items in (ev.tecnicas, ev.instrumentos, ev.criterios_evaluacion)
    ))
    return [
        heading("IV. EVALUACIÓN FORMATIVA", t),
        Table(
            columns=(1 / 3, 1 / 3, 1 / 3),
            header=_column_header(("TÉCNICAS", "INSTRUMENTOS", "CRITERIOS"), t),
            rows=(body,),
            font_size=t.table_size,
            padding=t.cell_padding,
        ),
    ]


# ─── 6. Bibliography ─────────────────────────────────────────────────────────

def render_bibliography(plan: LessonPlan, theme: Optional[Theme] = None) -> list[Primitive]:
    """Empty list when the plan has no references: the section is omitted, not blank."""
    plan = _require_plan(plan)
    if not plan.bibliografia_especializada:
        return []
    t = _theme(theme)
    rows = tuple(
        Row(cells=(
            Cell(text=entry.autor, bold=True),
            Cell(text=entry.anio, align="center"),
            Cell(text=entry.titulo),
            Cell(text=entry.uso, color=t.muted),
        ))
        for entry in plan.bibliografia_especializada
    )
    return [
        heading("V. BIBLIOGRAFÍA ESPECIALIZADA", t),
        Table(
            columns=(0.25, 0.1, 0.4, 0.25),
            header=_column_header(("AUTOR", "AÑO", "TÍTULO", "USO"), t),
            rows=rows,
            font_size=t.table_size,
            padding=t.cell_padding,
        ),
    ]


# ─── Whole document ──────────────────────────────────────────────────────────

_RENDERERS = {
    "header":       render_header,
    "diagnostic":   render_diagnostic,
    "curriculum":   render_curriculum,
    "sequence":     render_sequence,
    "evaluation":   render_evaluation,
    "bibliography": render_bibliography,
}


def build_document(plan: LessonPlan, theme: Optional[Theme] = None) -> list[Section]:
    """Run every renderer in document order; sections with no primitives are dropped."""
    plan = _require_plan(plan)
    t = _theme(theme)
    sections = [Section(key=key, primitives=_RENDERERS[key](plan, t)) for key in SECTION_ORDER]
    return [s for s in sections if s]


def flatten(sections: Sequence[Section]) -> list[Primitive]:
    return [p for section in sections for p in section.primitives]
