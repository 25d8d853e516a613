"""
exporter.py – Export orchestrator
==================================
Sequences normalize → section renderers → layout → serialization for one
target format and returns a named in-memory artifact.

  export_raw()     untrusted JSON value → artifact   (PlanNotReadyError if not a plan)
  export_plan()    normalized LessonPlan → artifact  (ExportError on any failure)
  attempt_export() same, but returns (artifact | None, message) and never raises

Every call builds its own sections and its own LayoutEngine, so concurrent
exports share no state.  Rendering failures are caught only here: there is
no per-section recovery because half a document is not a valid artifact.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Optional, Union

from plano_nem.config import Settings, get_settings
from plano_nem.docx_export import render_docx
from plano_nem.layout import Theme, get_theme
from plano_nem.models import LessonPlan
from plano_nem.normalizer import PlanNotReadyError, normalize_plan
from plano_nem.pagination import paginate
from plano_nem.pdf_export import render_pdf
from plano_nem.sections import build_document, flatten

logger = logging.getLogger(__name__)

_ILLEGAL_FILENAME_CHARS = re.compile(r'[\\/:*?"<>|]')
UNSUPPORTED_FORMAT_MESSAGE = "Formato no soportado: {fmt}. Usa PDF o Word (docx)."


class ExportFormat(str, Enum):
    PDF  = "pdf"
    DOCX = "docx"

    @property
    def extension(self) -> str:
        return self.value

    @property
    def mime_type(self) -> str:
        return {
            ExportFormat.PDF:  "application/pdf",
            ExportFormat.DOCX: "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        }[self]

    @property
    def label(self) -> str:
        return "PDF" if self is ExportFormat.PDF else "Word"

    @property
    def failure_message(self) -> str:
        return f"Error al generar {self.label}."


class ExportError(RuntimeError):
    """Any failure while rendering or serializing an already-normalized plan."""

    def __init__(self, fmt: ExportFormat) -> None:
        super().__init__(fmt.failure_message)
        self.format = fmt


@dataclass(frozen=True)
class ExportArtifact:
    filename:   str
    content:    bytes
    format:     ExportFormat
    sections:   tuple[str, ...]         # section keys in document order
    page_count: Optional[int] = None    # known for PDF only; Word paginates itself

    @property
    def mime_type(self) -> str:
        return self.format.mime_type

    @property
    def size_kb(self) -> float:
        return len(self.content) / 1024


def suggest_filename(
    title: str,
    fmt: Union[ExportFormat, str],
    prefix: str = "Planeacion_NEM",
    title_chars: int = 15,
) -> str:
    """``{prefix}_{first chars of title, whitespace → _}.{ext}``"""
    fmt = ExportFormat(fmt)
    fragment = re.sub(r"\s+", "_", (title or "")[:title_chars])
    fragment = _ILLEGAL_FILENAME_CHARS.sub("", fragment) or "plan"
    return f"{prefix}_{fragment}.{fmt.extension}"


def _document_subject(plan: LessonPlan) -> str:
    return f"Plano Didáctico NEM | {plan.grado} | {plan.metodologia}"


def export_plan(
    plan: LessonPlan,
    fmt: Union[ExportFormat, str] = ExportFormat.PDF,
    theme: Optional[Theme] = None,
    settings: Optional[Settings] = None,
) -> ExportArtifact:
    """
    Render a normalized plan to one binary format.

    Raises:
        ExportError – anything failed inside rendering, layout or serialization
                      (the original exception is chained as __cause__).
    """
    fmt      = ExportFormat(fmt)
    settings = settings or get_settings()
    cfg      = settings.export
    theme    = theme or get_theme(cfg.theme)

    logger.info("Exporting plan as %s (theme=%s)", fmt.label, theme.name)
    try:
        sections   = build_document(plan, theme)
        primitives = flatten(sections)
        meta = dict(title=plan.titulo_proyecto, author=plan.nombre_docente,
                    subject=_document_subject(plan))
        if fmt is ExportFormat.PDF:
            pages      = paginate(primitives, theme=theme, footer_template=cfg.footer_template)
            content    = render_pdf(pages, theme=theme, **meta)
            page_count = len(pages)
        else:
            content    = render_docx(primitives, theme, footer_template=cfg.footer_template, **meta)
            page_count = None
    except Exception as exc:
        logger.exception("Export to %s failed", fmt.label)
        raise ExportError(fmt) from exc

    artifact = ExportArtifact(
        filename   = suggest_filename(plan.titulo_proyecto, fmt, cfg.filename_prefix, cfg.title_chars),
        content    = content,
        format     = fmt,
        sections   = tuple(s.key for s in sections),
        page_count = page_count,
    )
    logger.info("Exported %s (%.1f KB, pages=%s)", artifact.filename, artifact.size_kb, page_count)
    return artifact


def export_raw(
    raw: Any,
    fmt: Union[ExportFormat, str] = ExportFormat.PDF,
    theme: Optional[Theme] = None,
    settings: Optional[Settings] = None,
) -> ExportArtifact:
    """Normalize first; PlanNotReadyError stops the call before any renderer runs."""
    return export_plan(normalize_plan(raw), fmt, theme=theme, settings=settings)


def attempt_export(
    raw: Any,
    fmt: Union[ExportFormat, str] = ExportFormat.PDF,
    theme: Optional[Theme] = None,
    settings: Optional[Settings] = None,
) -> tuple[Optional[ExportArtifact], str]:
    """
    Export without raising.  Returns (artifact, message) on success and
    (None, user-facing message) when the format is unknown, the plan is not
    ready or export fails.
    """
    try:
        fmt = ExportFormat(fmt)
    except ValueError:
        return None, UNSUPPORTED_FORMAT_MESSAGE.format(fmt=fmt)
    try:
        artifact = export_raw(raw, fmt, theme=theme, settings=settings)
    except PlanNotReadyError as exc:
        return None, exc.user_message
    except ExportError as exc:
        return None, str(exc)
    return artifact, f"{fmt.label} generado: {artifact.filename}"


def save_artifact(artifact: ExportArtifact, directory: Union[str, Path, None] = None) -> Path:
    """Write the artifact under *directory* (created if needed) and return its path."""
    folder = Path(directory or ".")
    folder.mkdir(parents=True, exist_ok=True)
    path = folder / artifact.filename
    path.write_bytes(artifact.content)
    logger.info("Saved %s", path)
    return path
