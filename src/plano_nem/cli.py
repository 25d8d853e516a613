"""
cli.py – Command-line interface (typer + rich)
===============================================
  plano-nem generate   interview → guardrails → generation → export
  plano-nem export     export an existing plan JSON without generating
  plano-nem status     show configuration / service status

Exit codes: 0 ok · 1 generation or export failure · 2 plan not ready.
"""

from __future__ import annotations

import json
import logging
from enum import Enum
from pathlib import Path
from typing import Optional

import typer
from rich import box
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.prompt import IntPrompt, Prompt
from rich.table import Table

from plano_nem.attachments import AttachmentError
from plano_nem.config import Settings, get_settings
from plano_nem.exporter import ExportError, ExportFormat, export_plan, save_artifact
from plano_nem.generation import GenerationError, LessonPlanGenerator
from plano_nem.guardrails import GuardrailResult, GuardrailsPipeline
from plano_nem.models import (
    GRADOS_FLAT,
    METODOLOGIAS,
    LessonPlan,
    Methodology,
    PlanningRequest,
    find_phase_for_grade,
)
from plano_nem.normalizer import PlanNotReadyError, normalize_plan

app = typer.Typer(
    name="plano-nem",
    help="Genera y exporta Planos Didácticos de la Nueva Escuela Mexicana.",
    add_completion=False,
)
console = Console()
logger  = logging.getLogger(__name__)


class OutputFormat(str, Enum):
    pdf  = "pdf"
    docx = "docx"
    both = "both"

    def targets(self) -> list[ExportFormat]:
        if self is OutputFormat.both:
            return [ExportFormat.PDF, ExportFormat.DOCX]
        return [ExportFormat(self.value)]


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Registro detallado (DEBUG)"),
) -> None:
    """Planeador Maestro NEM."""
    _configure_logging("DEBUG" if verbose else get_settings().app.log_level)


# ─── Interactive intake ──────────────────────────────────────────────────────

class PlanIntake:
    """
    Guided interview for the planning parameters.  Values already given as
    command-line options are used as defaults.
    """

    BANNER = "[bold]Planeador Maestro NEM – Plano Didáctico[/bold]"

    def run(self, defaults: PlanningRequest) -> PlanningRequest:
        console.print()
        console.print(Panel(self.BANNER, subtitle="Datos de la planeación", expand=False))
        console.print()

        docente = Prompt.ask("[cyan]1.[/cyan] Nombre del docente", default=defaults.nombre_docente or None)
        escuela = Prompt.ask("[cyan]2.[/cyan] Nombre de la escuela", default=defaults.nombre_escuela or None)
        cct     = Prompt.ask("[cyan]3.[/cyan] C.C.T. [dim](opcional)[/dim]", default=defaults.cct)
        zona    = Prompt.ask("       Zona escolar [dim](opcional)[/dim]", default=defaults.zona_escolar)

        grados = [g["grado"] for g in GRADOS_FLAT]
        grado  = Prompt.ask("[cyan]4.[/cyan] Grado", choices=grados, default=defaults.grado,
                            show_choices=False)

        console.print("[cyan]5.[/cyan] Metodología:")
        for i, m in enumerate(METODOLOGIAS, start=1):
            console.print(f"   [dim]{i}.[/dim] {m.value}")
        current = next((i for i, m in enumerate(METODOLOGIAS, start=1) if m.value == str(defaults.metodologia)), 1)
        choice  = IntPrompt.ask("   >", choices=[str(i) for i in range(1, len(METODOLOGIAS) + 1)],
                                default=current, show_choices=False)

        sesiones = IntPrompt.ask("[cyan]6.[/cyan] Número de sesiones", default=defaults.num_sesiones)
        console.print("[cyan]7.[/cyan] Problemática o contexto [dim](opcional)[/dim]:")
        contexto = Prompt.ask("   >", default=defaults.contexto_adicional)

        console.print()
        return PlanningRequest(
            nombre_docente     = docente or "",
            nombre_escuela     = escuela or "",
            grado              = grado,
            fase               = find_phase_for_grade(grado) or defaults.fase,
            metodologia        = METODOLOGIAS[choice - 1],
            num_sesiones       = sesiones,
            cct                = cct,
            zona_escolar       = zona,
            contexto_adicional = contexto,
            pdf_bytes          = defaults.pdf_bytes,
            pdf_name           = defaults.pdf_name,
        )


# ─── Display helpers ─────────────────────────────────────────────────────────

def display_guardrails(result: GuardrailResult) -> None:
    if not result.violations:
        return
    style = "red" if result.blocked else "yellow"
    console.print(Panel(result.summary(), title="Validaciones", border_style=style, expand=False))


def display_plan_summary(plan: LessonPlan) -> None:
    table = Table(title=plan.titulo_proyecto, box=box.SIMPLE_HEAVY, show_header=False)
    table.add_column("Campo", style="cyan", no_wrap=True)
    table.add_column("Valor")
    table.add_row("Docente", plan.nombre_docente)
    table.add_row("Escuela", plan.nombre_escuela)
    table.add_row("Grado / Fase", f"{plan.grado} | {plan.fase_nem}")
    table.add_row("Metodología", plan.metodologia)
    table.add_row("Campos formativos", ", ".join(plan.campo_formativo) or "—")
    table.add_row("Vinculaciones", str(len(plan.vinculacion_contenido_pda)))
    for phase in plan.fases_desarrollo:
        table.add_row(phase.nombre, f"{len(phase.sesiones)} sesiones")
    table.add_row("Bibliografía", str(len(plan.bibliografia_especializada)))
    console.print(table)


def _export_all(plan: LessonPlan, fmt: OutputFormat, output_dir: Path, settings: Settings) -> list[Path]:
    saved = []
    for target in fmt.targets():
        try:
            artifact = export_plan(plan, target, settings=settings)
        except ExportError as exc:
            console.print(f"[red]{exc}[/red] [dim]Puedes intentarlo de nuevo.[/dim]")
            raise typer.Exit(1)
        try:
            path = save_artifact(artifact, output_dir)
        except OSError as exc:
            logger.error("Could not save %s: %s", artifact.filename, exc)
            console.print(f"[red]{target.failure_message}[/red] [dim]No se pudo escribir en {output_dir}.[/dim]")
            raise typer.Exit(1)
        pages = f", {artifact.page_count} hojas" if artifact.page_count else ""
        console.print(f"[green]✓ {target.label} guardado:[/green] {path} [dim]({artifact.size_kb:.1f} KB{pages})[/dim]")
        saved.append(path)
    return saved


def _save_json(plan: LessonPlan, output_dir: Path, stem: str) -> Path:
    output_dir.mkdir(parents=True, exist_ok=True)
    path = output_dir / f"{stem}.json"
    path.write_text(json.dumps(plan.to_json_dict(), ensure_ascii=False, indent=2), encoding="utf-8")
    console.print(f"[green]✓ JSON guardado:[/green] {path}")
    return path


# ─── Commands ────────────────────────────────────────────────────────────────

@app.command()
def generate(
    docente: Optional[str] = typer.Option(None, "--docente", help="Nombre del docente"),
    escuela: Optional[str] = typer.Option(None, "--escuela", help="Nombre de la escuela"),
    grado: str = typer.Option("1° Secundaria", "--grado", help="Grado, p. ej. '3° Primaria'"),
    metodologia: Methodology = typer.Option(Methodology.PROYECTOS_COMUNITARIOS, "--metodologia"),
    sesiones: int = typer.Option(10, "--sesiones", help="Número de sesiones"),
    cct: str = typer.Option("", "--cct"),
    zona: str = typer.Option("", "--zona"),
    contexto: str = typer.Option("", "--contexto", help="Problemática o contexto del grupo"),
    adjunto: Optional[Path] = typer.Option(None, "--adjunto", exists=True, dir_okay=False,
                                           help="PDF de referencia"),
    fmt: OutputFormat = typer.Option(OutputFormat.pdf, "--format", "-f"),
    output_dir: Optional[Path] = typer.Option(None, "--output-dir", "-o"),
    save_json: bool = typer.Option(False, "--save-json", help="Guardar también el plan normalizado"),
    live: bool = typer.Option(False, "--live", help="Exigir Gemini (sin modo simulado)"),
) -> None:
    """Genera un plano didáctico y lo exporta."""
    settings = get_settings()
    request = PlanningRequest(
        nombre_docente     = docente or "",
        nombre_escuela     = escuela or "",
        grado              = grado,
        fase               = find_phase_for_grade(grado) or "",
        metodologia        = metodologia,
        num_sesiones       = sesiones,
        cct                = cct,
        zona_escolar       = zona,
        contexto_adicional = contexto,
        pdf_bytes          = adjunto.read_bytes() if adjunto else None,
        pdf_name           = adjunto.name if adjunto else "",
    )
    if docente is None or escuela is None:
        request = PlanIntake().run(request)

    guards = GuardrailsPipeline(settings)
    check = guards.check_request(request)
    display_guardrails(check)
    if check.blocked:
        raise typer.Exit(1)

    generator = LessonPlanGenerator(settings, allow_mock=not live)
    try:
        with console.status(f"[bold blue]Generando plano didáctico ({generator.mode})…"):
            plan = generator.generate(request)
    except GenerationError as exc:
        console.print(f"[red]{exc.user_message}[/red]")
        raise typer.Exit(1)
    except AttachmentError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(1)
    except PlanNotReadyError as exc:
        console.print(f"[yellow]{exc.user_message}[/yellow]")
        raise typer.Exit(2)

    display_plan_summary(plan)
    display_guardrails(guards.check_plan(plan, requested=request.num_sesiones))

    folder = output_dir or Path(settings.export.output_dir)
    saved = _export_all(plan, fmt, folder, settings)
    if save_json:
        _save_json(plan, folder, saved[0].stem)


@app.command()
def export(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="Plan en formato JSON"),
    fmt: OutputFormat = typer.Option(OutputFormat.pdf, "--format", "-f"),
    output_dir: Optional[Path] = typer.Option(None, "--output-dir", "-o"),
) -> None:
    """Exporta un plan JSON existente sin volver a generarlo."""
    settings = get_settings()
    try:
        plan = normalize_plan(json.loads(path.read_text(encoding="utf-8")))
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        console.print(f"[yellow]{PlanNotReadyError(str(exc)).user_message}[/yellow]")
        raise typer.Exit(2)
    except PlanNotReadyError as exc:
        console.print(f"[yellow]{exc.user_message}[/yellow]")
        raise typer.Exit(2)

    display_plan_summary(plan)
    display_guardrails(GuardrailsPipeline(settings).check_plan(plan))
    _export_all(plan, fmt, output_dir or Path(settings.export.output_dir), settings)


@app.command()
def status() -> None:
    """Muestra la configuración activa."""
    table = Table(box=box.SIMPLE, show_header=False)
    table.add_column("Servicio", style="cyan")
    table.add_column("Estado")
    for name, badge in get_settings().status_summary().items():
        table.add_row(name, badge)
    console.print(table)
