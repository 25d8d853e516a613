"""
plano_nem — Planeador Maestro NEM: Plano Didáctico generator
=============================================================
Turns a teacher's planning parameters into a structured lesson plan
(Gemini or the offline generator) and exports it as PDF or Word.

Module map
----------
  models.py          Planning request, frozen Pydantic lesson-plan models,
                     NEM phase / methodology / campo registries.
  config.py          Settings loaded from .env; live vs mock detection.
  normalizer.py      Repairs untrusted JSON into a strict LessonPlan.
  grouping.py        Curriculum links bucketed by subject label.
  layout.py          Format-independent primitives + presentation themes.
  sections.py        Six section renderers → layout primitives.
  pagination.py      Fixed-page layout engine (A4, atomic rows, numbering pass).
  pdf_export.py      reportlab canvas adapter.
  docx_export.py     python-docx adapter.
  exporter.py        Export orchestrator (normalize → render → serialize).
  generation.py      Gemini client (openai SDK), prompt, error classification.
  mock_generator.py  Rule-based offline plan generator.
  attachments.py     PDF attachment text extraction (pypdf).
  guardrails.py      G-01..G-11 request / plan checks.
  cli.py             typer + rich command-line interface.

Pipeline order
--------------
  GuardrailsPipeline [G-01..G-06] → LessonPlanGenerator (live | mock)
  → normalize_plan → GuardrailsPipeline [G-07..G-11]
  → build_document → paginate → render_pdf   (PDF)
                   ↘ render_docx              (Word)
"""
__version__ = "0.1.0"
