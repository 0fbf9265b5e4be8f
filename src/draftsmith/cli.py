"""CLI entrypoints for Draftsmith."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import typer

from draftsmith.config import load_settings
from draftsmith.drafting.synthesizer import SectionDraftSynthesizer
from draftsmith.errors import DraftsmithError
from draftsmith.logging import configure_logging, get_logger, request_context
from draftsmith.models.draft import DraftRequest
from draftsmith.models.outline import ExplicitPlan, OutlineRequest
from draftsmith.models.sources import VerifiedSource
from draftsmith.outline.engine import OutlineEngine

app = typer.Typer(add_completion=False, help="Draftsmith outline and section drafting CLI")
logger = get_logger(__name__)


def _read_json(path: Path | None) -> Any:
    if path is None:
        return None
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise typer.BadParameter(f"{path} is not valid JSON: {exc}") from exc


def _fail(exc: DraftsmithError) -> None:
    typer.secho(f"[{exc.kind}] {exc}", fg=typer.colors.RED, err=True)
    raise typer.Exit(code=1)


@app.command()
def outline(
    title: str = typer.Argument(..., help="Essay title or topic"),
    total: int = typer.Option(..., "--total", help="Total length (words, or characters for CJK)"),
    language: str = typer.Option("English", "--language"),
    tone: str = typer.Option("academic", "--tone"),
    bodies: int = typer.Option(3, "--bodies", help="Desired number of body sections"),
    detail: str = typer.Option("", "--detail", help="Extra instructions"),
    plan_json: Path | None = typer.Option(None, "--plan-json", help="JSON file with an explicit plan"),
    regenerate: int | None = typer.Option(None, "--regenerate", help="Regenerate only this section"),
    current: Path | None = typer.Option(None, "--current", help="Current outline text (for --regenerate)"),
    mode: str = typer.Option("", "--mode", help="Model mode, e.g. gpt-4o"),
    output: Path | None = typer.Option(None, "--output", "-o", help="Write the outline to this file"),
) -> None:
    """Generate an outline (or regenerate one section of an existing outline)."""

    if regenerate is not None and current is None:
        raise typer.BadParameter("--regenerate requires --current pointing to the outline text.")

    settings = load_settings()
    configure_logging(settings.log_level)

    plan_data = _read_json(plan_json)
    request = OutlineRequest(
        title=title,
        total_length=total,
        language=language,
        tone=tone,
        detail=detail,
        desired_body_count=bodies,
        explicit_plan=ExplicitPlan.model_validate(plan_data) if plan_data else None,
        regenerate_section_index=regenerate,
        current_outline_text=current.read_text(encoding="utf-8") if current else None,
        mode=mode,
    )
    with request_context(stage="outline"):
        logger.info("CLI outline requested")
        try:
            result = OutlineEngine(settings).run(request)
        except DraftsmithError as exc:
            _fail(exc)
            return

    if output is not None:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(result.outline_text + "\n", encoding="utf-8")
        typer.echo(str(output))
    else:
        typer.echo(result.outline_text)
    typer.echo(f"budgets: {', '.join(str(b) for b in result.section_budgets)}", err=True)


@app.command()
def draft(
    title: str = typer.Argument(..., help="Essay title or topic"),
    outline_file: Path = typer.Option(..., "--outline-file", help="Outline fragment for this section"),
    length: int = typer.Option(..., "--length", help="Target length of the section"),
    role: str | None = typer.Option(None, "--role", help="introduction, body or conclusion"),
    index: int | None = typer.Option(None, "--index", help="1-based section index"),
    total_sections: int | None = typer.Option(None, "--total-sections"),
    language: str = typer.Option("English", "--language"),
    tone: str = typer.Option("academic", "--tone"),
    spec_json: Path | None = typer.Option(None, "--spec-json", help="JSON file with a paragraph spec"),
    sources_json: Path | None = typer.Option(None, "--sources-json", help="JSON list of candidate sources"),
    mode: str = typer.Option("", "--mode"),
) -> None:
    """Draft one section and print the accepted text."""

    settings = load_settings()
    configure_logging(settings.log_level)

    sources = _read_json(sources_json)
    request = DraftRequest(
        title=title,
        section_role=role,
        section_index=index,
        total_sections=total_sections,
        target_length=length,
        language=language,
        tone=tone,
        outline_fragment=outline_file.read_text(encoding="utf-8"),
        verified_sources=[VerifiedSource.model_validate(s) for s in sources] if sources else None,
        explicit_spec=_read_json(spec_json),
        mode=mode,
    )
    with request_context(stage="draft"):
        logger.info("CLI draft requested")
        try:
            result = SectionDraftSynthesizer(settings).synthesize(request)
        except DraftsmithError as exc:
            _fail(exc)
            return
    typer.echo(result.text)


if __name__ == "__main__":
    app()
