#!/usr/bin/env python3
"""Resume Tuner - requirement-driven resume and cover letter tuning."""

import json
import logging
from pathlib import Path

import click
from pydantic import TypeAdapter, ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from config_loader import load_config
from services import (
    EditService,
    RewriteService,
    TuneService,
    ResumeTunerError,
    GenerationFailedError,
    RewriteConstraintError,
    apply_operations,
    estimate_document,
)
from services.models import EditRequest, ResolutionStatus, SelectionRewriteRequest, TuneRequest
from skills.selection_rewriter import RewriteField, RewriteScope
from tuning.candidates import measure_fields
from tuning.layout import body_text_metrics, build_field_length_constraint
from tuning.models import ElementProfile, Requirement, ResumeData
from tuning.paths import get_value_at_path

console = Console()


HELP_TEXT = """
Resume Tuner - requirement-driven resume and cover letter tuning

WORKFLOW:
  1. Extract requirements  → tuner requirements job.txt -o reqs.json
  2. Edit against them     → tuner edit resume.json reqs.json --apply tuned.json
  3. Or tune the whole doc → tuner tune resume.json --job-file job.txt
  4. Check the page count  → tuner estimate tuned.json

COMMANDS:
  requirements   Extract weighted requirements from a job description
  edit           Resolve requirements one by one with inline edits
  tune           Tune resume and cover letter for a job within page limits
  rewrite        Rewrite selected fields with a free-text instruction
  estimate       Estimate page counts (no generation)
  serve          Start the Resume Tuner API server

Documents are JSON resume snapshots (camelCase keys).
"""

STATUS_STYLES = {
    ResolutionStatus.EDITED: "green",
    ResolutionStatus.ALREADY_MENTIONED: "cyan",
    ResolutionStatus.UNRESOLVED: "yellow",
    ResolutionStatus.LOCKED_NO_EDIT: "dim",
}


def _load_json(path: str):
    with open(path, encoding="utf-8") as f:
        return json.load(f)


def _write_json(path: str, data) -> None:
    Path(path).write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")


def _load_document(path: str) -> ResumeData:
    return ResumeData.model_validate(_load_json(path))


def _load_requirements(path: str) -> list[Requirement]:
    data = _load_json(path)
    if isinstance(data, dict):
        data = data.get("requirements", [])
    return TypeAdapter(list[Requirement]).validate_python(data)


def _service(ctx, cls):
    """Build a service on first use so commands without generation need no API key."""
    services = ctx.obj.setdefault("services", {})
    if cls not in services:
        services[cls] = cls(config=ctx.obj["config"])
    return services[cls]


@click.group(help=HELP_TEXT)
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging.")
@click.option("--config", "config_path", type=click.Path(exists=True), help="Config file.")
@click.pass_context
def cli(ctx, verbose: bool, config_path: str | None):
    """Resume Tuner - requirement-driven resume and cover letter tuning."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )
    ctx.ensure_object(dict)
    ctx.obj["config"] = load_config(config_path)


# ============================================================================
# Requirement Commands
# ============================================================================


@cli.command()
@click.argument("job_file", type=click.Path(exists=True))
@click.option("--output", "-o", type=click.Path(), help="Write requirements JSON here.")
@click.pass_context
def requirements(ctx, job_file: str, output: str | None):
    """Extract weighted requirements from a job description file."""
    svc = _service(ctx, RewriteService)
    text = Path(job_file).read_text(encoding="utf-8")

    try:
        with console.status("Extracting requirements..."):
            reqs = svc.extract_requirements(text)
    except ResumeTunerError as e:
        console.print(f"[red]{e}[/red]")
        return

    table = Table(title=f"Requirements ({len(reqs)})")
    table.add_column("ID", style="dim")
    table.add_column("Requirement", style="white")
    table.add_column("Type", style="cyan")
    table.add_column("Weight", justify="right", style="yellow")
    table.add_column("Must", justify="center")
    for req in reqs:
        table.add_row(
            req.id,
            req.canonical,
            req.type.value,
            f"{req.weight:g}",
            "yes" if req.must_have else "",
        )
    console.print(table)

    if output:
        _write_json(output, [r.model_dump(by_alias=True, mode="json") for r in reqs])
        console.print(f"[green]Requirements saved to:[/green] {output}")


@cli.command()
@click.argument("document", type=click.Path(exists=True))
@click.argument("requirements_file", type=click.Path(exists=True))
@click.option("--profiles", type=click.Path(exists=True), help="Measured field profiles JSON.")
@click.option("--max-lines", default=2, type=int, help="Line limit when measuring fields.")
@click.option("--apply", "apply_to", type=click.Path(), help="Write the edited document here.")
@click.pass_context
def edit(
    ctx,
    document: str,
    requirements_file: str,
    profiles: str | None,
    max_lines: int,
    apply_to: str | None,
):
    """Resolve requirements one by one with inline edits."""
    try:
        resume = _load_document(document)
        reqs = _load_requirements(requirements_file)
        if profiles:
            element_profiles = TypeAdapter(list[ElementProfile]).validate_python(
                _load_json(profiles)
            )
        else:
            element_profiles = measure_fields(resume, max_lines=max_lines)
        request = EditRequest(
            requirements=reqs, resume_data=resume, element_profiles=element_profiles
        )
    except ValidationError as e:
        console.print(f"[red]Invalid input:[/red] {e}")
        return

    svc = _service(ctx, EditService)
    console.print(f"\n[bold blue]Resolving {len(reqs)} requirements[/bold blue]\n")

    def on_progress(event):
        style = STATUS_STYLES.get(event.status, "white")
        console.print(
            f"  [{event.completed}/{event.total}] {event.canonical} "
            f"[{style}]{event.status.value}[/{style}]"
        )

    try:
        response = svc.run_edit(request, on_progress=on_progress)
    except ResumeTunerError as e:
        console.print(f"[red]{e}[/red]")
        return

    table = Table(title="Report")
    table.add_column("Requirement", style="white")
    table.add_column("Status")
    table.add_column("Path", style="dim")
    table.add_column("Reason", style="dim")
    for entry in response.report:
        style = STATUS_STYLES.get(entry.status, "white")
        table.add_row(
            entry.canonical,
            f"[{style}]{entry.status.value}[/{style}]",
            entry.edited_path or entry.matched_path or "-",
            entry.reason or "",
        )
    console.print(table)

    for op in response.operations:
        console.print(f"[green]{op.path}[/green]: {op.value}")
    if response.error:
        console.print(f"[yellow]{response.error}[/yellow]")

    if apply_to:
        edited = apply_operations(resume, response.operations)
        _write_json(apply_to, edited.model_dump(by_alias=True, mode="json"))
        console.print(f"[green]Edited document saved to:[/green] {apply_to}")


# ============================================================================
# Tuning Commands
# ============================================================================


@cli.command()
@click.argument("document", type=click.Path(exists=True))
@click.option("--job-file", type=click.Path(exists=True), help="Job description text file.")
@click.option("--job-text", default="", help="Job description text.")
@click.option("--company", default="", help="Company name.")
@click.option("--title", default="", help="Job title.")
@click.option("--max-pages", default=1, type=click.IntRange(1, 4), help="Resume page limit.")
@click.option("--allow-deletions", is_flag=True, help="Allow removing skills.")
@click.option("--output", "-o", type=click.Path(), help="Write the tuned document here.")
@click.pass_context
def tune(
    ctx,
    document: str,
    job_file: str | None,
    job_text: str,
    company: str,
    title: str,
    max_pages: int,
    allow_deletions: bool,
    output: str | None,
):
    """Tune resume and cover letter for a job within page limits."""
    if job_file:
        job_text = Path(job_file).read_text(encoding="utf-8")
    try:
        request = TuneRequest(
            company_name=company,
            job_title=title,
            job_description=job_text,
            max_resume_pages=max_pages,
            allow_deletions=allow_deletions,
            resume_data=_load_document(document),
        )
    except ValidationError as e:
        console.print(f"[red]Invalid input:[/red] {e}")
        return

    svc = _service(ctx, TuneService)
    try:
        with console.status("Tuning resume and cover letter..."):
            result = svc.tune(request)
    except ResumeTunerError as e:
        console.print(f"[red]{e}[/red]")
        return

    est = result.estimation
    console.print(
        f"\nResume pages: {est.resume_pages}/{est.max_resume_pages}  "
        f"Cover letter pages: {est.cover_letter_pages}/{est.max_cover_letter_pages}  "
        f"(attempt {result.raw.selected_attempt})"
    )
    if result.fit_error:
        console.print(f"[yellow]{result.fit_error}[/yellow]")

    table = Table(title=f"Changes ({len(result.diffs)})")
    table.add_column("Op", style="cyan")
    table.add_column("Path", style="dim")
    table.add_column("After", style="white")
    table.add_column("Lines", justify="right")
    for diff in result.diffs:
        after = diff.after or ""
        if diff.manual_approval_required:
            after += " [red](needs approval)[/red]"
        table.add_row(diff.op, diff.path, after, f"{diff.line_delta:+d}")
    console.print(table)

    if output:
        _write_json(output, result.optimized_resume.model_dump(by_alias=True, mode="json"))
        console.print(f"[green]Tuned document saved to:[/green] {output}")


@cli.command()
@click.argument("document", type=click.Path(exists=True))
@click.option("--instruction", "-i", required=True, help="What to change.")
@click.option("--path", "paths", multiple=True, required=True, help="Field path to rewrite.")
@click.option("--max-lines", default=0, type=int, help="Line limit per field (0 = none).")
@click.pass_context
def rewrite(ctx, document: str, instruction: str, paths: tuple[str, ...], max_lines: int):
    """Rewrite selected fields with a free-text instruction."""
    resume = _load_document(document)
    width_px, font_size_px, font_family = body_text_metrics(resume)
    constraint = build_field_length_constraint(width_px, font_size_px, font_family, max_lines)

    fields = []
    for path in paths:
        value = get_value_at_path(resume, path)
        if not isinstance(value, str):
            console.print(f"[red]Not a text field: {path}[/red]")
            return
        fields.append(RewriteField(path=path, text=value, length_constraint=constraint))

    svc = _service(ctx, RewriteService)
    request = SelectionRewriteRequest(
        instruction=instruction, fields=fields, scope=RewriteScope()
    )
    try:
        with console.status("Rewriting..."):
            result = svc.rewrite_selection(request)
    except RewriteConstraintError as e:
        console.print(f"[red]{e}[/red]")
        for violation in e.violations:
            console.print(f"  [dim]{violation}[/dim]")
        return
    except GenerationFailedError as e:
        console.print(f"[red]{e}[/red]")
        return

    for op in result.operations:
        console.print(f"[cyan]{op.op}[/cyan] [dim]{op.path}[/dim] {op.value}")


@cli.command()
@click.argument("document", type=click.Path(exists=True))
def estimate(document: str):
    """Estimate page counts for a document."""
    result = estimate_document(_load_document(document))
    console.print(f"Resume pages: {result.resume_pages}")
    console.print(f"Cover letter pages: {result.cover_letter_pages}")
    console.print(
        f"[dim]Chars per line: resume {result.resume_chars_per_line}, "
        f"cover letter {result.cover_chars_per_line}[/dim]"
    )


# ============================================================================
# API Server Command
# ============================================================================


@cli.command()
@click.option("--host", default="127.0.0.1", help="Host to bind to.")
@click.option("--port", default=8000, type=int, help="Port to bind to.")
@click.option("--reload", is_flag=True, help="Enable auto-reload for development.")
def serve(host, port, reload):
    """Start the Resume Tuner API server."""
    import uvicorn
    console.print("\n[bold blue]Starting Resume Tuner API server...[/bold blue]")
    console.print(f"[dim]API docs at http://{host}:{port}/docs[/dim]\n")
    uvicorn.run("api.app:create_app", host=host, port=port, reload=reload, factory=True)


if __name__ == "__main__":
    cli()
