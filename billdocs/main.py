from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

import typer

from . import config
from .documents.records import CompanyProfile
from .models import DocumentKind, JobStatus, reset_engine
from .pipeline.ingest import detect_kind, list_jobs, load_json, record_paths, register_jobs
from .pipeline.render_pdf import PAGE_SIZES
from .pipeline.run import RunOptions, run_pipeline

app = typer.Typer(help="Paginated invoice and ledger document generator")


def _setup(out: Optional[Path], verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if out:
        config.set_out_dir(out)
        reset_engine()


def _options(company: Optional[Path], paper: str, no_pdf: bool) -> RunOptions:
    if paper not in PAGE_SIZES:
        raise typer.BadParameter(f"paper must be one of: {', '.join(PAGE_SIZES)}")
    try:
        profile = config.load_company_profile(company)
    except (ValueError, FileNotFoundError) as exc:
        raise typer.BadParameter(str(exc), param_hint="--company") from exc
    return RunOptions(
        paper=paper,
        render=not no_pdf,
        previews=not no_pdf,
        company=CompanyProfile(**profile),
    )


def _report(results: dict) -> None:
    typer.echo(f"READY: {len(results['READY'])}")
    typer.echo(f"FAILED: {len(results['FAILED'])}")
    for slug in results["FAILED"]:
        typer.echo(f"FAILED: {slug}")
    if results["FAILED"]:
        raise typer.Exit(code=1)


def _run_files(paths: List[Path], expected: Optional[DocumentKind], options: RunOptions) -> None:
    try:
        if expected is not None:
            mismatched = [str(path) for path in paths if detect_kind(load_json(path)) != expected]
            if mismatched:
                raise typer.BadParameter(f"Not a {expected.value.lower()} record: {', '.join(mismatched)}")
        jobs = register_jobs(paths)
    except (ValueError, FileNotFoundError) as exc:
        raise typer.BadParameter(str(exc)) from exc
    _report(run_pipeline(jobs, options))


@app.command()
def invoice(
    record: Path = typer.Argument(..., help="Purchase record JSON"),
    out: Optional[Path] = typer.Option(None, "--out", help="Output directory"),
    company: Optional[Path] = typer.Option(None, "--company", help="Company profile JSON"),
    paper: str = typer.Option("letter", "--paper", help="letter or a4"),
    no_pdf: bool = typer.Option(False, "--no-pdf", help="Write HTML pages only"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
) -> None:
    _setup(out, verbose)
    _run_files([record], DocumentKind.INVOICE, _options(company, paper, no_pdf))


@app.command()
def ledger(
    record: Path = typer.Argument(..., help="Ledger JSON (entity + transactions)"),
    out: Optional[Path] = typer.Option(None, "--out", help="Output directory"),
    company: Optional[Path] = typer.Option(None, "--company", help="Company profile JSON"),
    paper: str = typer.Option("letter", "--paper", help="letter or a4"),
    no_pdf: bool = typer.Option(False, "--no-pdf", help="Write HTML pages only"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
) -> None:
    _setup(out, verbose)
    _run_files([record], DocumentKind.LEDGER, _options(company, paper, no_pdf))


@app.command()
def history(
    record: Path = typer.Argument(..., help="History JSON (tabName + entries)"),
    out: Optional[Path] = typer.Option(None, "--out", help="Output directory"),
    company: Optional[Path] = typer.Option(None, "--company", help="Company profile JSON"),
    paper: str = typer.Option("letter", "--paper", help="letter or a4"),
    no_pdf: bool = typer.Option(False, "--no-pdf", help="Write HTML pages only"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
) -> None:
    _setup(out, verbose)
    _run_files([record], DocumentKind.HISTORY, _options(company, paper, no_pdf))


@app.command()
def build(
    source: Path = typer.Argument(..., help="Record JSON or a directory of them"),
    out: Optional[Path] = typer.Option(None, "--out", help="Output directory"),
    company: Optional[Path] = typer.Option(None, "--company", help="Company profile JSON"),
    paper: str = typer.Option("letter", "--paper", help="letter or a4"),
    no_pdf: bool = typer.Option(False, "--no-pdf", help="Write HTML pages only"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
) -> None:
    _setup(out, verbose)
    paths = record_paths(source)
    typer.echo(f"Found {len(paths)} records")
    _run_files(paths, None, _options(company, paper, no_pdf))


@app.command()
def retry(
    out: Optional[Path] = typer.Option(None, "--out", help="Output directory"),
    company: Optional[Path] = typer.Option(None, "--company", help="Company profile JSON"),
    paper: str = typer.Option("letter", "--paper", help="letter or a4"),
    no_pdf: bool = typer.Option(False, "--no-pdf", help="Write HTML pages only"),
    template_errors: bool = typer.Option(
        False, "--template-errors", help="Also retry jobs that failed on a missing template"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
) -> None:
    _setup(out, verbose)
    jobs = [
        job
        for job in list_jobs([JobStatus.FAILED])
        if template_errors or job.fail_code != "TEMPLATE_NOT_FOUND"
    ]
    if not jobs:
        typer.echo("No documents to retry")
        return
    _report(run_pipeline(jobs, _options(company, paper, no_pdf)))


if __name__ == "__main__":
    app()
