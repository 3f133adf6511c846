"""CLI entry point: depreport.

Subcommands:
    depreport render graph.json -o dependencies.md   # Render the report as Markdown
"""

from __future__ import annotations

import sys
from pathlib import Path

import click
import structlog
from pydantic import ValidationError

from depreport.api import generate_report
from depreport.config import ReportConfig
from depreport.core.logging import setup_logging
from depreport.exceptions import InputError
from depreport.loader import load_report_input

log = structlog.get_logger("depreport.cli")


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Verbose logging")
def main(verbose: bool) -> None:
    """depreport: dependency report for a resolved module graph."""
    setup_logging("DEBUG" if verbose else None)


@main.command("render")
@click.argument("input_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "-o",
    "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Output file (default: stdout)",
)
@click.option("--locale", default=None, help="Number formatting locale, e.g. en, de_DE")
@click.option("--details/--no-details", default=None, help="Render dependency file details")
@click.option(
    "--locations/--no-locations", default=None, help="Render dependency repository locations"
)
@click.option(
    "--local-repository",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Local repository directory",
)
@click.option("--probe-timeout", type=float, default=None, help="Seconds per repository request")
def render(
    input_file: Path,
    output: Path | None,
    locale: str | None,
    details: bool | None,
    locations: bool | None,
    local_repository: Path | None,
    probe_timeout: float | None,
) -> None:
    """Render the dependencies report for a resolved graph JSON file."""
    try:
        config = ReportConfig.from_env(
            locale=locale,
            details_enabled=details,
            locations_enabled=locations,
            local_repository=local_repository,
            probe_timeout=probe_timeout,
        )
    except (ValidationError, ValueError) as e:
        click.echo(f"Error: invalid configuration: {e}", err=True)
        sys.exit(1)

    try:
        report_input = load_report_input(input_file)
    except InputError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    log.info(
        "cli.render",
        project=report_input.project.id,
        dependencies=len(report_input.accepted),
    )
    markdown = generate_report(report_input, config)

    if output is None:
        click.echo(markdown, nl=False)
    else:
        output.write_text(markdown, encoding="utf-8")
        click.echo(f"Report written to {output}", err=True)


if __name__ == "__main__":
    main()
