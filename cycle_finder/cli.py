"""Click CLI with scan, find, and serve subcommands."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import click

from cycle_finder import __version__
from cycle_finder.analysis.whitelist import Whitelist
from cycle_finder.collector.loader import DeclarationError
from cycle_finder.models import AnalysisConfig, ElementPolicy
from cycle_finder.pipeline import load_declarations, run_analysis
from cycle_finder.report import format_report, report_to_dict

_POLICY_CHOICES = [p.value for p in ElementPolicy]

_KIND_COLORS = {
    "class": "yellow",
    "interface": "cyan",
    "enum": "bright_green",
    "anonymous": "magenta",
    "annotation": "blue",
}

_input_paths = click.argument(
    "paths", nargs=-1, required=True,
    type=click.Path(exists=True, path_type=Path),
)


@click.group()
@click.version_option(version=__version__)
@click.option("--verbose", "-v", count=True, help="Increase log verbosity (-v info, -vv debug)")
def cli(verbose: int):
    """cycle-finder: Find possible strong-reference cycles between types."""
    level = {0: logging.WARNING, 1: logging.INFO}.get(verbose, logging.DEBUG)
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def _load(paths: tuple[Path, ...]):
    try:
        return load_declarations(paths)
    except (DeclarationError, ValueError) as e:
        raise click.ClickException(str(e))


@cli.command()
@_input_paths
def scan(paths: tuple[Path, ...]):
    """List the type declarations found in declaration files or sources."""
    decls = _load(paths)
    if not decls:
        click.echo("No type declarations found.")
        return

    click.echo(f"\nFound {len(decls)} type declaration(s):\n")
    for decl in sorted(decls, key=lambda d: d.name):
        color = _KIND_COLORS.get(decl.kind.value, "white")
        instance_fields = [f for f in decl.fields if not f.static]
        click.echo(
            f"  {click.style(decl.kind.value, fg=color):>20}  "
            f"{decl.name}  "
            f"{click.style(f'{len(instance_fields)} field(s)', dim=True)}"
        )


@cli.command()
@_input_paths
@click.option(
    "--whitelist", "-w", "whitelist_files", multiple=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Whitelist file (repeatable)",
)
@click.option("--json", "as_json", is_flag=True, help="Emit a JSON report")
@click.option("--max-cycles", type=click.IntRange(min=1), default=None,
              help="Cap on cycles reported per strongly connected component")
@click.option("--element-policy", type=click.Choice(_POLICY_CHOICES), default="supplement",
              help="Whether generic/array element edges supplement or replace the container edge")
@click.option("--expand-subtypes", is_flag=True, help="Also link fields to declared subtypes of their type")
@click.option("--fail-on-cycles/--no-fail-on-cycles", default=True,
              help="Exit with status 1 when cycles are found")
@click.pass_context
def find(
    ctx: click.Context,
    paths: tuple[Path, ...],
    whitelist_files: tuple[Path, ...],
    as_json: bool,
    max_cycles: int | None,
    element_policy: str,
    expand_subtypes: bool,
    fail_on_cycles: bool,
):
    """Find possible reference cycles."""
    config = AnalysisConfig(
        element_policy=ElementPolicy(element_policy),
        expand_subtypes=expand_subtypes,
        max_cycles_per_component=max_cycles,
    )
    decls = _load(paths)
    whitelist = Whitelist.load(whitelist_files)
    result = run_analysis(decls, whitelist, config)

    if as_json:
        data = report_to_dict(result.cycles, result.truncations, result.diagnostics)
        data["graph"] = {
            "nodes": result.node_count,
            "edges": result.edge_count,
            "suppressed_edges": result.suppressed_edges,
        }
        click.echo(json.dumps(data, indent=2))
    else:
        click.echo(format_report(result.cycles, result.truncations, result.diagnostics), nl=False)

    if fail_on_cycles and result.cycles:
        ctx.exit(1)


@cli.command()
@click.option("--port", "-p", default=8421, help="Port number")
@click.option("--host", default="127.0.0.1", help="Host address")
def serve(port: int, host: str):
    """Start the HTTP analysis API."""
    try:
        import uvicorn
    except ImportError:
        raise click.ClickException(
            "uvicorn is required for the web API. "
            "Install with: pip install 'cycle-finder[web]'"
        )

    from cycle_finder.web import create_app

    click.echo(f"Starting cycle-finder API at http://{host}:{port}")
    uvicorn.run(create_app(), host=host, port=port, log_level="info")


if __name__ == "__main__":
    cli()
