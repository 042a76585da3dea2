"""CLI entry point for the branch decision maker."""

from __future__ import annotations

import asyncio
import json
import sys
from typing import Any

import click
from pydantic import ValidationError
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from config.logging_setup import configure_logging
from config.settings import get_settings
from decision_engine.errors import InvalidRequestError
from decision_engine.rules import DecisionEngine
from models.schemas import DecisionEnvelope, DecisionFailure, DecisionRequest
from orchestrator.decision_maker import DecisionMaker
from stores.memory import InMemoryStore


console = Console()


def _load_json(stream: Any) -> Any:
    """Read a JSON document from an open click file."""
    try:
        return json.load(stream)
    except json.JSONDecodeError as e:
        raise click.BadParameter(f"{stream.name}: invalid JSON ({e})") from e


def _emit(envelope: DecisionEnvelope) -> None:
    """Print the envelope and exit non-zero on failure."""
    console.print_json(envelope.model_dump_json())
    if isinstance(envelope, DecisionFailure):
        sys.exit(1)


@click.group()
@click.version_option(version="1.0.0")
@click.option("--log-level", default=None, help="Override LOG_LEVEL")
def cli(log_level: str | None) -> None:
    """Branch Decision Maker - pick one workflow branch for a contact."""
    configure_logging(log_level or get_settings().log_level)


@cli.command()
@click.argument("request_file", type=click.File("r"))
def decide(request_file: Any) -> None:
    """Run a decision against the configured Supabase stores."""
    request = _load_json(request_file)

    async def run() -> DecisionEnvelope:
        maker = DecisionMaker.from_settings()
        try:
            return await maker.decide(request)
        finally:
            await maker.close()

    _emit(asyncio.run(run()))


@cli.command()
@click.argument("workflow_file", type=click.File("r"))
@click.argument("request_file", type=click.File("r"))
@click.option("--explain", is_flag=True, help="Show the score of every candidate branch")
def simulate(workflow_file: Any, request_file: Any, explain: bool) -> None:
    """Run a decision against a local workflow definition."""
    try:
        store = InMemoryStore.from_dict(_load_json(workflow_file))
    except ValidationError as e:
        raise click.BadParameter(f"{workflow_file.name}: invalid workflow ({e})") from e
    request = _load_json(request_file)

    async def run() -> DecisionEnvelope:
        maker = DecisionMaker(branch_store=store, log_sink=store, action_store=store)
        if explain:
            await _print_explanation(maker, store, request)
        return await maker.decide(request)

    _emit(asyncio.run(run()))


async def _print_explanation(
    maker: DecisionMaker, store: InMemoryStore, request: Any
) -> None:
    """Print a table of per-branch scores for the request."""
    try:
        decision_request: DecisionRequest = maker.validate_request(request)
    except InvalidRequestError:
        return

    branches = await store.list_branches(decision_request.workflow_id)
    context = maker.build_context(decision_request, maker.clock())
    scored = DecisionEngine.score_branches(branches, context)

    table = Table(show_header=True, header_style="bold cyan", title="Branch Scores")
    table.add_column("Branch", style="dim")
    table.add_column("Priority", justify="right")
    table.add_column("Matched", justify="right")
    table.add_column("Confidence", justify="right")
    table.add_column("Eligible", justify="center")

    for item in scored:
        eligible = item.confidence >= DecisionEngine.CONFIDENCE_THRESHOLD
        table.add_row(
            item.branch.branch_name,
            f"{item.branch.priority:g}",
            f"{item.matched}/{item.total}",
            f"{item.confidence:.2f}",
            "[green]✓[/green]" if eligible else "[red]✗[/red]",
        )

    defaults = [b.branch_name for b in branches if b.is_default]
    console.print(Panel(f"Workflow {decision_request.workflow_id}", title="Simulation"))
    console.print(table)
    console.print(f"[dim]Default branch: {defaults[0] if defaults else 'none'}[/dim]")


def main() -> None:
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
