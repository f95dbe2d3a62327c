"""agent-relay CLI interface."""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any, Dict, cast

import click  # type: ignore[import-not-found]
from rich.console import Console  # type: ignore[import-not-found]
from rich.markup import escape  # type: ignore[import-not-found]
from rich.table import Table  # type: ignore[import-not-found]

from agent_relay.core.settings import configure_logging, get_settings

console = Console(force_terminal=True, stderr=False)


def load_document(path: str) -> Dict[str, Any]:
    """Read a JSON configuration document, exiting with status 1 on failure."""
    try:
        return json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        console.print(f"[red]Error: Failed to read {escape(path)}: {escape(str(e))}[/red]", soft_wrap=True)
        sys.exit(1)


@click.group()
@click.version_option(version="0.1.0")
@click.option("--log-level", "-l", default=None, help="Log level (default: AGENT_RELAY_LOG_LEVEL)")
def cli(log_level: str | None) -> None:
    """agent-relay - inspect and validate delegation configurations"""
    configure_logging(log_level.upper() if log_level else None)


@click.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@click.option("--repair", "-r", is_flag=True, help="Drop references to unknown agents")
@click.option("--output", "-o", type=click.Path(dir_okay=False), help="Write the repaired document here")
def validate(path: str, repair: bool, output: str | None) -> None:
    """Validate a configuration file"""
    from agent_relay.permissions.validator import PermissionValidator

    document = load_document(path)
    report = PermissionValidator(max_agents=get_settings().max_agents).validate(
        document, auto_repair=repair
    )

    for error in report.errors:
        console.print(f"[red]error[/red] {escape(error)}", soft_wrap=True)
    for warning in report.warnings:
        console.print(f"[yellow]warning[/yellow] {escape(warning)}", soft_wrap=True)

    if output and report.valid:
        Path(output).write_text(json.dumps(report.repaired, indent=2), encoding="utf-8")
        console.print(f"[dim]Repaired configuration written to {output}[/dim]")

    if not report.valid:
        console.print(f"[red]Invalid configuration ({len(report.errors)} error(s))[/red]")
        sys.exit(1)

    agents = report.repaired.get("agents", [])
    console.print(
        f"[green]Configuration is valid[/green] "
        f"({len(agents)} agent(s), entry agent: {report.repaired.get('entry_agent')})"
    )


@click.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
def graph(path: str) -> None:
    """Show the delegation graph of a configuration file"""
    from agent_relay.permissions.evaluate import build_delegation_graph, format_cycle
    from agent_relay.permissions.validator import PermissionValidator

    document = load_document(path)
    report = PermissionValidator(max_agents=get_settings().max_agents).validate(document)
    agents = [agent for agent in report.repaired.get("agents", []) if isinstance(agent, dict)]
    edges = build_delegation_graph(agents)

    table = Table()
    table.add_column("Agent", style="cyan")
    table.add_column("Policy", style="dim")
    table.add_column("Delegates to", style="green")

    for agent in agents:
        name = agent.get("name")
        if name not in edges:
            continue
        policy = agent.get("delegation_permissions") or {}
        marker = " (entry)" if name == report.repaired.get("entry_agent") else ""
        table.add_row(f"{name}{marker}", str(policy.get("type")), ", ".join(edges[name]) or "-")

    console.print(table)

    for cycle in report.cycles:
        console.print(f"[yellow]cycle[/yellow] {escape(format_cycle(cycle))}", soft_wrap=True)
    if not report.valid:
        console.print(f"[red]Configuration has {len(report.errors)} error(s); run validate for details[/red]")


cast(Any, cli).add_command(validate)
cast(Any, cli).add_command(graph)


if __name__ == "__main__":
    cli()
