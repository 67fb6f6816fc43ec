"""CLI entry point for rolegate."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Annotated, Any

import typer
import yaml
from rich import print as rprint
from rich.syntax import Syntax
from rich.table import Table

from rolegate.admin import permission_matrix
from rolegate.catalog import ACTIONS, RESOURCES
from rolegate.config import RolegateConfig, load_config
from rolegate.config.loader import DEFAULT_CONFIG_TEMPLATE
from rolegate.context import PermissionContext
from rolegate.errors import PolicyLoadError
from rolegate.evaluator import find_malformed
from rolegate.log import configure_logging
from rolegate.models import dump_permissions_map
from rolegate.sources import FileSource, PolicySource, create_source
from rolegate.store import PolicyStore

app = typer.Typer(
    name="rolegate",
    help="Attribute-aware role permission checks over flat rule sets.",
)

config_app = typer.Typer(help="Manage rolegate configuration.")
app.add_typer(config_app, name="config")

# Global state
_config: RolegateConfig | None = None
_policy_path: str | None = None


def _get_config() -> RolegateConfig:
    if _config is None:
        return load_config()
    return _config


@app.callback()
def main(
    config: Annotated[
        str | None, typer.Option("--config", "-c", help="Path to rolegate.yaml")
    ] = None,
    policy: Annotated[
        str | None, typer.Option("--policy", "-p", help="Policy file, overrides config")
    ] = None,
) -> None:
    """Global options."""
    global _config, _policy_path
    try:
        _config = load_config(config)
    except ValueError as e:
        rprint(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    _policy_path = policy
    configure_logging(_config.log_level, _config.log_format)


def _get_source(cfg: RolegateConfig) -> PolicySource:
    if _policy_path:
        return FileSource(_policy_path)
    try:
        return create_source(cfg.policy)
    except ValueError as e:
        rprint(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)


def _load_store(cfg: RolegateConfig) -> PolicyStore:
    store = PolicyStore()
    try:
        asyncio.run(store.load(_get_source(cfg)))
    except PolicyLoadError as e:
        rprint(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    return store


def _parse_value(text: str) -> Any:
    """Read a command-line value the way the policy file would, e.g. `123` as an int."""
    if not text:
        return ""
    try:
        return yaml.safe_load(text)
    except yaml.YAMLError:
        return text


def _parse_subject(text: str | None) -> Any:
    if text is None:
        return None
    value = _parse_value(text)
    return value if isinstance(value, (str, int, float, bool)) else text


def _parse_conditions(pairs: list[str]) -> dict[str, Any]:
    """Parse repeated ``key=value`` options; values go through ``_parse_value``."""
    conditions: dict[str, Any] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise ValueError(f"Invalid condition '{pair}': expected key=value")
        conditions[key] = _parse_value(value)
    return conditions


@app.command()
def check(
    role: str = typer.Argument(..., help="Role to evaluate as"),
    resource: str = typer.Argument(..., help="Resource id, e.g. shoots"),
    action: str = typer.Argument(..., help="Action id, e.g. view"),
    subject: str | None = typer.Option(None, "--subject", "-s", help="Caller's own identifier"),
    when: list[str] = typer.Option([], "--when", "-w", help="Request condition key=value"),
    format: Annotated[
        str, typer.Option("--format", "-f", help="Output format: text or json")
    ] = "text",
) -> None:
    """Answer whether ROLE may perform ACTION on RESOURCE."""
    cfg = _get_config()
    try:
        conditions = _parse_conditions(when)
    except ValueError as e:
        rprint(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    ctx = PermissionContext(_get_source(cfg), config=cfg)
    try:
        asyncio.run(ctx.start(role, _parse_subject(subject)))
    except PolicyLoadError as e:
        rprint(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    decision = ctx.check(resource, action, conditions or None)
    if format == "json":
        rprint(json.dumps(decision.model_dump(mode="json")))
    elif decision.allow:
        rprint(f"[green]ALLOW[/green] {role} {action} {resource} (rule {decision.rule_id})")
    else:
        rprint(f"[red]DENY[/red] {role} {action} {resource} ({decision.reason.value})")

    if not decision.allow:
        raise typer.Exit(1)


@app.command()
def roles() -> None:
    """List roles in the active policy."""
    store = _load_store(_get_config())
    snapshot = store.current()

    table = Table(title=f"Roles ({len(snapshot.permissions)})")
    table.add_column("Role", style="cyan")
    table.add_column("Rules", justify="right")
    table.add_column("Conditional", justify="right", style="yellow")
    for name in snapshot.roles:
        rules = snapshot.permissions[name].permissions
        conditional = sum(1 for r in rules if not r.is_unconditional)
        table.add_row(name, str(len(rules)), str(conditional))
    rprint(table)


@app.command()
def matrix(
    role: str = typer.Argument(..., help="Role to show"),
) -> None:
    """Show the resource x action grant matrix for ROLE."""
    store = _load_store(_get_config())
    snapshot = store.current()
    if role not in snapshot.permissions:
        rprint(f"[yellow]Unknown role '{role}'.[/yellow] Known: {', '.join(snapshot.roles)}")
        raise typer.Exit(1)

    catalog_ids = [r.id for r in RESOURCES]
    extra = sorted(
        {r.resource for r in snapshot.permissions[role].permissions} - set(catalog_ids)
    )
    grid = permission_matrix(snapshot.permissions, role, resources=catalog_ids + extra)

    table = Table(title=f"Permissions for {role}")
    table.add_column("Resource", style="cyan")
    for action in ACTIONS:
        table.add_column(action.name, justify="center")
    for resource, row in grid.items():
        table.add_row(resource, *("[green]✓[/green]" if row[a.id] else "-" for a in ACTIONS))
    rprint(table)


@app.command()
def validate(
    path: str = typer.Argument(..., help="Policy file (YAML or JSON)"),
) -> None:
    """Validate a policy file and report rules with malformed conditions."""
    cfg = _get_config()
    store = PolicyStore()
    try:
        asyncio.run(store.load(FileSource(path)))
    except PolicyLoadError as e:
        rprint(f"[red]FAIL[/red] {e}")
        raise typer.Exit(1)

    snapshot = store.current()
    problems: list[str] = []
    for name in snapshot.roles:
        for rule in snapshot.permissions[name].permissions:
            for e in find_malformed(rule, cfg.evaluation.self_sentinel):
                problems.append(f"{name}: {e}")

    if problems:
        for problem in problems:
            rprint(f"  [red]error:[/red] {problem}")
        raise typer.Exit(1)
    rprint(f"[green]PASS[/green] {path} ({len(snapshot.permissions)} roles)")


@app.command()
def catalog() -> None:
    """List known resources and actions."""
    resources = Table(title=f"Resources ({len(RESOURCES)})")
    resources.add_column("Id", style="cyan")
    resources.add_column("Name")
    resources.add_column("Description", style="dim")
    for r in RESOURCES:
        resources.add_row(r.id, r.name, r.description)
    rprint(resources)

    actions = Table(title=f"Actions ({len(ACTIONS)})")
    actions.add_column("Id", style="cyan")
    actions.add_column("Name")
    actions.add_column("Description", style="dim")
    for a in ACTIONS:
        actions.add_row(a.id, a.name, a.description)
    rprint(actions)


@config_app.command("show")
def config_show() -> None:
    """Show current resolved configuration."""
    cfg = _get_config()
    rprint(Syntax(yaml.dump(cfg.model_dump(), default_flow_style=False), "yaml"))


@config_app.command("init")
def config_init(
    force: bool = typer.Option(False, "--force", help="Overwrite existing config"),
) -> None:
    """Create default rolegate.yaml in current directory."""
    target = Path("rolegate.yaml")
    if target.exists() and not force:
        rprint("[yellow]rolegate.yaml already exists.[/yellow] Use --force to overwrite.")
        raise typer.Exit(1)
    target.write_text(DEFAULT_CONFIG_TEMPLATE)
    rprint(f"[green]Created[/green] {target}")


@app.command()
def export(
    format: Annotated[
        str, typer.Option("--format", "-f", help="Output format: yaml or json")
    ] = "yaml",
) -> None:
    """Print the active policy as a document."""
    store = _load_store(_get_config())
    document = dump_permissions_map(store.current().permissions)
    if format == "json":
        typer.echo(json.dumps(document, indent=2))
    else:
        typer.echo(yaml.safe_dump(document, sort_keys=False))
