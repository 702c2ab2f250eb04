"""Command-line interface for automaton sandbox tooling.

Commands:
- automaton-sandbox provision: Adopt or create the automaton's sandbox
- automaton-sandbox sync: Push local state into the sandbox
- automaton-sandbox init-repo: Initialize the state repository in the sandbox
- automaton-sandbox commit <description>: Record a state change
- automaton-sandbox history: Show state commit history
- automaton-sandbox telemetry tail: Show recent telemetry events
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable, Coroutine
from dataclasses import asdict
from pathlib import Path
from typing import Any, TypeVar

import click
import httpx

from .config import AutomatonConfig, load_config
from .conway.client import ConwayError, HttpConwayClient
from .conway.provision import ensure_sandbox, sync_state_to_sandbox
from .git.state_versioning import StateVersioning
from .telemetry import EVENT_TYPES, EventType, TelemetrySink, new_run_id, read_events
from .types import GitLogEntry

T = TypeVar("T")


def setup_logging(level: str = "info") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def build_client(config: AutomatonConfig) -> HttpConwayClient:
    if not config.conway.api_key:
        raise click.ClickException(
            "Conway API key is required (set conway.api_key or CONWAY_API_KEY)"
        )
    return HttpConwayClient(
        api_key=config.conway.api_key,
        api_url=config.conway.api_url,
        timeout_seconds=config.conway.timeout_seconds,
    )


async def _sandbox_client(client: HttpConwayClient, config: AutomatonConfig) -> HttpConwayClient:
    """Bind the client to the configured sandbox, provisioning one if none is set."""
    sandbox_id = config.sandbox_id
    if not sandbox_id:
        sandbox_id = (await ensure_sandbox(client, config)).id
    return client.with_sandbox(sandbox_id)


def _run(coro: Coroutine[Any, Any, T]) -> T:
    try:
        return asyncio.run(coro)
    except (ConwayError, httpx.HTTPError) as e:
        raise click.ClickException(str(e)) from e


class _Context:
    def __init__(self, config: AutomatonConfig):
        self.config = config
        self.run_id = new_run_id()
        self.sink = TelemetrySink(
            enabled=config.telemetry.enabled,
            path=config.resolved_telemetry_path(),
        )

    def record(self, event_type: EventType, sandbox_id: str, data: dict[str, Any]) -> None:
        self.sink.record(self.run_id, event_type, sandbox_id, data)

    def with_sandbox(self, fn: Callable[[HttpConwayClient], Awaitable[T]]) -> T:
        client = build_client(self.config)

        async def _go() -> T:
            return await fn(await _sandbox_client(client, self.config))

        return _run(_go())


pass_context = click.make_pass_decorator(_Context)


@click.group()
@click.version_option(version="0.1.0", prog_name="automaton-sandbox")
@click.option("--config", "-c", type=click.Path(exists=True), help="Config file path")
@click.pass_context
def cli(ctx: click.Context, config: str | None) -> None:
    """Conway sandbox provisioning and state versioning for an automaton."""
    automaton_config = load_config(config)
    setup_logging(automaton_config.log_level)
    ctx.obj = _Context(automaton_config)


@cli.command()
@pass_context
def provision(ctx: _Context) -> None:
    """Adopt the newest running sandbox, or create one.

    Example:
        automaton-sandbox provision
    """
    client = build_client(ctx.config)
    info = _run(ensure_sandbox(client, ctx.config))
    ctx.record("sandbox_ready", info.id, asdict(info))
    click.echo(f"Sandbox: {info.id} ({info.status}, {info.region or 'unknown region'})")


@cli.command()
@click.option(
    "--local-dir",
    type=click.Path(file_okay=False),
    default=None,
    help="Local state directory (default: state.local_dir from config)",
)
@pass_context
def sync(ctx: _Context, local_dir: str | None) -> None:
    """Push allow-listed state files and skill docs into the sandbox."""
    source = Path(local_dir) if local_dir else ctx.config.resolved_local_dir()

    async def _sync(client: HttpConwayClient) -> str:
        await sync_state_to_sandbox(client, source)
        return client.sandbox_id

    sandbox_id = ctx.with_sandbox(_sync)
    ctx.record("state_synced", sandbox_id, {"local_dir": str(source)})
    click.echo(f"Synced {source} -> {sandbox_id}:{ctx.config.state.sandbox_dir}")


def _versioning(ctx: _Context, client: HttpConwayClient) -> StateVersioning:
    return StateVersioning(
        client,
        ctx.config.state.sandbox_dir,
        author_name=ctx.config.git.author_name,
        author_email=ctx.config.git.author_email,
    )


@cli.command("init-repo")
@pass_context
def init_repo(ctx: _Context) -> None:
    """Initialize the state repository (no-op if it already exists)."""

    async def _init(client: HttpConwayClient) -> str:
        await _versioning(ctx, client).init()
        return client.sandbox_id

    sandbox_id = ctx.with_sandbox(_init)
    ctx.record("state_repo_initialized", sandbox_id, {"path": ctx.config.state.sandbox_dir})
    click.echo(f"State repo ready at {ctx.config.state.sandbox_dir}")


@cli.command()
@click.argument("description")
@click.option(
    "--category",
    default="state",
    show_default=True,
    help="Commit category (soul, skill, heartbeat, config, state, ...)",
)
@pass_context
def commit(ctx: _Context, description: str, category: str) -> None:
    """Commit pending state changes as '<category>: <description>'."""

    async def _commit(client: HttpConwayClient) -> tuple[str, str]:
        return client.sandbox_id, await _versioning(ctx, client).commit(description, category)

    sandbox_id, result = ctx.with_sandbox(_commit)
    ctx.record("state_committed", sandbox_id, {"category": category, "result": result})
    click.echo(result)


@cli.command()
@click.option("--limit", "-n", type=int, default=None, help="Number of commits to show")
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["text", "json"]),
    default="text",
    show_default=True,
)
@pass_context
def history(ctx: _Context, limit: int | None, output_format: str) -> None:
    """Show the state repository history, newest first."""
    count = limit if limit is not None else ctx.config.git.history_limit
    if count <= 0:
        raise click.BadParameter("must be positive", param_hint="--limit")

    async def _history(client: HttpConwayClient) -> list[GitLogEntry]:
        return await _versioning(ctx, client).history(count)

    entries = ctx.with_sandbox(_history)
    if output_format == "json":
        click.echo(json.dumps([asdict(e) for e in entries], indent=2))
        return
    for entry in entries:
        click.echo(f"{entry.hash[:10]}  {entry.date}  {entry.message}")


@cli.group()
def telemetry() -> None:
    """Telemetry utilities."""


@telemetry.command("tail")
@click.option(
    "--lines",
    "-n",
    type=int,
    default=50,
    show_default=True,
    help="Number of telemetry events to show.",
)
@click.option(
    "--type",
    "event_type",
    type=click.Choice(sorted(EVENT_TYPES)),
    default=None,
    help="Only show events of this type.",
)
@click.option("--sandbox", "sandbox_id", default=None, help="Only show events for this sandbox id.")
@pass_context
def telemetry_tail(
    ctx: _Context, lines: int, event_type: str | None, sandbox_id: str | None
) -> None:
    """Print the last N telemetry events."""
    path = ctx.config.resolved_telemetry_path()
    if not path.exists():
        raise click.ClickException(f"Telemetry file not found: {path}")
    for event in read_events(
        path, limit=max(0, lines), event_type=event_type, sandbox_id=sandbox_id
    ):
        click.echo(json.dumps(event, ensure_ascii=False))


def main() -> None:
    """Entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
