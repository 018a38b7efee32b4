"""blamelens CLI - blame, slice, and encode from the terminal.

    blamelens blame src/app.py --lines 10,20
    blamelens uris src/app.py --lines 10,20
    blamelens decode 'gitblame:0. Jane Doe, ...?{"fileName": ...}'
"""

import asyncio
import json
import sys
from pathlib import Path
from typing import Any, NoReturn

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from blamelens.blame import (
    Blame,
    BlameLine,
    BlameStore,
    GitCommand,
    Range,
    from_blame_uri,
    to_blame_uri,
)
from blamelens.config import BlameLensConfig, get_config, load_config, save_default_config
from blamelens.errors import BlameLensError, ErrorCode
from blamelens.logging import configure_logging

console = Console()


def render_error(error: BlameLensError) -> NoReturn:
    """Print an error with its recovery hints and exit with status 1."""
    console.print(f"[red]✗ {escape(str(error))}[/red]")
    for hint in error.recovery_hints:
        console.print(f"  [dim]※ {escape(hint)}[/dim]")
    sys.exit(1)


def parse_lines(value: str | None) -> Range | None:
    """Parse a ``START,END`` option into a Range (0-based, END inclusive)."""
    if value is None:
        return None
    try:
        start, end = (int(part) for part in value.split(","))
    except ValueError as e:
        raise BlameLensError(
            code=ErrorCode.RANGE_INVALID,
            context={"value": value, "detail": "expected START,END"},
            cause=e,
        ) from e
    if start < 0 or end < start:
        raise BlameLensError(
            code=ErrorCode.RANGE_INVALID,
            context={"value": value, "detail": "need 0 <= START <= END"},
        )
    return Range.from_lines(start, end)


def _git(cfg: BlameLensConfig) -> GitCommand:
    return GitCommand(
        executable=cfg.git.executable,
        blame_args=tuple(cfg.git.blame_args),
        timeout=cfg.git.timeout,
    )


def _line_to_dict(line: BlameLine, blame: Blame) -> dict[str, Any]:
    commit = blame.commits.get(line.sha)
    return {
        "line": line.line,
        "original_line": line.original_line,
        "sha": line.sha,
        "author": commit.author if commit else None,
        "date": commit.date.isoformat() if commit else None,
        "file_name": commit.file_name if commit else None,
    }


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.option("--config", "config_path", type=click.Path(), default=None,
              help="Config file path (default: .blamelens/config.yaml)")
@click.version_option(version="0.1.0")
@click.pass_context
def main(ctx: click.Context, debug: bool, config_path: str | None) -> None:
    """blamelens - cached git blame for editor line ranges."""
    ctx.ensure_object(dict)
    try:
        cfg = load_config(config_path) if config_path else get_config()
    except BlameLensError as e:
        render_error(e)
    configure_logging(debug=debug or cfg.debug, persist=cfg.logging.persist)
    ctx.obj["config"] = cfg


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option("--lines", "lines", default=None, help="0-based line range START,END (inclusive)")
@click.option("--sha", default=None, help="Only show lines from this commit")
@click.option("--json", "json_output", is_flag=True, help="Output as JSON")
@click.pass_context
def blame(
    ctx: click.Context,
    file: str,
    lines: str | None,
    sha: str | None,
    json_output: bool,
) -> None:
    """Show blame for FILE, optionally limited to a line range or commit."""
    cfg: BlameLensConfig = ctx.obj["config"]
    file_name = str(Path(file).resolve())

    async def run() -> Blame:
        store = BlameStore(_git(cfg))
        full = await store.blame_file(file_name)
        line_range = parse_lines(lines) or Range.from_lines(0, max(len(full.lines) - 1, 0))
        if sha is None:
            return await store.get_blame_for_range(file_name, line_range)
        result = await store.get_blame_for_sha_range(file_name, sha, line_range)
        commits = {sha: result.commit} if result.commit else {}
        return Blame(commits=commits, lines=result.lines)

    try:
        result = asyncio.run(run())
    except BlameLensError as e:
        render_error(e)

    if json_output:
        click.echo(json.dumps([_line_to_dict(line, result) for line in result.lines], indent=2))
        return

    table = Table(title=Path(file).name, show_header=True, header_style="bold cyan")
    table.add_column("Line", justify="right")
    table.add_column("SHA", style="yellow")
    table.add_column("Author")
    table.add_column("Date", style="dim")

    for line in result.lines:
        commit = result.commits.get(line.sha)
        table.add_row(
            str(line.line),
            line.sha,
            commit.author if commit else "?",
            commit.date.strftime("%Y-%m-%d") if commit else "?",
        )

    console.print(table)
    console.print(f"[dim]{len(result.lines)} lines, {len(result.commits)} commits[/dim]")


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option("--lines", "lines", default=None, help="0-based line range START,END (inclusive)")
@click.pass_context
def uris(ctx: click.Context, file: str, lines: str | None) -> None:
    """Print one blame URI per commit touching the range of FILE."""
    cfg: BlameLensConfig = ctx.obj["config"]
    git = _git(cfg)
    file_name = str(Path(file).resolve())

    async def run() -> list[str]:
        store = BlameStore(git)
        full = await store.blame_file(file_name)
        line_range = parse_lines(lines) or Range.from_lines(0, max(len(full.lines) - 1, 0))
        result = await store.get_blame_for_range(file_name, line_range)
        repo_path = await git.repo_root(file_name)
        count = len(result.commits)
        return [
            to_blame_uri(repo_path, commit, line_range, index, count, scheme=cfg.uri.scheme)
            for index, commit in enumerate(result.commits.values())
        ]

    try:
        for uri in asyncio.run(run()):
            click.echo(uri)
    except BlameLensError as e:
        render_error(e)


@main.command()
@click.argument("uri")
@click.pass_context
def decode(ctx: click.Context, uri: str) -> None:
    """Decode the payload of a blame URI as JSON."""
    cfg: BlameLensConfig = ctx.obj["config"]
    try:
        data = from_blame_uri(uri, scheme=cfg.uri.scheme)
    except BlameLensError as e:
        render_error(e)

    click.echo(json.dumps({
        "fileName": data.file_name,
        "sha": data.sha,
        "range": data.range.to_list(),
        "index": data.index,
    }, indent=2))


@main.command()
@click.option("--show", is_flag=True, help="Show current configuration")
@click.option("--init", is_flag=True, help="Create default config file")
@click.option("--path", type=click.Path(), help="Config file path (default: .blamelens/config.yaml)")
@click.pass_context
def config(ctx: click.Context, show: bool, init: bool, path: str | None) -> None:
    """Manage blamelens configuration.

    Configuration is loaded from (in priority order):
    1. Environment variables (BLAMELENS_*)
    2. .blamelens/config.yaml (project-local)
    3. ~/.blamelens/config.yaml (user-global)
    4. Built-in defaults
    """
    if init:
        saved_path = save_default_config(path or ".blamelens/config.yaml")
        console.print(f"[green]✓ Config file created:[/green] {escape(str(saved_path))}")
        return

    cfg: BlameLensConfig = ctx.obj["config"]
    if path:
        try:
            cfg = load_config(path)
        except BlameLensError as e:
            render_error(e)

    console.print("[bold]blamelens configuration[/bold]")
    console.print("\n[cyan]Git[/cyan]")
    console.print(f"  Executable: {escape(cfg.git.executable)}")
    console.print(f"  Blame args: {escape(' '.join(cfg.git.blame_args))}")
    console.print(f"  Timeout: {cfg.git.timeout}s")
    console.print("\n[cyan]URI[/cyan]")
    console.print(f"  Scheme: {escape(cfg.uri.scheme)}")
    console.print("\n[cyan]Logging[/cyan]")
    console.print(f"  Persist: {cfg.logging.persist}")
    console.print(f"  Debug: {cfg.debug}")
