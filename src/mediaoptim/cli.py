from __future__ import annotations

from dataclasses import dataclass
import json
from pathlib import Path
from typing import Annotated, Any

import typer
from rich.console import Console
from rich.table import Table

from mediaoptim.config import load_config, write_default_config
from mediaoptim.errors import MediaOptimError
from mediaoptim.output_models import OptimizedOutcome, RunResult
from mediaoptim.paths import app_root, default_config_path
from mediaoptim.pipeline import RunOptions
from mediaoptim.service import MediaService
from mediaoptim.util.logging import setup_logging, use_color

app = typer.Typer(help="mediaoptim: re-encode site media under a size budget")
cache_app = typer.Typer(help="Inspect the optimisation cache")
app.add_typer(cache_app, name="cache")


@dataclass(slots=True)
class AppState:
    service: MediaService
    console: Console
    config_path: Path


def _state(ctx: typer.Context) -> AppState:
    st = ctx.obj
    if not isinstance(st, AppState):
        raise RuntimeError("app state not initialized")
    return st


def _emit_obj(console: Console, obj: dict, json_out: bool) -> None:
    if json_out:
        typer.echo(json.dumps(obj, indent=2))
        return
    for k, v in obj.items():
        console.print(f"[bold]{k}[/bold]: {v}")


def _split_args(args: list[str]) -> tuple[list[str], list[str]]:
    paths: list[str] = []
    unknown: list[str] = []
    for arg in args:
        if arg.startswith("-"):
            unknown.append(arg)
        elif arg:
            paths.append(arg)
    return paths, unknown


def _emit_run(console: Console, result: RunResult, json_out: bool) -> None:
    if json_out:
        typer.echo(json.dumps(result.model_dump(mode="json"), indent=2))
        return

    optimised = [o for o in result.processed if isinstance(o, OptimizedOutcome)]
    if optimised:
        table = Table(title="optimised media")
        table.add_column("file")
        table.add_column("before", justify="right")
        table.add_column("after", justify="right")
        table.add_column("q", justify="right")
        table.add_column("saved", justify="right")
        table.add_column("renamed")
        for o in optimised:
            table.add_row(
                o.output_public_path,
                f"{o.original_bytes / 1024:.1f} KB",
                f"{o.output_bytes / 1024:.1f} KB",
                str(o.quality),
                f"{o.saving_pct:.1f}%",
                "yes" if o.renamed else "",
            )
        console.print(table)

    s = result.summary
    errors = f"[red]{s.errors} errors[/red]" if s.errors else "[green]0 errors[/green]"
    parts = [f"[green]{s.optimized} optimised[/green]", f"[yellow]{s.skipped} skipped[/yellow]"]
    if s.dry_run:
        parts.append(f"[cyan]{s.dry_run} dry run[/cyan]")
    parts.append(errors)
    console.print(f"[bold]Summary:[/bold] {' · '.join(parts)}")


@app.callback()
def main(
    ctx: typer.Context,
    config: Annotated[Path | None, typer.Option("--config", help="Config YAML path")] = None,
    root: Annotated[Path | None, typer.Option("--app-root", help="Site root (defaults to $MEDIAOPTIM_APP_ROOT or cwd)")] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Verbose logging")] = False,
) -> None:
    setup_logging(verbose)
    base = root.expanduser().resolve() if root else app_root()
    cfg_path = config.expanduser() if config else default_config_path(base)
    color_on = use_color()
    try:
        cfg = load_config(cfg_path, root=base)
    except MediaOptimError as exc:
        Console(stderr=True).print(f"[red]config error:[/red] {exc}")
        raise typer.Exit(1) from exc
    color_on = color_on and cfg.ui.color
    console = Console(color_system="auto" if color_on else None, force_terminal=color_on)
    ctx.obj = AppState(
        service=MediaService(cfg),
        console=console,
        config_path=cfg_path,
    )


@app.command(
    "optimize",
    context_settings={"allow_extra_args": True, "ignore_unknown_options": True},
)
def optimize_cmd(
    ctx: typer.Context,
    paths: Annotated[list[str], typer.Argument(help="Files or glob patterns to restrict processing")] = [],
    force: Annotated[bool, typer.Option("--force", help="Ignore the cache and re-encode everything")] = False,
    dry_run: Annotated[bool, typer.Option("--dry-run", help="Report what would change without touching files")] = False,
    quality: Annotated[int | None, typer.Option("--quality", help="Starting WebP quality")] = None,
    min_quality: Annotated[int | None, typer.Option("--min-quality", help="Lowest quality to try")] = None,
    max_bytes: Annotated[int | None, typer.Option("--max-bytes", help="Output size budget in bytes")] = None,
    json_out: Annotated[bool, typer.Option("--json")] = False,
) -> None:
    st = _state(ctx)
    targets, unknown = _split_args([*paths, *ctx.args])
    for flag in unknown:
        st.console.print(f"[yellow]Ignoring unknown flag {flag}[/yellow]")

    options = RunOptions(
        force=force,
        dry_run=dry_run,
        quality=quality,
        min_quality=min_quality,
        max_bytes=max_bytes,
    )
    try:
        result = st.service.optimize(targets, options=options)
    except MediaOptimError as exc:
        st.console.print(f"[red]Unexpected error:[/red] {exc}")
        raise typer.Exit(1) from exc
    if not result.processed and not json_out:
        st.console.print("[yellow]No media files found to optimise.[/yellow]")
        return
    _emit_run(st.console, result, json_out)


@app.command("init-config")
def init_config(
    ctx: typer.Context,
    path: Annotated[Path | None, typer.Option("--path", help="Write config to this path")] = None,
) -> None:
    st = _state(ctx)
    written = write_default_config(path.expanduser() if path else st.config_path)
    st.console.print(f"[green]config:[/green] {written}")


@app.command("status")
def status_cmd(
    ctx: typer.Context,
    json_out: Annotated[bool, typer.Option("--json")] = False,
) -> None:
    st = _state(ctx)
    try:
        payload = st.service.status()
    except MediaOptimError as exc:
        st.console.print(f"[red]status failed:[/red] {exc}")
        raise typer.Exit(1) from exc
    _emit_obj(st.console, payload, json_out)


@cache_app.command("ls")
def cache_ls_cmd(
    ctx: typer.Context,
    json_out: Annotated[bool, typer.Option("--json")] = False,
) -> None:
    st = _state(ctx)
    try:
        rows: list[dict[str, Any]] = st.service.cache_list()
    except MediaOptimError as exc:
        st.console.print(f"[red]cache read failed:[/red] {exc}")
        raise typer.Exit(1) from exc
    if json_out:
        typer.echo(json.dumps(rows, indent=2))
        return
    table = Table(title="cache entries")
    table.add_column("public_path")
    table.add_column("size", justify="right")
    table.add_column("mtimeMs", justify="right")
    for row in rows:
        table.add_row(str(row["public_path"]), str(row["size"]), f"{row['mtimeMs']:.3f}")
    st.console.print(table)


@cache_app.command("prune")
def cache_prune_cmd(
    ctx: typer.Context,
    json_out: Annotated[bool, typer.Option("--json")] = False,
) -> None:
    st = _state(ctx)
    try:
        payload = st.service.cache_prune()
    except MediaOptimError as exc:
        st.console.print(f"[red]cache prune failed:[/red] {exc}")
        raise typer.Exit(1) from exc
    _emit_obj(st.console, payload, json_out)


if __name__ == "__main__":
    app()
