"""CLI commands for clipingest.

Usage:
    clipingest import [PATH] [--subdir DIR] [--select NAME]... [--scene S]
                      [--start-num N] [--all] [--dry-run] [--json]
    clipingest status [--json]
    clipingest takes list [--json]
    clipingest takes show <scene> <num>
    clipingest takes edit <scene> <num> [--scene S] [--num N] [--clip-name C]
                          [--select/--no-select]
    clipingest takes delete <scene> <num>
    clipingest config [--json]
    clipingest config set <key> <value>
"""

import asyncio
import json
import logging
import sys

import click
from rich.console import Console
from rich.progress import BarColumn, Progress, TextColumn, TimeRemainingColumn
from rich.table import Table

from clipingest.cli.i18n import get_help
from clipingest.config.manager import ConfigManager
from clipingest.models.types import ImportItem, ImportState, ItemState, JobStatus, TakeId
from clipingest.services.error_handling import (
    IMPORT_ERROR_DESCRIPTIONS,
    ApplicationError,
    ClipIngestError,
)
from clipingest.services.http import ApiTransport
from clipingest.services.import_job import ImportJobClient, SourceLister
from clipingest.services.orchestrator import ImportOrchestrator
from clipingest.services.reconciler import ImportReconciler
from clipingest.services.session_store import SessionStore
from clipingest.services.take_list import TakeEditor, group_by_scene
from clipingest.services.takes import TakeRegistry
from clipingest.utils.progress import progress_percentage
from clipingest.utils.sizes import format_file_size

console = Console()


def _transport(ctx) -> ApiTransport:
    server = ctx.obj["config"].config.server
    return ApiTransport(server.base_url, timeout=server.timeout_seconds)


def build_orchestrator(ctx, status_callback=None) -> ImportOrchestrator:
    """Wire an orchestrator from the current configuration."""
    settings = ctx.obj["config"].config.importing
    transport = _transport(ctx)
    reconciler = ImportReconciler(
        SourceLister(transport),
        TakeRegistry(transport),
        default_scene=settings.default_scene,
    )
    return ImportOrchestrator(
        reconciler,
        ImportJobClient(transport),
        session_store=ctx.obj.get("session") or SessionStore(),
        subdirectory=settings.default_subdirectory,
        poll_interval=settings.poll_interval,
        max_poll_retries=settings.max_poll_retries,
        max_poll_backoff=settings.max_poll_backoff,
        status_callback=status_callback,
    )


def _fail(message: str, output_json: bool = False) -> None:
    if output_json:
        click.echo(json.dumps({"error": message}))
    else:
        console.print(f"[red]Error: {message}[/red]")
    sys.exit(1)


@click.group()
@click.option("--verbose", "-v", is_flag=True, help=get_help("cli.verbose"))
@click.pass_context
def cli(ctx, verbose: bool):
    """clipingest - import clips from a card as scene/take records"""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    ctx.ensure_object(dict)
    ctx.obj.setdefault("config", ConfigManager())


# Override help text dynamically based on locale
cli.help = get_help("cli.description")


def _items_table(items: list[ImportItem]) -> Table:
    table = Table(title="Clips")
    table.add_column("", width=1)
    table.add_column("Clip", style="cyan")
    table.add_column("Size", justify="right")
    table.add_column("Scene")
    table.add_column("Take")
    table.add_column("Select")
    table.add_column("State")
    for item in items:
        table.add_row(
            "x" if item.checked else "",
            item.clip.name,
            format_file_size(item.clip.total_size),
            item.scene,
            item.num,
            "*" if item.select else "",
            _format_state(item.state),
        )
    return table


def _format_state(state: ItemState) -> str:
    """Format item state with color."""
    state_colors = {
        ItemState.READY: "[yellow]ready[/yellow]",
        ItemState.ACTIVE: "[blue]active[/blue]",
        ItemState.IMPORTED: "[green]imported[/green]",
        ItemState.ERROR: "[red]error[/red]",
    }
    return state_colors.get(state, state.value)


def _item_to_json(item: ImportItem) -> dict:
    return {
        "clip": item.clip.name,
        "checked": item.checked,
        "state": item.state.value,
        "scene": item.scene,
        "num": item.num,
        "select": item.select,
    }


async def _run_import(
    orchestrator: ImportOrchestrator,
    path: str,
    selects: tuple[str, ...],
    scene: str | None,
    start_num: int | None,
    all_mode: bool,
    dry_run: bool,
    output_json: bool,
    progress: Progress | None,
) -> int:
    """Load ``path``, apply edits, submit and follow the job.

    Returns:
        Process exit code

    Raises:
        ClipIngestError: If the import cannot be started
    """
    await orchestrator.open_path(path)
    if orchestrator.get_state() is ImportState.NO_DATA:
        raise ClipIngestError(f"No clips found in {path}")

    if all_mode:
        orchestrator.check_all()
    if scene is not None:
        orchestrator.items[0].scene = scene
        orchestrator.autofill_scene(0)
    if start_num is not None:
        orchestrator.items[0].num = str(start_num)
        orchestrator.autofill_num(0)
    for name in selects:
        item = orchestrator.find_item(name)
        if item is None:
            raise ClipIngestError(f"Unknown clip: {name}")
        item.select = True

    if dry_run:
        if output_json:
            batch = orchestrator.build_submission_batch()
            click.echo(json.dumps({"path": path, "items": batch}, indent=2))
        else:
            console.print(_items_table(orchestrator.items))
            console.print(
                f"Would import {len(orchestrator.build_submission_batch())} clips "
                f"({format_file_size(orchestrator.checked_total_bytes())})"
            )
        return 0

    if orchestrator.is_active():
        raise ClipIngestError("An import is already in progress")
    if not orchestrator.enabled:
        raise ClipIngestError("Imports are disabled on the server")
    if not orchestrator.any_checked():
        if not output_json:
            console.print("[yellow]Nothing to import[/yellow]")
        else:
            click.echo(json.dumps({"path": path, "items": []}))
        return 0

    if not output_json:
        console.print(
            f"Importing {len(orchestrator.build_submission_batch())} clips "
            f"({format_file_size(orchestrator.checked_total_bytes())}) from {path}"
        )

    try:
        poll_task = await orchestrator.start_import()
    except ApplicationError as e:
        detail = e.message or IMPORT_ERROR_DESCRIPTIONS.get(e.code, f"code {e.code}")
        raise ClipIngestError(f"Import rejected: {detail}") from e
    if progress is not None:
        with progress:
            await poll_task
    else:
        await poll_task

    errors = [item for item in orchestrator.items if item.state is ItemState.ERROR]
    if output_json:
        click.echo(
            json.dumps(
                {"path": path, "items": [_item_to_json(i) for i in orchestrator.items]},
                indent=2,
            )
        )
    else:
        console.print(_items_table(orchestrator.items))
        if errors:
            console.print(f"[red]{len(errors)} clips failed to import[/red]")
            if orchestrator.last_status is not None:
                for result in orchestrator.last_status.results:
                    if result.error:
                        console.print(f"  {result.clip.name}: {result.error}")
        else:
            console.print("[green]Import complete[/green]")
    return 1 if errors else 0


@cli.command("import")
@click.argument("path", required=False)
@click.option("--subdir", help=get_help("import.subdir"))
@click.option("--select", "selects", multiple=True, help=get_help("import.select"))
@click.option("--scene", help=get_help("import.scene"))
@click.option("--start-num", type=int, help=get_help("import.start_num"))
@click.option("--all", "all_mode", is_flag=True, help=get_help("import.all"))
@click.option("--dry-run", is_flag=True, help=get_help("import.dry_run"))
@click.option("--json", "output_json", is_flag=True, help=get_help("import.json"))
@click.pass_context
def import_cmd(
    ctx,
    path: str | None,
    subdir: str | None,
    selects: tuple[str, ...],
    scene: str | None,
    start_num: int | None,
    all_mode: bool,
    dry_run: bool,
    output_json: bool,
):
    """Import clips from a source directory."""
    progress = None
    task_id = None
    if not output_json:
        progress = Progress(
            TextColumn("[bold blue]{task.description}"),
            BarColumn(),
            TextColumn("{task.percentage:>3.0f}%"),
            TimeRemainingColumn(),
            console=console,
        )
        task_id = progress.add_task("Copying", total=100)

    def on_status(status: JobStatus) -> None:
        if progress is None:
            return
        description = status.pending[0].name if status.pending else "Copying"
        percent = progress_percentage(orchestrator.progress)
        progress.update(
            task_id, completed=100 if percent is None else percent, description=description
        )

    orchestrator = build_orchestrator(ctx, status_callback=on_status)
    if subdir is not None:
        orchestrator.subdirectory = subdir
    path = path or orchestrator.suggested_path
    if not path:
        _fail("No path given and no previous import path remembered", output_json)

    try:
        code = asyncio.run(
            _run_import(
                orchestrator,
                path,
                selects,
                scene,
                start_num,
                all_mode,
                dry_run,
                output_json,
                progress,
            )
        )
    except ClipIngestError as e:
        _fail(str(e), output_json)
    finally:
        orchestrator.close()
    sys.exit(code)


# Override import help text dynamically based on locale
import_cmd.help = get_help("import.description")


@cli.command()
@click.option("--json", "output_json", is_flag=True, help=get_help("status.json"))
@click.pass_context
def status(ctx, output_json: bool):
    """Show the state of the import job."""
    job_client = ImportJobClient(_transport(ctx))
    try:
        st = asyncio.run(job_client.get_status())
    except ClipIngestError as e:
        _fail(str(e), output_json)

    if output_json:
        click.echo(
            json.dumps(
                {
                    "enabled": st.enabled,
                    "active": st.active,
                    "bytes_copied": st.bytes_copied,
                    "bytes_total": st.bytes_total,
                    "eta": st.eta.isoformat() if st.eta else None,
                    "pending": [c.name for c in st.pending],
                    "results": [{"clip": r.clip.name, "error": r.error} for r in st.results],
                },
                indent=2,
            )
        )
        return

    if not st.enabled:
        console.print("[yellow]Imports are disabled on the server[/yellow]")
    if st.active:
        console.print("[bold]Import in progress[/bold]")
        console.print(
            f"  Copied: {format_file_size(st.bytes_copied)} of {format_file_size(st.bytes_total)}"
        )
        if st.eta:
            console.print(f"  ETA: {st.eta.strftime('%H:%M:%S')}")
        if st.pending:
            console.print(f"  Current clip: {st.pending[0].name} ({len(st.pending)} remaining)")
    else:
        console.print("No import running")

    if st.results:
        table = Table(title="Results")
        table.add_column("Clip", style="cyan")
        table.add_column("Result")
        for result in st.results:
            table.add_row(
                result.clip.name,
                f"[red]{result.error}[/red]" if result.error else "[green]ok[/green]",
            )
        console.print(table)


# Override status help text dynamically based on locale
status.help = get_help("status.description")


@cli.group()
def takes():
    """List, edit and delete recorded takes."""


takes.help = get_help("takes.description")


@takes.command("list")
@click.option("--json", "output_json", is_flag=True, help=get_help("takes.json"))
@click.pass_context
def takes_list(ctx, output_json: bool):
    """List takes grouped by scene."""
    registry = TakeRegistry(_transport(ctx))
    try:
        all_takes = asyncio.run(registry.list_takes())
    except ClipIngestError as e:
        _fail(str(e), output_json)

    if output_json:
        click.echo(json.dumps([t.to_dict() for t in all_takes], indent=2))
        return

    if not all_takes:
        console.print("No takes recorded")
        return

    for group in group_by_scene(all_takes):
        table = Table(title=f"Scene {group.scene}")
        table.add_column("Take")
        table.add_column("Clip", style="cyan")
        table.add_column("Select")
        for take in group.takes:
            table.add_row(take.id.num, take.clip_name, "*" if take.select else "")
        console.print(table)


takes_list.help = get_help("takes.list")


@takes.command("show")
@click.argument("scene")
@click.argument("num")
@click.pass_context
def takes_show(ctx, scene: str, num: str):
    """Show a single take."""
    editor = TakeEditor(TakeRegistry(_transport(ctx)))
    try:
        take = asyncio.run(editor.load(TakeId(scene, num)))
    except ClipIngestError as e:
        _fail(str(e))
    console.print(f"[bold]Take {take.id}[/bold]")
    console.print(f"  Clip: {take.clip_name or '-'}")
    console.print(f"  Select: {'yes' if take.select else 'no'}")


takes_show.help = get_help("takes.show")


@takes.command("edit")
@click.argument("scene")
@click.argument("num")
@click.option("--scene", "new_scene")
@click.option("--num", "new_num")
@click.option("--clip-name")
@click.option("--select/--no-select", default=None)
@click.pass_context
def takes_edit(
    ctx,
    scene: str,
    num: str,
    new_scene: str | None,
    new_num: str | None,
    clip_name: str | None,
    select: bool | None,
):
    """Update a take."""
    editor = TakeEditor(TakeRegistry(_transport(ctx)))
    try:
        take = asyncio.run(
            editor.save(
                TakeId(scene, num),
                scene=new_scene,
                num=new_num,
                clip_name=clip_name,
                select=select,
            )
        )
    except ClipIngestError as e:
        _fail(str(e))
    console.print(f"[green]✓ Saved take {take.id}[/green]")


takes_edit.help = get_help("takes.edit")


@takes.command("delete")
@click.argument("scene")
@click.argument("num")
@click.confirmation_option(prompt="Delete this take?")
@click.pass_context
def takes_delete(ctx, scene: str, num: str):
    """Delete a take."""
    editor = TakeEditor(TakeRegistry(_transport(ctx)))
    take_id = TakeId(scene, num)
    try:
        asyncio.run(editor.destroy(take_id))
    except ClipIngestError as e:
        _fail(str(e))
    console.print(f"[green]✓ Deleted take {take_id}[/green]")


takes_delete.help = get_help("takes.delete")


@cli.group(invoke_without_command=True)
@click.option("--json", "output_json", is_flag=True, help=get_help("config.json"))
@click.pass_context
def config(ctx, output_json: bool):
    """Display or modify configuration."""
    if ctx.invoked_subcommand is not None:
        return

    all_config = ctx.obj["config"].get_all()

    if output_json:
        click.echo(json.dumps(all_config, indent=2))
        return

    console.print("[bold]Current Configuration[/bold]")
    console.print()
    for section, values in all_config.items():
        if not isinstance(values, dict):
            continue
        console.print(f"[cyan]{section}:[/cyan]")
        for name, value in values.items():
            console.print(f"  {section}.{name}: {value if value != '' else '[not set]'}")
        console.print()

    console.print("[dim]Use 'clipingest config set <key> <value>' to change settings[/dim]")


config.help = get_help("config.description")


@config.command("set")
@click.argument("key")
@click.argument("value")
@click.pass_context
def config_set(ctx, key: str, value: str):
    """Modify configuration value."""
    config_manager = ctx.obj["config"]

    try:
        config_manager.set(key, value)
        config_manager.save()
        console.print(f"[green]✓ Set {key} = {value}[/green]")
    except (KeyError, ValueError) as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)


config_set.help = get_help("config.set")


def main():
    """Entry point for the CLI."""
    cli(obj={})


if __name__ == "__main__":
    main()
