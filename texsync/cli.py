"""CLI interface for texsync."""

import logging
from contextlib import nullcontext
from pathlib import Path
from typing import Any, Callable, Optional

import click

from .cli_progress import SyncProgressDisplay
from .config import config
from .exceptions import ConfigError, ConflictError, TexSyncError
from .models import SyncOutcome
from .output import OutputFormatter
from .sync import SyncEngine, SyncJob, SyncProgressEvent, SyncStateManager

logger = logging.getLogger(__name__)


def _consume_events(
    job: SyncJob, out: OutputFormatter, handle: Callable[[SyncProgressEvent], None]
) -> None:
    """Feed job events to ``handle`` until the terminal event.

    Ctrl-C requests cancellation; the job stops after the file in progress
    and the remaining events are still drained.
    """
    try:
        for event in job.events():
            handle(event)
    except KeyboardInterrupt:
        job.cancel()
        out.warning("Cancelling after the current file...")
        for event in job.events():
            handle(event)


def _run_job(job: SyncJob, out: OutputFormatter) -> SyncOutcome:
    """Display a running job and return its outcome."""
    show_progress = not out.quiet and not out.json_output
    display = SyncProgressDisplay() if show_progress else None

    def handle(event: SyncProgressEvent) -> None:
        logger.debug(f"[{event.stage.value}] {event.message}")
        if display is not None:
            display.handle_event(event)

    with display if display is not None else nullcontext():
        _consume_events(job, out, handle)
    return job.result()


def _resolve_textures_dir(
    ctx: Any, out: OutputFormatter, textures_dir: Optional[str]
) -> Optional[Path]:
    """Use the given directory or fall back to the remembered one."""
    if textures_dir:
        return Path(textures_dir)
    state = ctx.obj["state_manager"].load_state()
    if state.textures_path:
        return Path(state.textures_path)
    out.error(
        "No textures directory given and none remembered. "
        "Pass TEXTURES_DIR or run 'texsync set-path'."
    )
    return None


def _report_outcome(out: OutputFormatter, outcome: SyncOutcome, action: str) -> None:
    if out.json_output:
        out.output_json(outcome.to_dict())
        return
    if outcome.cancelled:
        out.warning(f"{action} cancelled - partial progress was kept")
    else:
        out.success(f"{action} complete")
    out.info(f"  Downloaded: {outcome.files_downloaded}")
    out.info(f"  Deleted:    {outcome.files_deleted}")
    out.info(f"  Skipped:    {outcome.files_skipped}")
    out.info(f"  Revision:   {outcome.resulting_revision}")
    for path in outcome.skipped_paths:
        out.warning(f"Skipped {path}")


@click.group()
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output")
@click.option("--json", is_flag=True, help="Output in JSON format")
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose/debug logging output",
)
@click.version_option(package_name="texsync")
@click.pass_context
def main(ctx: Any, quiet: bool, json: bool, verbose: bool) -> None:
    """texsync - Install and sync PS2 texture packs from GitHub."""
    ctx.ensure_object(dict)
    ctx.obj["out"] = OutputFormatter(json_output=json, quiet=quiet)
    ctx.obj["state_manager"] = SyncStateManager()
    ctx.obj["verbose"] = verbose

    # Configure logging based on verbose flag
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%H:%M:%S",
        )
        logging.getLogger("texsync").setLevel(logging.DEBUG)
    else:
        logging.basicConfig(level=logging.WARNING)

    try:
        config.validate()
    except ConfigError as e:
        ctx.obj["out"].error(str(e))
        ctx.exit(1)


@main.command()
@click.pass_context
def latest(ctx: Any) -> None:
    """Show the latest upstream revision."""
    out: OutputFormatter = ctx.obj["out"]
    try:
        with SyncEngine() as engine:
            revision = engine.resolve_latest_revision()
    except TexSyncError as e:
        out.error(str(e))
        ctx.exit(1)
        return

    if out.json_output:
        out.output_json({"latest_revision": revision})
    else:
        out.print(revision)


@main.command()
@click.argument("textures_dir", required=False, type=click.Path(file_okay=False))
@click.pass_context
def status(ctx: Any, textures_dir: Optional[str]) -> None:
    """Check what a sync would change, without changing anything.

    TEXTURES_DIR: PCSX2 textures directory (defaults to the remembered one)
    """
    out: OutputFormatter = ctx.obj["out"]
    path = _resolve_textures_dir(ctx, out, textures_dir)
    if path is None:
        ctx.exit(1)
        return
    state = ctx.obj["state_manager"].load_state()

    try:
        with SyncEngine() as engine:
            result = engine.check_sync_status(path)
    except TexSyncError as e:
        out.error(str(e))
        ctx.exit(1)
        return

    if out.json_output:
        data = result.to_dict()
        data["last_synced_revision"] = state.last_synced_revision
        out.output_json(data)
        return

    out.info(f"Latest revision:      {result.latest_revision}")
    out.info(f"Last synced revision: {state.last_synced_revision or 'never'}")
    out.info(f"Files to download:    {result.files_to_download}")
    out.info(f"Files to delete:      {result.files_to_delete}")
    out.info(f"Files up to date:     {result.files_up_to_date}")
    if result.is_up_to_date:
        out.success("Textures are up to date")
    else:
        out.info("Run 'texsync sync' to apply the changes.")


@main.command()
@click.argument("textures_dir", required=False, type=click.Path(file_okay=False))
@click.option(
    "--yes",
    "-y",
    is_flag=True,
    help="Record the new revision even if some files were skipped",
)
@click.pass_context
def sync(ctx: Any, textures_dir: Optional[str], yes: bool) -> None:
    """Download changed textures and remove ones deleted upstream.

    Files inside the user-customs folder are never touched, and disabled
    textures (names starting with '-') stay disabled.

    TEXTURES_DIR: PCSX2 textures directory (defaults to the remembered one)
    """
    out: OutputFormatter = ctx.obj["out"]
    state_manager: SyncStateManager = ctx.obj["state_manager"]
    path = _resolve_textures_dir(ctx, out, textures_dir)
    if path is None:
        ctx.exit(1)
        return

    if not state_manager.load_state().initial_setup_done:
        out.error(
            "Initial setup is not complete. Run 'texsync install' first, or "
            "'texsync mark-installed' if the textures are already installed."
        )
        ctx.exit(1)

    try:
        with SyncEngine() as engine:
            outcome = _run_job(engine.start_sync(path), out)
    except TexSyncError as e:
        out.error(str(e))
        ctx.exit(1)
        return

    _report_outcome(out, outcome, "Sync")

    if outcome.cancelled:
        return
    accept = (
        outcome.files_skipped == 0
        or yes
        or (
            not out.json_output
            and click.confirm(
                f"{outcome.files_skipped} file(s) were skipped. "
                "Record this revision as synced anyway?",
                default=False,
            )
        )
    )
    if accept:
        state_manager.update_last_synced_revision(outcome.resulting_revision)


@main.command()
@click.argument("textures_dir", type=click.Path(file_okay=False))
@click.option(
    "--backup",
    "on_existing",
    flag_value="backup",
    help="Rename an existing target folder to a timestamped backup",
)
@click.option(
    "--delete",
    "on_existing",
    flag_value="delete",
    help="Delete an existing target folder",
)
@click.pass_context
def install(ctx: Any, textures_dir: str, on_existing: Optional[str]) -> None:
    """Install the texture pack into TEXTURES_DIR for the first time.

    If the target folder already exists you must choose to back it up or
    delete it; it is never overwritten.
    """
    out: OutputFormatter = ctx.obj["out"]
    state_manager: SyncStateManager = ctx.obj["state_manager"]
    path = Path(textures_dir)

    try:
        with SyncEngine() as engine:
            if engine.check_existing_folder(path):
                if on_existing is None and not out.json_output:
                    out.warning(
                        f"{engine.target_dir(path)} already exists."
                    )
                    on_existing = click.prompt(
                        "Back it up or delete it?",
                        type=click.Choice(["backup", "delete", "cancel"]),
                        default="backup",
                    )
                if on_existing == "backup":
                    name = engine.backup_existing_folder(path)
                    out.info(f"Existing folder renamed to {name}")
                elif on_existing == "delete":
                    engine.delete_existing_folder(path)
                    out.info("Existing folder deleted")
                else:
                    raise ConflictError(
                        f"{engine.target_dir(path)} already exists - "
                        "use --backup or --delete"
                    )

            outcome = _run_job(engine.start_installation(path), out)
    except TexSyncError as e:
        out.error(str(e))
        ctx.exit(1)
        return

    _report_outcome(out, outcome, "Installation")
    state_manager.set_textures_path(str(path))
    if not outcome.cancelled:
        state_manager.mark_setup_complete(outcome.resulting_revision)


@main.command(name="state")
@click.pass_context
def show_state(ctx: Any) -> None:
    """Show the remembered textures directory and sync state."""
    out: OutputFormatter = ctx.obj["out"]
    state = ctx.obj["state_manager"].load_state()

    if out.json_output:
        out.output_json(state.to_dict())
        return

    out.info(f"Repository:           {config.repo_owner}/{config.repo_name}")
    out.info(f"Sparse path:          {config.sparse_path}")
    out.info(f"Textures directory:   {state.textures_path or 'not set'}")
    out.info(f"Initial setup done:   {'yes' if state.initial_setup_done else 'no'}")
    out.info(f"Last synced revision: {state.last_synced_revision or 'never'}")


@main.command(name="set-path")
@click.argument("textures_dir", type=click.Path(exists=True, file_okay=False))
@click.pass_context
def set_path(ctx: Any, textures_dir: str) -> None:
    """Remember TEXTURES_DIR as the default textures directory."""
    out: OutputFormatter = ctx.obj["out"]
    ctx.obj["state_manager"].set_textures_path(str(Path(textures_dir).resolve()))
    out.success(f"Textures directory set to {textures_dir}")


@main.command(name="mark-installed")
@click.option("--undo", is_flag=True, help="Clear the installed flag instead")
@click.pass_context
def mark_installed(ctx: Any, undo: bool) -> None:
    """Flag textures that were installed by other means as set up."""
    out: OutputFormatter = ctx.obj["out"]
    ctx.obj["state_manager"].set_initial_setup_done(not undo)
    if undo:
        out.success("Initial setup flag cleared")
    else:
        out.success("Initial setup marked as done")


if __name__ == "__main__":
    main()
