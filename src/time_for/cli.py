"""Command-line interface for time-for.

Uses Typer for a modern, type-hinted CLI experience.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Optional

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.markup import escape
from rich.progress import Progress, SpinnerColumn, TextColumn

from time_for import __version__
from time_for.config import TimeForConfig, get_config_dir, get_config_path, load_config, save_config
from time_for.errors import TimeForError, format_error_for_display
from time_for.logging import LogLevel, set_verbosity
from time_for.models.outcome import PipelineState
from time_for.models.request import ConcatStrategy, OutputFormat, PipelineRequest
from time_for.pipeline import PipelineOrchestrator
from time_for.presenter import ConsolePresenter


def load_env_files(local_env: Path | None = None, user_env: Path | None = None) -> None:
    """Load environment variables from .env files.

    Priority: shell environment > local .env > ~/.time-for/.env
    """
    local_env = local_env or Path.cwd() / ".env"
    user_env = user_env or get_config_dir() / ".env"
    # Never overriding means the first file to set a variable wins
    for env_file in (local_env, user_env):
        if env_file.exists():
            load_dotenv(env_file, override=False)


load_env_files()

app = typer.Typer(
    name="time-for",
    help="Make a 'time for ...' reaction clip and put the link on your clipboard.",
    add_completion=False,
    rich_markup_mode="rich",
)

console = Console()
err_console = Console(stderr=True)

_STATE_LABELS = {
    PipelineState.SEARCHING: "Searching Tenor...",
    PipelineState.DOWNLOADING: "Downloading clips...",
    PipelineState.SCALING: "Scaling clips...",
    PipelineState.CAPTIONING: "Adding captions...",
    PipelineState.STITCHING: "Stitching...",
    PipelineState.UPLOADING: "Uploading to Imgur...",
}


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"time-for version {__version__}")
        raise typer.Exit()


def write_default_config() -> None:
    """Create ~/.time-for/config.json with default settings."""
    path = get_config_path()
    if path.exists():
        err_console.print(f"Config file already exists: {escape(str(path))}", highlight=False)
        raise typer.Exit(1)
    try:
        save_config(TimeForConfig(), path)
    except TimeForError as e:
        err_console.print(f"[red]Error:[/red] {escape(format_error_for_display(e))}", highlight=False)
        raise typer.Exit(1)
    console.print(f"Wrote default config to {escape(str(path))}", highlight=False)


@app.command()
def main(
    query: Annotated[
        Optional[str],
        typer.Argument(help="What it is time for. Without it only the clock clip is made."),
    ] = None,
    text: Annotated[
        Optional[str],
        typer.Option("--text", "-t", help="Caption for the query clip instead of 'time for QUERY'."),
    ] = None,
    considered_gifs: Annotated[
        int,
        typer.Option("--considered-gifs", "-c", min=1, help="Pick randomly among this many top results."),
    ] = 5,
    no_upload: Annotated[
        bool, typer.Option("--no-upload", "-n", help="Keep the clip local and print its path.")
    ] = False,
    explorer: Annotated[
        bool, typer.Option("--explorer", "-x", help="Reveal the finished clip in the file browser.")
    ] = False,
    relative: Annotated[
        bool, typer.Option("--relative", "-r", help="Work in ./time-for instead of the temp directory.")
    ] = False,
    open_file: Annotated[
        bool, typer.Option("--open", "-o", help="Open the finished clip in its default application.")
    ] = False,
    paste: Annotated[
        Optional[bool],
        typer.Option(
            "--paste/--no-paste",
            "-p",
            help="Press Ctrl+V after copying the link. Defaults to auto_paste in the config.",
        ),
    ] = None,
    delay: Annotated[
        int, typer.Option("--delay", "-d", help="Seconds to add to the time shown in the caption.")
    ] = 0,
    gif: Annotated[
        bool, typer.Option("--gif", help="Convert the result to a GIF before uploading.")
    ] = False,
    concat: Annotated[
        ConcatStrategy,
        typer.Option(
            "--concat",
            case_sensitive=False,
            help="[bold]strict[/bold] copies streams, [bold]flexible[/bold] re-encodes.",
        ),
    ] = ConcatStrategy.STRICT,
    init_config: Annotated[
        bool, typer.Option("--init-config", help="Write a default config file and exit.")
    ] = False,
    verbose: Annotated[
        bool, typer.Option("--verbose", help="Log each pipeline stage.")
    ] = False,
    version: Annotated[
        Optional[bool],
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """Search Tenor, caption the clip and the current time, stitch and share.

    The link is copied to the clipboard and printed. If the upload fails,
    the local file path is printed instead.
    """
    if verbose:
        set_verbosity(LogLevel.VERBOSE)

    if init_config:
        write_default_config()
        raise typer.Exit()

    try:
        config = load_config()
    except TimeForError as e:
        err_console.print(f"[red]Error:[/red] {escape(format_error_for_display(e))}", highlight=False)
        raise typer.Exit(1)

    request = PipelineRequest(
        query=query,
        custom_text=text,
        considered_gifs=considered_gifs,
        delay_seconds=delay,
        no_upload=no_upload,
        explorer=explorer,
        relative=relative,
        open_file=open_file,
        paste=config.auto_paste if paste is None else paste,
        output_format=OutputFormat.GIF if gif else OutputFormat.WEBM,
        concat_strategy=concat,
    )

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=err_console,
        transient=True,
    ) as progress_bar:
        task = progress_bar.add_task("Starting...", total=None)

        def on_state(state: PipelineState) -> None:
            if state in _STATE_LABELS:
                progress_bar.update(task, description=_STATE_LABELS[state])
            elif state == PipelineState.PRESENTING:
                # The result goes to the terminal, get the spinner out of the way
                progress_bar.stop()

        orchestrator = PipelineOrchestrator(
            config,
            presenter=ConsolePresenter(console=console, err_console=err_console),
            on_state=on_state,
        )
        try:
            orchestrator.run(request)
        except TimeForError as e:
            progress_bar.stop()
            err_console.print(f"[red]Error:[/red] {escape(format_error_for_display(e))}", highlight=False)
            raise typer.Exit(1)


if __name__ == "__main__":
    app()
