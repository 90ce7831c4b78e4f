"""Presenting the finished clip to the user.

The link goes to the clipboard and stdout. Without a link the local
path is shown instead. On request the link is also pasted into the
focused window, and the file is revealed in the file browser or opened
in its default application.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Callable, Protocol

import pyperclip
import typer
from rich.console import Console

from time_for.logging import get_logger
from time_for.models.outcome import PipelineOutcome
from time_for.models.request import PipelineRequest

logger = get_logger(__name__)


def send_paste_keys() -> None:
    """Press the paste shortcut in whatever window has focus.

    pynput connects to the display server on import, so it is only loaded
    when a paste is actually requested.
    """
    from pynput.keyboard import Controller, Key

    modifier = Key.cmd if sys.platform == "darwin" else Key.ctrl
    keyboard = Controller()
    with keyboard.pressed(modifier):
        keyboard.press("v")
        keyboard.release("v")


class ResultPresenter(Protocol):
    """Receives the outcome of a successful run."""

    def present(self, outcome: PipelineOutcome, request: PipelineRequest) -> None:
        ...


class ConsolePresenter:
    """Clipboard + console presenter used by the CLI."""

    def __init__(
        self,
        console: Console | None = None,
        err_console: Console | None = None,
        copy: Callable[[str], None] = pyperclip.copy,
        launch: Callable[..., int] = typer.launch,
        paste: Callable[[], None] = send_paste_keys,
    ):
        self.console = console or Console()
        self.err_console = err_console or Console(stderr=True)
        self._copy = copy
        self._launch = launch
        self._paste = paste

    def present(self, outcome: PipelineOutcome, request: PipelineRequest) -> None:
        if outcome.link is not None:
            copied = self._copy_to_clipboard(outcome.link.url)
            if copied and request.paste:
                self._paste_link()
            self.console.print(outcome.link.url, markup=False, highlight=False, soft_wrap=True)
        elif outcome.upload_error is not None:
            self.err_console.print(
                "There was an error uploading to imgur, so here is the file path instead:",
                markup=False,
            )
            self.err_console.print(str(outcome.final_path), markup=False, highlight=False, soft_wrap=True)
        else:
            self.console.print(str(outcome.final_path), markup=False, highlight=False, soft_wrap=True)

        if outcome.final_path is None:
            return
        if request.explorer:
            self._open(outcome.final_path, locate=True)
        if request.open_file:
            self._open(outcome.final_path, locate=False)

    def _copy_to_clipboard(self, text: str) -> bool:
        try:
            self._copy(text)
        except pyperclip.PyperclipException as e:
            logger.warning(f"Could not copy link to the clipboard: {e}")
            return False
        return True

    def _paste_link(self) -> None:
        # Any failure here (no display, missing permissions) leaves the link
        # on the clipboard and stdout
        try:
            self._paste()
        except Exception as e:
            logger.warning(f"Could not paste the link: {e}")

    def _open(self, path: Path, locate: bool) -> None:
        code = self._launch(str(path), locate=locate)
        if code:
            action = "reveal" if locate else "open"
            logger.warning(f"Could not {action} {path}", extra={"exit_code": code})
