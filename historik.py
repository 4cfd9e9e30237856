#!/usr/bin/env python3
# /// script
# requires-python = ">=3.10"
# dependencies = ["rich", "pygments"]
# ///
"""
historik.py - Fuzzy-search your zsh history and run the chosen command

Pipeline
--------
1. Locate the history file: $HISTFILE if it names an existing file, else
   ~/.zsh_history.
2. Make sure fzf is on PATH before anything else happens.
3. Parse the file (see zsh_history.py), keep the most recent occurrence of each
   command, newest first.
4. Hand the list to fzf. ESC / CTRL-C in fzf (exit code 130) is a clean cancel.
5. Echo the chosen command and run it with `zsh -c`, exiting with its status.

Known limitation: multi-line commands are written to fzf as-is, so each of
their lines shows up as a separate row.

Exit codes
----------
0 on success or cancel, 1 on any historik error, otherwise the status of the
command that was run.
"""

from __future__ import annotations

import os
import shutil
import subprocess
import sys
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import IO, Iterable, Mapping

from rich.console import Console
from rich.markup import escape
from rich.theme import Theme

from zsh_history import SELF_NAME, Entry, dedup_and_sort, parse_history
from zsh_lexer import highlight_command

# ============================================================================
# CONFIGURATION & CONSTANTS
# ============================================================================

CUSTOM_THEME = Theme({
    "error": "#E06C75",
    "hint": "#5C6370",
})

console = Console(stderr=True, theme=CUSTOM_THEME)

HISTORY_ENV_VAR = "HISTFILE"
DEFAULT_HISTORY_NAME = ".zsh_history"

FZF_EXECUTABLE = "fzf"
FZF_OPTIONS = [
    "--height=40%",
    "--reverse",
    "--border",
    "--prompt=Historik > ",
    "--bind=ctrl-r:toggle-sort",
    "--header=CTRL-R: toggle sort, ESC: quit",
]
FZF_CANCEL_CODE = 130  # fzf's exit status for ESC / CTRL-C

SHELL = "zsh"

# ============================================================================
# ERRORS
# ============================================================================


class HistorikError(Exception):
    """Base class for errors that end the run with exit status 1."""


class ConfigurationError(HistorikError):
    """The history file or fzf could not be found."""

    def __init__(self, message: str, hint: str | None = None):
        super().__init__(message)
        self.hint = hint


class HistoryReadError(HistorikError, OSError):
    """The history file exists but could not be read."""


class EmptyHistoryError(HistorikError):
    """The history file holds no usable commands."""


class SelectorError(HistorikError):
    """fzf failed to start or exited with an error."""


class ExecutionError(HistorikError):
    """The shell for the selected command could not be started."""


# ============================================================================
# HISTORY FILE LOCATION & I/O
# ============================================================================


@dataclass
class HistoryFound:
    path: Path


@dataclass
class HistoryNotFound:
    searched: list[Path] = field(default_factory=list)


HistoryLocation = HistoryFound | HistoryNotFound


def locate_history_file(
    environ: Mapping[str, str] | None = None, home: Path | None = None
) -> HistoryLocation:
    """→ $HISTFILE if it names an existing file, else ~/.zsh_history, else NotFound"""
    environ = os.environ if environ is None else environ
    searched: list[Path] = []

    if histfile := environ.get(HISTORY_ENV_VAR):
        candidate = Path(histfile).expanduser()
        if candidate.is_file():
            return HistoryFound(candidate)
        searched.append(candidate)

    try:
        home = Path.home() if home is None else home
    except RuntimeError:
        return HistoryNotFound(searched)

    candidate = home / DEFAULT_HISTORY_NAME
    if candidate.is_file():
        return HistoryFound(candidate)
    searched.append(candidate)
    return HistoryNotFound(searched)


def read_history_file(file_path: Path) -> str:
    """→ File I/O: The raw history text; undecodable bytes are replaced"""
    try:
        return file_path.read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        raise HistoryReadError(f"Could not read history file '{file_path}': {e.strerror or e}") from e


def load_history(file_path: Path) -> list[Entry]:
    """→ Deduplicated, newest-first entries; an empty result is an error"""
    entries = parse_history(read_history_file(file_path), self_name=SELF_NAME)
    if not entries:
        raise EmptyHistoryError("History is empty")
    return dedup_and_sort(entries)


# ============================================================================
# SELECTOR (fzf)
# ============================================================================


def require_fzf() -> str:
    """→ Full path of the fzf executable"""
    fzf_path = shutil.which(FZF_EXECUTABLE)
    if fzf_path is None:
        raise ConfigurationError("fzf is not installed. Please install it to use this tool")
    return fzf_path


def _feed_selector(pipe: IO[str], commands: Iterable[str]) -> None:
    try:
        for command in commands:
            pipe.write(command + "\n")
        pipe.close()
    except BrokenPipeError:
        # fzf exited (selection or cancel) before reading the whole list;
        # the second close() releases the fd even though flushing fails again.
        try:
            pipe.close()
        except BrokenPipeError:
            pass


def search_with_fzf(entries: list[Entry], fzf_path: str | None = None) -> str:
    """
    Pipes the commands to fzf and returns the user's selection.

    Returns "" when the user cancels. A separate thread writes fzf's stdin while
    this thread drains its stdout, so neither pipe can fill up and block the
    other on large histories.
    """
    fzf_path = fzf_path or require_fzf()
    try:
        proc = subprocess.Popen(
            [fzf_path, *FZF_OPTIONS],
            stdin=subprocess.PIPE,
            stdout=subprocess.PIPE,
            text=True,
            encoding="utf-8",
            errors="replace",
        )
    except OSError as e:
        raise SelectorError(f"failed to start fzf process: {e}") from e

    writer = threading.Thread(
        target=_feed_selector,
        args=(proc.stdin, [entry.command for entry in entries]),
        name="fzf-stdin",
        daemon=True,
    )
    writer.start()
    with proc.stdout:
        selected = proc.stdout.read()
    returncode = proc.wait()
    writer.join()

    if returncode == FZF_CANCEL_CODE:
        return ""
    if returncode != 0:
        raise SelectorError(f"fzf failed (exit code {returncode})")
    return selected.strip()


# ============================================================================
# EXECUTION
# ============================================================================


def echo_command(command: str) -> None:
    """→ UI: Shows the command about to run, like a shell echoing recalled history"""
    _console_print(highlight_command(command))


def execute_command(command: str, shell: str = SHELL) -> int:
    """
    Runs `command` with `<shell> -c`, attached to our stdin/stdout/stderr.

    Returns the command's exit status; a command killed by signal N reports
    128 + N, the way shells do. CTRL-C reaches the command too; it decides
    whether to exit and with what status, so we keep waiting for it.
    """
    try:
        proc = subprocess.Popen([shell, "-c", command])
    except OSError as e:
        raise ExecutionError(f"could not start {shell}: {e}") from e

    while True:
        try:
            returncode = proc.wait()
            break
        except KeyboardInterrupt:
            continue

    if returncode < 0:
        return 128 - returncode
    return returncode


# ============================================================================
# MAIN
# ============================================================================


def _console_print(string="", *args, **kwargs) -> None:
    """→ Safe console printing with fallback"""
    try:
        console.print(string, *args, **kwargs)
    except Exception:
        print(string, file=sys.stderr)


def _report(error: HistorikError) -> None:
    _console_print(f"[error]Error: {escape(str(error))}[/error]")
    if hint := getattr(error, "hint", None):
        # soft_wrap keeps long paths on one line
        _console_print(f"[hint]{escape(hint)}[/hint]", soft_wrap=True)


def main() -> int:
    """→ Main: Locate, load, select, execute"""
    try:
        location = locate_history_file()
        if isinstance(location, HistoryNotFound):
            hint = (
                f"Historik only supports zsh history and requires a non-empty {HISTORY_ENV_VAR} "
                f"environment variable or a default {DEFAULT_HISTORY_NAME} file."
            )
            if location.searched:
                hint += f" Looked for: {', '.join(str(p) for p in location.searched)}"
            raise ConfigurationError("Zsh history file not found.", hint=hint)

        fzf_path = require_fzf()
        entries = load_history(location.path)

        selected = search_with_fzf(entries, fzf_path=fzf_path)
        if not selected:
            return 0

        echo_command(selected)
        return execute_command(selected, shell=SHELL)
    except HistorikError as e:
        _report(e)
        return 1


def run() -> None:
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        sys.exit(130)


if __name__ == "__main__":
    run()
