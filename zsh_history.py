"""
zsh_history.py - Parsing and normalization of zsh EXTENDED_HISTORY files

Format
------
Each entry starts with a header line ": <epoch>:<elapsed>;<command>". Lines that
do not look like a header belong to the command of the entry above them, which
is how zsh stores multi-line commands.

Pipeline
--------
1. ``parse_history`` turns raw file text into entries, oldest first.
2. ``dedup_and_sort`` keeps the most recent occurrence of each command and
   orders the result newest first, with timestamp-less entries trailing.

Both steps are pure: no file or process access happens here.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, Iterator

# ============================================================================
# CONSTANTS & PATTERNS
# ============================================================================

HISTORY_ENTRY_RE = re.compile(r"^: ([0-9]+):[0-9]+;(.*)")

SELF_NAME = "historik"

_MAX_TIMESTAMP = 2**63 - 1


# ============================================================================
# DATA STRUCTURES
# ============================================================================


@dataclass
class Entry:
    """A single logical command from the history file."""

    timestamp: int | None
    command: str
    line_number: int = 0  # 0-indexed line of the header


# ============================================================================
# PARSING
# ============================================================================


def iter_history_lines(raw_text: str) -> Iterator[str]:
    """→ Splits on newlines only; a trailing newline does not yield an empty line"""
    lines = raw_text.split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    for line in lines:
        yield line[:-1] if line.endswith("\r") else line


def parse_timestamp(digits: str) -> int | None:
    """→ Epoch seconds, or None when the digits overflow a 64-bit timestamp"""
    value = int(digits)
    return value if value <= _MAX_TIMESTAMP else None


def is_self_invocation(command: str, self_name: str = SELF_NAME) -> bool:
    return command.startswith(self_name)


def parse_history(raw_text: str, self_name: str = SELF_NAME) -> list[Entry]:
    """
    Reassembles history text into entries, in file order.

    The header's command text is stripped; continuation lines are kept verbatim
    and joined with "\\n". Entries whose command is empty or starts with
    `self_name` are dropped. Lines before the first header are ignored.
    """
    return list(_iter_entries(iter_history_lines(raw_text), self_name))


def _iter_entries(lines: Iterable[str], self_name: str) -> Iterator[Entry]:
    # (timestamp, header line number, command parts) of the entry under construction
    current: tuple[int | None, int, list[str]] | None = None

    for line_number, line in enumerate(lines):
        match = HISTORY_ENTRY_RE.match(line)
        if match:
            if current is not None:
                entry = _finalize(*current)
                if entry.command and not is_self_invocation(entry.command, self_name):
                    yield entry
            current = (parse_timestamp(match.group(1)), line_number, [match.group(2).strip()])
        elif current is not None:
            current[2].append(line)

    if current is not None:
        entry = _finalize(*current)
        if entry.command and not is_self_invocation(entry.command, self_name):
            yield entry


def _finalize(timestamp: int | None, line_number: int, parts: list[str]) -> Entry:
    return Entry(timestamp=timestamp, command="\n".join(parts), line_number=line_number)


# ============================================================================
# DEDUPLICATION & ORDERING
# ============================================================================


def _newest_first_key(entry: Entry) -> tuple[bool, int, int]:
    # Timestamp-less entries sort after everything else; ties go to the later line.
    if entry.timestamp is None:
        return (True, 0, -entry.line_number)
    return (False, -entry.timestamp, -entry.line_number)


def dedup_and_sort(entries: list[Entry]) -> list[Entry]:
    """→ One entry per distinct command (its most recent occurrence), newest first"""
    seen: dict[str, Entry] = {}
    for entry in reversed(entries):
        if entry.command not in seen:
            seen[entry.command] = entry

    return sorted(seen.values(), key=_newest_first_key)
