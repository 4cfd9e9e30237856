"""Tests for zsh history parsing, deduplication and ordering."""

import pytest

from zsh_history import Entry, dedup_and_sort, iter_history_lines, parse_history, parse_timestamp


class TestIterHistoryLines:
    """Test splitting raw history text into lines."""

    def test_trailing_newline_adds_no_line(self) -> None:
        """Test that a final newline doesn't produce an empty continuation."""
        assert list(iter_history_lines("a\nb\n")) == ["a", "b"]

    def test_empty_text(self) -> None:
        """Test that empty text has no lines."""
        assert list(iter_history_lines("")) == []

    def test_crlf_is_dropped(self) -> None:
        """Test that a single trailing carriage return is removed."""
        assert list(iter_history_lines("a\r\nb\r\n")) == ["a", "b"]

    def test_blank_lines_are_kept(self) -> None:
        """Test that blank lines in the middle survive."""
        assert list(iter_history_lines("a\n\nb")) == ["a", "", "b"]


class TestParseHistory:
    """Test reassembling history text into entries."""

    def test_multiline_reconstruction(self) -> None:
        """Test that continuation lines join the entry above them."""
        text = ": 1000:0;echo a\nline2\n: 1001:0;echo b\n"

        entries = parse_history(text)

        assert [(e.timestamp, e.command) for e in entries] == [
            (1000, "echo a\nline2"),
            (1001, "echo b"),
        ]

    def test_line_numbers(self) -> None:
        """Test that entries remember the line of their header."""
        text = ": 1000:0;echo a\nline2\n: 1001:0;echo b\n"

        entries = parse_history(text)

        assert [e.line_number for e in entries] == [0, 2]

    def test_header_command_is_stripped(self) -> None:
        """Test that whitespace around the header's command is removed."""
        entries = parse_history(": 1000:0;   ls -la   \n")

        assert entries[0].command == "ls -la"

    def test_continuation_whitespace_is_kept(self) -> None:
        """Test that continuation lines are reproduced verbatim."""
        text = ": 1000:0;for f in *; do\\\n    echo $f  \ndone\n"

        entries = parse_history(text)

        assert entries[0].command == "for f in *; do\\\n    echo $f  \ndone"

    def test_lines_before_first_header_are_ignored(self) -> None:
        """Test that orphan lines without an entry are discarded."""
        text = "garbage\nmore garbage\n: 1000:0;pwd\n"

        entries = parse_history(text)

        assert entries == [Entry(timestamp=1000, command="pwd", line_number=2)]

    def test_empty_commands_are_dropped(self) -> None:
        """Test that headers with blank commands produce no entry."""
        text = ": 1000:0;\n: 1001:0;   \n: 1002:0;ls\n"

        entries = parse_history(text)

        assert [e.command for e in entries] == ["ls"]

    def test_empty_header_with_continuation_is_kept(self) -> None:
        """Test that an empty header followed by text keeps the text."""
        entries = parse_history(": 1000:0;\nsecond line\n")

        assert entries[0].command == "\nsecond line"

    def test_self_invocation_is_filtered(self) -> None:
        """Test that the tool's own invocations never show up."""
        text = ": 1000:0;historik\n: 1001:0;historik --whatever\n: 1002:0;git status\n"

        entries = parse_history(text)

        assert [e.command for e in entries] == ["git status"]

    def test_self_invocation_is_filtered_at_end(self) -> None:
        """Test that the last entry goes through the same filter."""
        entries = parse_history(": 1000:0;git status\n: 1001:0;historik\n")

        assert [e.command for e in entries] == ["git status"]

    def test_custom_self_name(self) -> None:
        """Test filtering with a different invocation name."""
        entries = parse_history(": 1000:0;hk\n: 1001:0;historik\n", self_name="hk")

        assert [e.command for e in entries] == ["historik"]

    def test_overflowing_timestamp_still_starts_entry(self) -> None:
        """Test that unusable timestamp digits give an entry without a timestamp."""
        text = ": 99999999999999999999999:0;echo big\n: 1000:0;echo small\n"

        entries = parse_history(text)

        assert entries[0] == Entry(timestamp=None, command="echo big", line_number=0)
        assert entries[1].timestamp == 1000

    def test_non_extended_lines_are_continuations(self) -> None:
        """Test that lines in other formats are not mistaken for headers."""
        text = ": 1000:0;echo a\n:1001:0;echo b\n: abc:0;echo c\n"

        entries = parse_history(text)

        assert len(entries) == 1
        assert entries[0].command == "echo a\n:1001:0;echo b\n: abc:0;echo c"

    def test_empty_history(self) -> None:
        """Test that text without entries parses to an empty list."""
        assert parse_history("") == []
        assert parse_history("no headers here\n") == []


class TestParseTimestamp:
    """Test timestamp extraction."""

    @pytest.mark.parametrize(
        ("digits", "expected"),
        [
            ("0", 0),
            ("1700000000", 1700000000),
            (str(2**63 - 1), 2**63 - 1),
            (str(2**63), None),
        ],
    )
    def test_parse_timestamp(self, digits: str, expected: int | None) -> None:
        """Test the 64-bit bound on timestamps."""
        assert parse_timestamp(digits) == expected


class TestDedupAndSort:
    """Test most-recent-wins deduplication and newest-first ordering."""

    def test_keeps_most_recent_occurrence(self) -> None:
        """Test that the latest duplicate is the one retained."""
        entries = [
            Entry(100, "ls", 0),
            Entry(200, "pwd", 1),
            Entry(300, "ls", 2),
        ]

        result = dedup_and_sort(entries)

        assert result == [Entry(300, "ls", 2), Entry(200, "pwd", 1)]

    def test_newest_first(self) -> None:
        """Test that output is ordered by timestamp, descending."""
        entries = [Entry(ts, f"cmd{ts}", i) for i, ts in enumerate([5, 1, 9, 3])]

        result = dedup_and_sort(entries)

        assert [e.timestamp for e in result] == [9, 5, 3, 1]

    def test_timestamp_less_entries_trail(self) -> None:
        """Test that entries without a timestamp come after all others."""
        entries = [
            Entry(None, "a", 0),
            Entry(10, "b", 1),
            Entry(None, "c", 2),
            Entry(0, "d", 3),
        ]

        result = dedup_and_sort(entries)

        assert [e.command for e in result[:2]] == ["b", "d"]
        assert {e.command for e in result[2:]} == {"a", "c"}
        assert all(e.timestamp is None for e in result[2:])

    def test_ties_prefer_later_line(self) -> None:
        """Test that equal timestamps are ordered by file position, newest first."""
        entries = [Entry(100, "first", 0), Entry(100, "second", 1)]

        result = dedup_and_sort(entries)

        assert [e.command for e in result] == ["second", "first"]

    def test_multiline_commands_are_distinct_keys(self) -> None:
        """Test that the full multi-line text is the dedup key."""
        entries = [
            Entry(1, "echo a\nline2", 0),
            Entry(2, "echo a\nline3", 2),
        ]

        result = dedup_and_sort(entries)

        assert len(result) == 2

    def test_idempotent(self) -> None:
        """Test that deduplicating twice equals deduplicating once."""
        entries = [
            Entry(3, "x", 0),
            Entry(None, "y", 1),
            Entry(3, "z", 2),
            Entry(1, "x", 3),
            Entry(None, "w", 4),
            Entry(7, "y", 5),
        ]

        once = dedup_and_sort(entries)

        assert dedup_and_sort(once) == once

    def test_commands_are_unique_and_most_recent(self) -> None:
        """Test uniqueness and recency over a parsed history with many repeats."""
        lines = []
        for i in range(60):
            lines.append(f": {1000 + (i * 7) % 50}:0;cmd{i % 9}")
            if i % 11 == 0:
                lines.append(": 5:0;")
        entries = parse_history("\n".join(lines))

        result = dedup_and_sort(entries)

        commands = [e.command for e in result]
        assert len(commands) == len(set(commands))
        for kept in result:
            last = [e for e in entries if e.command == kept.command][-1]
            assert kept == last

    def test_input_is_not_mutated(self) -> None:
        """Test that the input list is left as it was."""
        entries = [Entry(1, "a", 0), Entry(2, "a", 1)]
        snapshot = list(entries)

        dedup_and_sort(entries)

        assert entries == snapshot

    def test_empty_input(self) -> None:
        """Test that an empty sequence stays empty."""
        assert dedup_and_sort([]) == []
