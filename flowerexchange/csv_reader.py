"""Minimal comma-separated row reader: no quoting, one row per line."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Iterator


@dataclass(frozen=True)
class CSVRow:
    """The fields of one line, split on every comma."""

    fields: tuple[str, ...]

    def __getitem__(self, index: int) -> str:
        if not 0 <= index < len(self.fields):
            raise IndexError("CSVRow column index out of range")
        return self.fields[index]

    def __len__(self) -> int:
        return len(self.fields)

    def __iter__(self) -> Iterator[str]:
        return iter(self.fields)


def parse_csv_line(line: str) -> CSVRow:
    """Split one line, without its line ending, into a row."""
    return CSVRow(tuple(line.split(",")))


def read_csv_rows(stream: Iterable[str]) -> Iterator[CSVRow]:
    """Yield one row per line of a text stream.

    A trailing newline and then one carriage return are removed from each
    line; a blank line yields a row with one empty field.
    """
    for line in stream:
        if line.endswith("\n"):
            line = line[:-1]
        if line.endswith("\r"):
            line = line[:-1]
        yield parse_csv_line(line)