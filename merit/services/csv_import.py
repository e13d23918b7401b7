"""
merit.services.csv_import — CSV Row Parsing & Import Results
=============================================================

Shared by the action and user imports.  Parsing is deliberately thin:
``csv.reader`` over the decoded text, an optional header row, and
whitespace-stripped cells.  Row validation belongs to the importers.
"""

from __future__ import annotations

import csv
import io
from dataclasses import dataclass, field

ACTION_COLUMNS = ("employee_id", "action_type", "action_date", "evidence", "notes")
USER_COLUMNS = ("employee_id", "name", "surname", "manager_employee_id", "role")


@dataclass
class ImportResult:
    """Outcome of a batch import.  Successful rows are already committed."""

    total: int = 0
    succeeded: int = 0
    failed: int = 0
    errors: list[str] = field(default_factory=list)

    def record_success(self) -> None:
        self.total += 1
        self.succeeded += 1

    def record_failure(self, line: int, message: str) -> None:
        self.total += 1
        self.failed += 1
        self.errors.append(f"Line {line}: {message}")

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "errors": list(self.errors),
        }


def read_rows(content: str | bytes, header_first_cell: str = "employee_id") -> list[list[str]]:
    """Parse CSV *content* into stripped rows.

    A first row whose first cell equals *header_first_cell* (case-insensitive)
    is treated as a header and dropped.  Blank lines are skipped.
    """
    if isinstance(content, bytes):
        content = content.decode("utf-8-sig")
    rows = [
        [cell.strip() for cell in row]
        for row in csv.reader(io.StringIO(content))
        if any(cell.strip() for cell in row)
    ]
    if rows and rows[0] and rows[0][0].lower() == header_first_cell:
        rows = rows[1:]
    return rows


def cell(row: list[str], index: int) -> str | None:
    """Value at *index*, or ``None`` when missing or blank."""
    if index < len(row) and row[index]:
        return row[index]
    return None
