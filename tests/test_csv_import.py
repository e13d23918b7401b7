"""
tests/test_csv_import.py — CSV row parsing & import results
============================================================
"""

from __future__ import annotations

from merit.services.csv_import import ImportResult, cell, read_rows


class TestReadRows:
    def test_header_dropped_and_cells_stripped(self):
        rows = read_rows("employee_id,action_type,action_date\n e1 , Kudos ,2026-01-01\n")
        assert rows == [["e1", "Kudos", "2026-01-01"]]

    def test_no_header(self):
        assert read_rows("e1,Kudos,2026-01-01\n") == [["e1", "Kudos", "2026-01-01"]]

    def test_blank_lines_skipped(self):
        assert read_rows("a,b\n\n , \nc,d\n") == [["a", "b"], ["c", "d"]]

    def test_bytes_with_bom(self):
        content = "\ufeffEmployee_ID,name\nE1,\"Smith, Ann\"\n".encode()
        assert read_rows(content) == [["E1", "Smith, Ann"]]


class TestCell:
    def test_missing_and_blank(self):
        assert cell(["a", ""], 1) is None
        assert cell(["a"], 5) is None
        assert cell(["a"], 0) == "a"


class TestImportResult:
    def test_error_lines(self):
        result = ImportResult()
        result.record_success()
        result.record_failure(2, "Action type not found: X")
        assert result.to_dict() == {
            "total": 2,
            "succeeded": 1,
            "failed": 1,
            "errors": ["Line 2: Action type not found: X"],
        }
