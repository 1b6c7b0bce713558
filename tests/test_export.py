"""Tests für Excel-Export, Terminal-Renderer und Export-Hilfsfunktionen."""

import datetime

import pytest

from models import Assignment, AssignmentSet, Course, SchoolSnapshot, Subject, Teacher
from models.timeslot import Slot
from solver import DateRange, TimetableEngine
from export.excel_export import ExcelExporter
from export.helpers import (
    COLORS, count_gaps, font_color_for, format_assignment, gap_slots, get_subject_color,
    hex_to_rgb, period_rows,
)
from export.tui_renderer import render_course_rows, render_teacher_rows


# ─── Testdaten-Hilfsfunktionen ────────────────────────────────────────────────

def _make_snapshot() -> SchoolSnapshot:
    subjects = [
        Subject(id=1, name="Matemáticas", level="basico", weekly_blocks=2,
                type="ciencias", color="#9dc3e6"),
        Subject(id=2, name="Historia", level="basico", weekly_blocks=1, type="humanidades"),
        Subject(id=3, name="Música", level="basico", weekly_blocks=1, type="unbekannt"),
    ]
    courses = [
        Course(id=1, name="1° Básico A", level="basico"),
        Course(id=2, name="1° Básico B", level="basico"),
    ]
    teachers = [
        Teacher(id=1, name="Pérez, Ana", weekly_hours=4, subject_ids=[1, 2],
                available_blocks=["MON-1", "MON-2", "MON-3", "TUE-1"]),
        Teacher(id=2, name="Soto, Luis", weekly_hours=2, subject_ids=[2],
                available_blocks=["WED-1", "WED-2"]),
    ]
    return SchoolSnapshot.capture(courses, subjects, teachers)


def _a(course: int, subject: int, teacher: int, slot: str) -> Assignment:
    return Assignment(course_id=course, subject_id=subject, teacher_id=teacher,
                      slot=Slot.parse(slot))


@pytest.fixture(scope="module")
def solved():
    snap = _make_snapshot()
    return snap, TimetableEngine().solve_snapshot(snap)


# ─── Helpers ──────────────────────────────────────────────────────────────────

class TestHelpers:
    def test_hex_to_rgb(self):
        assert hex_to_rgb("#FF8000") == (255, 128, 0)
        assert hex_to_rgb(COLORS["header"]) == (0x44, 0x72, 0xC4)

    def test_font_color_for(self):
        """Dunkle Füllung → weiße Schrift, helle Füllung → schwarze Schrift."""
        assert font_color_for(COLORS["header"]) == "FFFFFF"
        assert font_color_for("#1F3864") == "FFFFFF"
        assert font_color_for(COLORS["free"]) == "000000"
        assert font_color_for("9DC3E6") == "000000"

    def test_period_rows(self):
        rows = period_rows(_make_snapshot().time_grid)
        assert len(rows) == 8
        assert rows[0] == (1, "08:00–08:45")

    def test_subject_color(self):
        snap = _make_snapshot()
        assert get_subject_color(1, snap) == "9DC3E6"
        assert get_subject_color(2, snap) == COLORS["humanidades"]
        assert get_subject_color(3, snap) == COLORS["general"]
        assert get_subject_color(99, snap) == COLORS["general"]

    def test_gap_slots(self):
        entries = [_a(1, 1, 1, "MON-1"), _a(2, 1, 1, "MON-4"), _a(1, 2, 1, "TUE-2")]
        assert gap_slots(entries) == {(0, 2), (0, 3)}
        assert count_gaps(entries) == 2

    def test_no_gaps_for_consecutive(self):
        assert count_gaps([_a(1, 1, 1, "MON-1"), _a(1, 1, 1, "MON-2")]) == 0

    def test_format_assignment(self):
        snap = _make_snapshot()
        a = _a(1, 1, 1, "MON-1")
        assert format_assignment(a, snap, "course") == "Matemáticas\nPérez, Ana"
        assert format_assignment(a, snap, "teacher") == "Matemáticas\n1° Básico A"

    def test_format_unknown_subject(self):
        assert format_assignment(_a(1, 42, 1, "MON-1"), _make_snapshot(), "x") == "#42"


# ─── Terminal-Renderer ────────────────────────────────────────────────────────

class TestRenderer:
    def test_course_rows(self):
        snap = _make_snapshot()
        s = AssignmentSet(assignments=[_a(1, 1, 1, "MON-1"), _a(1, 2, 2, "WED-2")])
        rows = render_course_rows(1, s, snap)
        assert len(rows) == snap.time_grid.periods_per_day
        assert rows[0][:3] == ["1", "08:00–08:45", "Matemáticas\nPérez, Ana"]
        assert rows[1][4] == "Historia\nSoto, Luis"
        assert rows[2][2] == "—"

    def test_unknown_course(self):
        assert render_course_rows(9, AssignmentSet(), _make_snapshot()) == []

    def test_teacher_rows_mark_gaps_and_unavailable(self):
        snap = _make_snapshot()
        s = AssignmentSet(assignments=[_a(1, 1, 1, "MON-1"), _a(2, 1, 1, "MON-3")])
        rows = render_teacher_rows(1, s, snap)
        assert rows[0][2] == "Matemáticas\n1° Básico A"
        assert rows[1][2] == "↕ Springstunde"
        assert rows[2][2] == "Matemáticas\n1° Básico B"
        assert rows[0][3] == "—"    # Di 1. verfügbar, frei
        assert rows[0][4] == "·"    # Mi 1. nicht verfügbar

    def test_unknown_teacher(self):
        assert render_teacher_rows(9, AssignmentSet(), _make_snapshot()) == []


# ─── Excel ────────────────────────────────────────────────────────────────────

class TestExcelExport:
    def test_sheets(self, solved, tmp_path):
        from openpyxl import load_workbook
        snap, result = solved
        path = ExcelExporter(result, snap).export(tmp_path / "plan.xlsx")
        assert path.exists()
        wb = load_workbook(path)
        assert wb.sheetnames == [
            "Übersicht", "Kurs 1", "Kurs 2", "Lehrkraft 1", "Lehrkraft 2", "Offene Einheiten",
        ]

    def test_course_sheet_content(self, solved, tmp_path):
        from openpyxl import load_workbook
        snap, result = solved
        wb = load_workbook(ExcelExporter(result, snap).export(tmp_path / "plan.xlsx"))
        ws = wb["Kurs 1"]
        assert ws.cell(row=1, column=3).value == "Mo"
        cells = [
            ws.cell(row=r, column=c).value
            for r in range(2, 2 + snap.time_grid.periods_per_day)
            for c in range(3, 3 + snap.time_grid.days_per_week)
        ]
        assert sum(1 for v in cells if v) == len(result.assignment_set.for_course(1))

    def test_unmet_sheet_rows(self, solved, tmp_path):
        from openpyxl import load_workbook
        snap, result = solved
        wb = load_workbook(ExcelExporter(result, snap).export(tmp_path / "plan.xlsx"))
        ws = wb["Offene Einheiten"]
        assert ws.max_row == 1 + len(result.unmet)
        if result.unmet:
            assert ws.cell(row=2, column=4).value == result.unmet[0].reason.value

    def test_overview_status(self, solved, tmp_path):
        from openpyxl import load_workbook
        snap, result = solved
        wb = load_workbook(ExcelExporter(result, snap).export(tmp_path / "plan.xlsx"))
        ws = wb["Übersicht"]
        assert ws.cell(row=2, column=3).value == f"Status: {result.status.value}"

    def test_dated_sheet(self, solved, tmp_path):
        from openpyxl import load_workbook
        snap, result = solved
        week = DateRange(start=datetime.date(2025, 3, 3), end=datetime.date(2025, 3, 9))
        path = ExcelExporter(result, snap).export(
            tmp_path / "plan.xlsx", date_range=week, holidays=[datetime.date(2025, 3, 4)]
        )
        ws = load_workbook(path)["Termine"]
        dates = [ws.cell(row=r, column=1).value for r in range(2, ws.max_row + 1)]
        assert "2025-03-04" not in dates
        tuesday = sum(1 for a in result.assignment_set if a.slot.day == 1)
        assert len(dates) == len(result.assignment_set) - tuesday

    def test_font_contrast(self, solved, tmp_path):
        from openpyxl import load_workbook
        snap, result = solved
        ws = load_workbook(ExcelExporter(result, snap).export(tmp_path / "plan.xlsx"))["Kurs 1"]
        assert ws.cell(row=1, column=1).font.color.rgb.endswith("FFFFFF")
        assert ws.cell(row=2, column=3).font.color.rgb.endswith("000000")
