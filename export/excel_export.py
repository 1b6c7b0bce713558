"""Excel-Export für Wochenplan und Termine (openpyxl)."""

import datetime
from pathlib import Path
from typing import Iterable, Optional, Union

from config.schema import SchedulerConfig
from models.assignment import Assignment
from models.holiday import Holiday
from models.snapshot import SchoolSnapshot
from models.teacher import Teacher
from solver.projection import DateRange, ScheduleProjector
from solver.reporting import SolveResult, SolveStatus

from export.helpers import (
    COLORS, count_gaps, font_color_for, format_assignment, gap_slots, get_subject_color,
    period_rows, today_str,
)


class ExcelExporter:
    """Exportiert ein SolveResult in eine Excel-Datei.

    Sheets: Übersicht, je Kurs, je Lehrkraft, offene Einheiten und
    (mit Zeitraum) die datierten Termine.
    """

    # Spaltenbreiten (Excel-Einheiten)
    COL_STD_W  = 6
    COL_ZEIT_W = 13
    COL_DAY_W  = 24

    # Zeilenhöhen (Punkte)
    ROW_HEADER_H = 22
    ROW_LESSON_H = 36

    def __init__(
        self,
        result: SolveResult,
        snapshot: SchoolSnapshot,
        config: Optional[SchedulerConfig] = None,
    ):
        self.result    = result
        self.snapshot  = snapshot
        self.config    = config or SchedulerConfig()
        self.tg        = snapshot.time_grid
        self.days      = list(range(self.tg.days_per_week))
        self.day_names = self.tg.day_names

    # ─── Öffentliche API ──────────────────────────────────────────────────────

    def export(
        self,
        output_path: Path,
        date_range: Optional[DateRange] = None,
        holidays: Iterable[Union[Holiday, datetime.date]] = (),
    ) -> Path:
        """Erstellt die Excel-Datei mit allen Sheets."""
        from openpyxl import Workbook
        wb = Workbook()
        wb.remove(wb.active)   # Leeres Standard-Sheet entfernen

        self._sheet_uebersicht(wb)

        for course in self.snapshot.courses:
            self._sheet_kurs(wb, course.id)

        for teacher in self.snapshot.teachers:
            self._sheet_lehrkraft(wb, teacher)

        self._sheet_offen(wb)

        if date_range is not None:
            self._sheet_termine(wb, date_range, list(holidays))

        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        wb.save(output_path)
        return output_path

    # ─── Style-Helpers ────────────────────────────────────────────────────────

    def _fill(self, hex_color: str):
        from openpyxl.styles import PatternFill
        return PatternFill(start_color=hex_color, end_color=hex_color, fill_type="solid")

    def _center_align(self, wrap: bool = True):
        from openpyxl.styles import Alignment
        return Alignment(wrap_text=wrap, horizontal="center", vertical="center")

    def _thin_border(self):
        from openpyxl.styles import Border, Side
        s = Side(border_style="thin", color="BBBBBB")
        return Border(left=s, right=s, top=s, bottom=s)

    def _setup_sheet(self, ws) -> None:
        """Setzt Spaltenbreiten für ein Wochenraster-Blatt."""
        from openpyxl.utils import get_column_letter
        ws.column_dimensions["A"].width = self.COL_STD_W
        ws.column_dimensions["B"].width = self.COL_ZEIT_W
        for col in range(3, 3 + len(self.days)):
            ws.column_dimensions[get_column_letter(col)].width = self.COL_DAY_W

    def _write_table_header(self, ws, row: int, headers: list[str]) -> None:
        from openpyxl.styles import Font
        fill = self._fill(COLORS["header"])
        border = self._thin_border()
        for col, text in enumerate(headers, 1):
            cell = ws.cell(row=row, column=col, value=text)
            cell.fill = fill
            cell.font = Font(bold=True, color=font_color_for(COLORS["header"]), size=10)
            cell.alignment = self._center_align(wrap=False)
            cell.border = border

    # ─── Wochenraster ─────────────────────────────────────────────────────────

    def _write_schedule_table(self, ws, entries: list[Assignment], mode: str) -> int:
        """Schreibt das Wochenraster; gibt die nächste freie Excel-Zeile zurück.

        mode: 'course' | 'teacher'
        """
        from openpyxl.styles import Font

        self._write_table_header(ws, 1, ["Block", "Zeit"] + self.day_names[:len(self.days)])
        ws.row_dimensions[1].height = self.ROW_HEADER_H

        grid: dict[tuple[int, int], Assignment] = {
            (a.slot.day, a.slot.period): a for a in entries
        }
        gaps = gap_slots(entries) if mode == "teacher" else set()
        border = self._thin_border()

        excel_row = 2
        for period, time_str in period_rows(self.tg):
            c = ws.cell(row=excel_row, column=1, value=period)
            c.alignment = self._center_align(wrap=False)
            c.border = border
            c.font = Font(bold=True, size=9)

            c = ws.cell(row=excel_row, column=2, value=time_str)
            c.alignment = self._center_align(wrap=False)
            c.border = border
            c.font = Font(size=8)

            for day in self.days:
                a = grid.get((day, period))
                if a is not None:
                    content = format_assignment(a, self.snapshot, mode)
                    color = get_subject_color(a.subject_id, self.snapshot)
                else:
                    content = ""
                    color = COLORS["gap"] if (day, period) in gaps else COLORS["free"]

                c = ws.cell(row=excel_row, column=day + 3, value=content)
                c.fill = self._fill(color)
                c.alignment = self._center_align()
                c.border = border
                c.font = Font(size=8, color=font_color_for(color))

            ws.row_dimensions[excel_row].height = self.ROW_LESSON_H
            excel_row += 1

        return excel_row

    # ─── Sheet: Übersicht ─────────────────────────────────────────────────────

    def _sheet_uebersicht(self, wb) -> None:
        from openpyxl.styles import Font
        ws = wb.create_sheet(title="Übersicht", index=0)
        stats = self.result.stats
        border = self._thin_border()

        row = 1
        ws.cell(row=row, column=1, value=self.config.school_name).font = Font(bold=True, size=14)
        row += 1
        ws.cell(row=row, column=1, value=f"Erstellt: {today_str()}")
        c = ws.cell(row=row, column=3, value=f"Status: {self.result.status.value}")
        if self.result.status != SolveStatus.SATISFIED:
            c.fill = self._fill(COLORS["unmet"])
        ws.cell(row=row, column=4, value=f"Eingeplant: {stats.units_assigned}/{stats.units_total}")
        ws.cell(row=row, column=5, value=f"Backtracks: {stats.backtracks}")
        row += 2

        # Lehrkräfte
        self._write_table_header(
            ws, row, ["ID", "Name", "Vertrag", "Fächer", "Max", "Ist", "Springstd."]
        )
        row += 1
        load = self.result.assignment_set.teacher_load()
        for teacher in self.snapshot.teachers:
            actual = load.get(teacher.id, 0)
            entries = self.result.assignment_set.for_teacher(teacher.id)
            subjects = ", ".join(
                self.snapshot.subject(sid).name if self.snapshot.subject(sid) else str(sid)
                for sid in teacher.subject_ids
            )
            values = [
                teacher.id, teacher.name, teacher.contract_type.value, subjects,
                teacher.weekly_hours, actual, count_gaps(entries),
            ]
            for col, value in enumerate(values, 1):
                ws.cell(row=row, column=col, value=value).border = border
            if actual > teacher.weekly_hours:
                ws.cell(row=row, column=6).fill = self._fill("FFCCCC")
            row += 1

        row += 1

        # Kurse
        ws.cell(row=row, column=1, value="Kurse").font = Font(bold=True)
        row += 1
        self._write_table_header(ws, row, ["ID", "Name", "Stufe", "Soll", "Ist", "Offen"])
        row += 1
        for course in self.snapshot.courses:
            need = sum(s.weekly_blocks for s in self.snapshot.subjects_for_level(course.level))
            got = len(self.result.assignment_set.for_course(course.id))
            open_units = len(self.result.unmet_for_course(course.id))
            values = [course.id, course.name, course.level, need, got, open_units]
            for col, value in enumerate(values, 1):
                ws.cell(row=row, column=col, value=value).border = border
            if open_units:
                ws.cell(row=row, column=6).fill = self._fill(COLORS["unmet"])
            row += 1

        ws.column_dimensions["A"].width = 8
        ws.column_dimensions["B"].width = 28
        ws.column_dimensions["C"].width = 14
        ws.column_dimensions["D"].width = 40
        ws.column_dimensions["E"].width = 8
        ws.column_dimensions["F"].width = 8
        ws.column_dimensions["G"].width = 12

    # ─── Sheet: Kurs ──────────────────────────────────────────────────────────

    def _sheet_kurs(self, wb, course_id: int) -> None:
        ws = wb.create_sheet(title=f"Kurs {course_id}"[:31])
        self._setup_sheet(ws)
        entries = self.result.assignment_set.for_course(course_id)
        self._write_schedule_table(ws, entries, mode="course")

    # ─── Sheet: Lehrkraft ─────────────────────────────────────────────────────

    def _sheet_lehrkraft(self, wb, teacher: Teacher) -> None:
        ws = wb.create_sheet(title=f"Lehrkraft {teacher.id}"[:31])
        self._setup_sheet(ws)
        entries = self.result.assignment_set.for_teacher(teacher.id)
        last_row = self._write_schedule_table(ws, entries, mode="teacher")

        # Stat-Box unter dem Raster
        from openpyxl.styles import Font
        last_row += 1
        ws.cell(row=last_row, column=1, value="Name:").font = Font(bold=True)
        ws.cell(row=last_row, column=2, value=teacher.name)
        ws.cell(row=last_row, column=3, value="Blöcke:").font = Font(bold=True)
        ws.cell(row=last_row, column=4, value=f"{len(entries)} / {teacher.weekly_hours}")
        ws.cell(row=last_row, column=5, value="Springstunden:").font = Font(bold=True)
        ws.cell(row=last_row, column=6, value=count_gaps(entries))

    # ─── Sheet: Offene Einheiten ──────────────────────────────────────────────

    def _sheet_offen(self, wb) -> None:
        ws = wb.create_sheet(title="Offene Einheiten")
        self._write_table_header(ws, 1, ["Kurs", "Fach", "Einheit", "Grund", "Detail"])
        border = self._thin_border()
        row = 2
        for u in self.result.unmet:
            course = self.snapshot.course(u.course_id)
            subject = self.snapshot.subject(u.subject_id)
            values = [
                course.name if course else u.course_id,
                subject.name if subject else u.subject_id,
                u.unit_index,
                u.reason.value,
                u.detail,
            ]
            for col, value in enumerate(values, 1):
                ws.cell(row=row, column=col, value=value).border = border
            row += 1

        ws.column_dimensions["A"].width = 18
        ws.column_dimensions["B"].width = 24
        ws.column_dimensions["C"].width = 8
        ws.column_dimensions["D"].width = 42
        ws.column_dimensions["E"].width = 60

    # ─── Sheet: Termine ───────────────────────────────────────────────────────

    def _sheet_termine(
        self, wb, date_range: DateRange, holidays: list[Union[Holiday, datetime.date]]
    ) -> None:
        ws = wb.create_sheet(title="Termine")
        self._write_table_header(ws, 1, ["Datum", "Tag", "Block", "Zeit", "Kurs", "Fach", "Lehrkraft"])
        border = self._thin_border()

        occurrences = ScheduleProjector(self.snapshot).project(
            self.result.assignment_set, None, date_range, holidays
        )
        course_names = {c.id: c.name for c in self.snapshot.courses}

        row = 2
        for occ in occurrences:
            start, end = self.tg.period_times(occ.slot.period)
            values = [
                occ.date.isoformat(),
                self.day_names[occ.slot.day] if occ.slot.day < len(self.day_names) else occ.slot.day_name,
                occ.slot.period,
                f"{start}–{end}",
                course_names.get(occ.course_id, occ.course_id),
                occ.subject_name,
                occ.teacher_name,
            ]
            for col, value in enumerate(values, 1):
                ws.cell(row=row, column=col, value=value).border = border
            row += 1

        ws.column_dimensions["A"].width = 12
        ws.column_dimensions["B"].width = 6
        ws.column_dimensions["C"].width = 7
        ws.column_dimensions["D"].width = 13
        ws.column_dimensions["E"].width = 18
        ws.column_dimensions["F"].width = 24
        ws.column_dimensions["G"].width = 26
