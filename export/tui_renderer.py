"""Gemeinsamer Renderer für Terminal-Stundenplan-Anzeige.

Wird von `wochenplan show` (Rich) verwendet.
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from models.assignment import AssignmentSet
    from models.snapshot import SchoolSnapshot


def render_course_rows(
    course_id: int,
    assignment_set: "AssignmentSet",
    snapshot: "SchoolSnapshot",
) -> list[list[str]]:
    """Gibt Tabellenzeilen für den Kurs-Stundenplan zurück.

    Jede Zeile: [Block, Uhrzeit, Tag 1, Tag 2, ...]
    """
    from export.helpers import format_assignment, period_rows

    if snapshot.course(course_id) is None:
        return []

    slot_map = {(a.slot.day, a.slot.period): a for a in assignment_set.for_course(course_id)}
    tg = snapshot.time_grid
    rows: list[list[str]] = []

    for period, time_label in period_rows(tg):
        cells = [str(period), time_label]
        for day_idx in range(tg.days_per_week):
            a = slot_map.get((day_idx, period))
            cells.append("—" if a is None else format_assignment(a, snapshot, "course"))
        rows.append(cells)

    return rows


def render_teacher_rows(
    teacher_id: int,
    assignment_set: "AssignmentSet",
    snapshot: "SchoolSnapshot",
) -> list[list[str]]:
    """Gibt Tabellenzeilen für den Lehrer-Stundenplan zurück.

    Springstunden werden als 'Springstunde' markiert, Slots außerhalb der
    verfügbaren Blöcke als '·'.
    """
    from export.helpers import format_assignment, gap_slots, period_rows

    teacher = snapshot.teacher(teacher_id)
    if teacher is None:
        return []

    entries = assignment_set.for_teacher(teacher_id)
    slot_map = {(a.slot.day, a.slot.period): a for a in entries}
    gaps = gap_slots(entries)
    available = {(b.day, b.period) for b in teacher.available_blocks}

    tg = snapshot.time_grid
    rows: list[list[str]] = []
    for period, time_label in period_rows(tg):
        cells = [str(period), time_label]
        for day_idx in range(tg.days_per_week):
            key = (day_idx, period)
            a = slot_map.get(key)
            if a is not None:
                cells.append(format_assignment(a, snapshot, "teacher"))
            elif key in gaps:
                cells.append("↕ Springstunde")
            elif key not in available:
                cells.append("·")
            else:
                cells.append("—")
        rows.append(cells)

    return rows
