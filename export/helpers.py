"""Gemeinsame Hilfsfunktionen für Excel-Export und Terminal-Anzeige."""

from collections import defaultdict
from datetime import date

from config.schema import TimeGridConfig
from models.assignment import Assignment
from models.snapshot import SchoolSnapshot

# ─── Farbpalette (RRGGBB, ohne #) ─────────────────────────────────────────────

COLORS: dict[str, str] = {
    "lenguaje":    "FFF2B3",
    "ciencias":    "B3D4FF",
    "humanidades": "D4B3FF",
    "artes":       "FFB3E6",
    "deporte":     "FFD4B3",
    "nucleo":      "B3FFB3",
    "general":     "E0E0E0",
    "gap":         "FF9999",
    "free":        "F5F5F5",
    "unmet":       "FFC7CE",
    "holiday":     "DDDDDD",
    "header":      "4472C4",
}


def hex_to_rgb(hex_color: str) -> tuple[int, int, int]:
    """Wandelt RRGGBB-String in (r, g, b)-Tupel um."""
    h = hex_color.lstrip("#")
    return int(h[0:2], 16), int(h[2:4], 16), int(h[4:6], 16)


def font_color_for(fill_hex: str) -> str:
    """Schwarz oder weiß, je nach Helligkeit der Hintergrundfarbe."""
    r, g, b = hex_to_rgb(fill_hex)
    luminance = 0.299 * r + 0.587 * g + 0.114 * b
    return "000000" if luminance >= 140 else "FFFFFF"


def today_str() -> str:
    """Gibt das heutige Datum als DD.MM.YYYY zurück."""
    return date.today().strftime("%d.%m.%Y")


# ─── Zeitraster ───────────────────────────────────────────────────────────────

def period_rows(time_grid: TimeGridConfig) -> list[tuple[int, str]]:
    """(Block, "HH:MM–HH:MM") für alle Blöcke des Rasters."""
    rows = []
    for period in range(1, time_grid.periods_per_day + 1):
        start, end = time_grid.period_times(period)
        rows.append((period, f"{start}–{end}"))
    return rows


# ─── Fach-Farbe ───────────────────────────────────────────────────────────────

def get_subject_color(subject_id: int, snapshot: SchoolSnapshot) -> str:
    """Hex-Farbe eines Fachs: eigene Farbe, sonst nach Fach-Typ."""
    subject = snapshot.subject(subject_id)
    if subject is None:
        return COLORS["general"]
    if subject.color:
        return subject.color.lstrip("#").upper()
    return COLORS.get(subject.type, COLORS["general"])


# ─── Springstunden ────────────────────────────────────────────────────────────

def gap_slots(assignments: list[Assignment]) -> set[tuple[int, int]]:
    """Freie (Tag, Block) zwischen erster und letzter Sitzung eines Tages."""
    by_day: dict[int, set[int]] = defaultdict(set)
    for a in assignments:
        by_day[a.slot.day].add(a.slot.period)
    gaps: set[tuple[int, int]] = set()
    for day, periods in by_day.items():
        first, last = min(periods), max(periods)
        for p in range(first + 1, last):
            if p not in periods:
                gaps.add((day, p))
    return gaps


def count_gaps(assignments: list[Assignment]) -> int:
    """Zählt Springstunden über alle Tage."""
    return len(gap_slots(assignments))


# ─── Zelleninhalt-Formatierung ────────────────────────────────────────────────

def format_assignment(
    assignment: Assignment, snapshot: SchoolSnapshot, mode: str = "course"
) -> str:
    """Formatiert eine Zuweisung als Zelleninhalt.

    mode='course':  "Fach\nLehrkraft"
    mode='teacher': "Fach\nKurs"
    """
    subject = snapshot.subject(assignment.subject_id)
    subj = subject.name if subject else f"#{assignment.subject_id}"

    if mode == "course":
        teacher = snapshot.teacher(assignment.teacher_id)
        return f"{subj}\n{teacher.name if teacher else assignment.teacher_id}"
    elif mode == "teacher":
        course = snapshot.course(assignment.course_id)
        return f"{subj}\n{course.name if course else assignment.course_id}"
    return subj
