"""Testdaten-Generator für die Wochenplan-Engine.

Erzeugt einen reproduzierbaren Datensatz (gleicher Seed → gleiche Daten):
  - Fächer je Stufe aus dem SUBJECT_CATALOG
  - Kurse je Stufe ("1° Básico A", ...)
  - Lehrkräfte pro Fachname mit ~25% Kapazitätspuffer
      FULL:    alle Slots des Rasters verfügbar
      PARTIAL: nur an einigen Tagen verfügbar, weniger Wochenstunden
  - Feiertage eines Kalenderjahres

Die erste Lehrkraft eines Fachnamens ist immer Vollzeit; weitere sind mit
35% Wahrscheinlichkeit Teilzeit, deren Tage kollidieren können.
"""

import datetime
import random
import string
from typing import Optional

from config.defaults import LEVELS, SUBJECT_CATALOG
from config.schema import SchedulerConfig
from data.source import InMemoryDataSource
from models.course import Course
from models.holiday import Holiday
from models.snapshot import SchoolSnapshot
from models.subject import Subject
from models.teacher import ContractType, Teacher
from models.timeslot import Slot

# ─── Namens-Listen ────────────────────────────────────────────────────────────

_FIRST_NAMES = [
    "Ana", "Benjamín", "Camila", "Diego", "Elena", "Felipe", "Gabriela",
    "Héctor", "Isabel", "Javier", "Karina", "Lucas", "María", "Nicolás",
    "Olivia", "Pablo", "Rocío", "Sebastián", "Tamara", "Valentina",
]

_LAST_NAMES = [
    "González", "Muñoz", "Rojas", "Díaz", "Pérez", "Soto", "Contreras",
    "Silva", "Martínez", "Sepúlveda", "Morales", "Rodríguez", "López",
    "Fuentes", "Hernández", "Torres", "Araya", "Flores", "Espinoza", "Castillo",
]

# Kursnamen je Stufe (Jahrgänge)
_GRADES: dict[str, list[str]] = {
    "parvulario": ["Pre-Kínder", "Kínder"],
    "basico": [f"{n}° Básico" for n in range(1, 9)],
    "media": [f"{n}° Medio" for n in range(1, 5)],
}

# Feste Feiertage (Monat, Tag, Bezeichnung)
_FIXED_HOLIDAYS = [
    (1, 1, "Año Nuevo"),
    (5, 1, "Día del Trabajo"),
    (5, 21, "Día de las Glorias Navales"),
    (9, 18, "Fiestas Patrias"),
    (9, 19, "Día de las Glorias del Ejército"),
    (12, 8, "Inmaculada Concepción"),
    (12, 25, "Navidad"),
]

_CAPACITY_BUFFER = 1.25


class FakeDataGenerator:
    """Generiert vollständige Testdaten auf Basis der SchedulerConfig."""

    def __init__(
        self,
        config: Optional[SchedulerConfig] = None,
        seed: Optional[int] = None,
        courses_per_grade: int = 1,
        grades_per_level: Optional[int] = 2,
    ) -> None:
        self.config = config or SchedulerConfig()
        self.rng = random.Random(seed)
        self.courses_per_grade = courses_per_grade
        self.grades_per_level = grades_per_level

    # ─── Fächer ───────────────────────────────────────────────────────────────

    def _generate_subjects(self) -> list[Subject]:
        """Ein Fach pro (Stufe, Fachname) aus dem Katalog, IDs fortlaufend."""
        subjects = []
        next_id = 1
        for level in LEVELS:
            for name, (blocks, subject_type, color) in SUBJECT_CATALOG[level].items():
                subjects.append(Subject(
                    id=next_id,
                    name=name,
                    level=level,
                    weekly_blocks=blocks,
                    type=subject_type,
                    color=color,
                ))
                next_id += 1
        return subjects

    # ─── Kurse ────────────────────────────────────────────────────────────────

    def _generate_courses(self) -> list[Course]:
        courses = []
        next_id = 1
        for level in LEVELS:
            grades = _GRADES[level][:self.grades_per_level]
            for grade in grades:
                for i in range(self.courses_per_grade):
                    label = string.ascii_uppercase[i]
                    courses.append(Course(
                        id=next_id,
                        name=f"{grade} {label}",
                        level=level,
                        student_count=self.rng.randint(18, 38),
                    ))
                    next_id += 1
        return courses

    # ─── Lehrkräfte ───────────────────────────────────────────────────────────

    def _all_slots(self) -> list[Slot]:
        tg = self.config.time_grid
        return [
            Slot(day, period)
            for day in range(tg.days_per_week)
            for period in range(1, tg.periods_per_day + 1)
        ]

    def _partial_slots(self) -> list[Slot]:
        """Zufällige Auswahl an ganzen Tagen (mindestens 2)."""
        tg = self.config.time_grid
        num_days = self.rng.randint(min(2, tg.days_per_week), max(2, tg.days_per_week - 1))
        days = sorted(self.rng.sample(range(tg.days_per_week), min(num_days, tg.days_per_week)))
        return [Slot(d, p) for d in days for p in range(1, tg.periods_per_day + 1)]

    def _make_teacher(
        self, teacher_id: int, subject_ids: list[int], partial: bool
    ) -> Teacher:
        """Erstellt eine Lehrkraft mit zufälligem Namen."""
        first = self.rng.choice(_FIRST_NAMES)
        last = self.rng.choice(_LAST_NAMES)
        full_hours = min(self.config.full_time_weekly_hours, self.config.time_grid.slot_count)

        if partial:
            blocks = self._partial_slots()
            hours = max(1, min(len(blocks), self.rng.randint(full_hours // 3, full_hours // 2)))
        else:
            blocks = self._all_slots()
            hours = full_hours

        return Teacher(
            id=teacher_id,
            name=f"{last}, {first}",
            contract_type=ContractType.PARTIAL if partial else ContractType.FULL,
            weekly_hours=hours,
            subject_ids=subject_ids,
            available_blocks=blocks,
        )

    def _generate_teachers(
        self, subjects: list[Subject], courses: list[Course]
    ) -> list[Teacher]:
        """Lehrkräfte pro Fachname, bis Kapazität ≥ Bedarf × Puffer.

        Eine Lehrkraft unterrichtet ein Fach über alle Stufen hinweg
        (z.B. "Matemáticas" in básico und media).
        """
        courses_per_level: dict[str, int] = {}
        for c in courses:
            courses_per_level[c.level] = courses_per_level.get(c.level, 0) + 1

        by_name: dict[str, list[Subject]] = {}
        for s in subjects:
            by_name.setdefault(s.name, []).append(s)

        teachers: list[Teacher] = []
        for name in sorted(by_name):
            group = by_name[name]
            need = sum(s.weekly_blocks * courses_per_level.get(s.level, 0) for s in group)
            if need == 0:
                continue
            subject_ids = [s.id for s in group]
            capacity = 0
            while capacity < need * _CAPACITY_BUFFER:
                # Erste Lehrkraft eines Fachs ist immer Vollzeit
                partial = capacity > 0 and self.rng.random() < 0.35
                teacher = self._make_teacher(len(teachers) + 1, subject_ids, partial)
                teachers.append(teacher)
                capacity += teacher.weekly_hours
        return teachers

    # ─── Feiertage ────────────────────────────────────────────────────────────

    def generate_holidays(self, year: int) -> list[Holiday]:
        """Feste Feiertage eines Jahres."""
        return [
            Holiday(id=i, date=datetime.date(year, month, day), description=text)
            for i, (month, day, text) in enumerate(_FIXED_HOLIDAYS, start=1)
        ]

    # ─── Vollständiger Datensatz ──────────────────────────────────────────────

    def generate(self) -> SchoolSnapshot:
        """Erzeugt den vollständigen Datensatz als SchoolSnapshot."""
        subjects = self._generate_subjects()
        courses = self._generate_courses()
        teachers = self._generate_teachers(subjects, courses)

        # Profesor jefe: zufällige Lehrkraft mit Fach der Stufe
        with_heads = []
        for course in courses:
            level_ids = {s.id for s in subjects if s.level == course.level}
            pool = [t.id for t in teachers if level_ids & set(t.subject_ids)]
            head = self.rng.choice(pool) if pool else None
            with_heads.append(course.model_copy(update={"head_teacher_id": head}))

        return SchoolSnapshot.capture(with_heads, subjects, teachers, self.config.time_grid)

    def generate_source(self, year: Optional[int] = None) -> InMemoryDataSource:
        """Datensatz + Feiertage als Datenquelle (für JSON-Export)."""
        snapshot = self.generate()
        year = year or datetime.date.today().year
        return InMemoryDataSource(
            courses=snapshot.courses,
            subjects=snapshot.subjects,
            teachers=snapshot.teachers,
            holidays=self.generate_holidays(year),
        )

    # ─── Ausgabe ──────────────────────────────────────────────────────────────

    def print_summary(self, snapshot: SchoolSnapshot) -> None:
        """Gibt eine Rich-Tabelle mit Übersicht der erzeugten Daten aus."""
        from rich.console import Console
        from rich.table import Table
        from rich import box

        console = Console()
        table = Table(title="Erzeugte Testdaten", box=box.ROUNDED)
        table.add_column("Kategorie", style="bold cyan")
        table.add_column("Anzahl", justify="right")
        table.add_column("Details")

        num_partial = sum(1 for t in snapshot.teachers if t.is_partial)
        table.add_row("Fächer", str(len(snapshot.subjects)),
                      f"{len({s.level for s in snapshot.subjects})} Stufen")
        table.add_row("Kurse", str(len(snapshot.courses)), "")
        table.add_row("Lehrkräfte", str(len(snapshot.teachers)),
                      f"{num_partial} Teilzeit, {len(snapshot.teachers) - num_partial} Vollzeit")
        table.add_row("Einheiten/Woche", str(snapshot.total_session_units()), "")

        console.print(table)
