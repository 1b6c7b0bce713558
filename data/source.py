"""Schnittstelle zu den Stammdaten-Diensten (Kurse, Fächer, Lehrkräfte, Feiertage).

Die Dienste liefern camelCase-DTOs (weeklyBlocks, contractType, subjectIds,
availableBlocks, ...). Die Übersetzung in die Domänen-Modelle passiert genau
hier, über die Aliase der Pydantic-Modelle; die Engine sieht nur fertige
Modelle.
"""

import json
import logging
from pathlib import Path
from typing import Iterable, Optional, Protocol

from config.schema import TimeGridConfig
from models.assignment import AssignmentSet
from models.course import Course
from models.holiday import Holiday
from models.snapshot import SchoolSnapshot
from models.subject import Subject
from models.teacher import Teacher
from solver.projection import DateRange

logger = logging.getLogger(__name__)


class DataSourceError(Exception):
    """Fehler beim Lesen oder Schreiben einer Datenquelle."""


class SchoolDataSource(Protocol):
    """Was die Engine von den umgebenden Diensten braucht."""

    def list_courses(self) -> list[Course]: ...

    def list_levels(self) -> list[str]: ...

    def list_subjects_for_level(self, level: str) -> list[Subject]: ...

    def list_teachers(self) -> list[Teacher]: ...

    def list_holidays(self, date_range: DateRange) -> list[Holiday]: ...

    def store_assignments(self, assignment_set: AssignmentSet) -> None: ...


# ─── In-Memory ────────────────────────────────────────────────────────────────

class InMemoryDataSource:
    """Datenquelle auf Listen, z.B. für Tests oder eingebettete Nutzung."""

    def __init__(
        self,
        courses: Iterable[Course] = (),
        subjects: Iterable[Subject] = (),
        teachers: Iterable[Teacher] = (),
        holidays: Iterable[Holiday] = (),
    ) -> None:
        self.courses = list(courses)
        self.subjects = list(subjects)
        self.teachers = list(teachers)
        self.holidays = list(holidays)
        self.stored: list[AssignmentSet] = []

    def list_courses(self) -> list[Course]:
        return list(self.courses)

    def list_levels(self) -> list[str]:
        return sorted({s.level for s in self.subjects} | {c.level for c in self.courses})

    def list_subjects_for_level(self, level: str) -> list[Subject]:
        return [s for s in self.subjects if s.level == level]

    def list_teachers(self) -> list[Teacher]:
        return list(self.teachers)

    def list_holidays(self, date_range: DateRange) -> list[Holiday]:
        return sorted(
            (h for h in self.holidays if h.date in date_range),
            key=lambda h: h.date,
        )

    def store_assignments(self, assignment_set: AssignmentSet) -> None:
        self.stored.append(assignment_set)

    @classmethod
    def from_dtos(cls, payload: dict) -> "InMemoryDataSource":
        """Baut die Quelle aus einem Dienst-Export (camelCase-Dicts).

        Wirft pydantic.ValidationError bei ungültigen Feldern.
        """
        return cls(
            courses=[Course.model_validate(c) for c in payload.get("courses", [])],
            subjects=[Subject.model_validate(s) for s in payload.get("subjects", [])],
            teachers=[Teacher.model_validate(t) for t in payload.get("teachers", [])],
            holidays=[Holiday.model_validate(h) for h in payload.get("holidays", [])],
        )

    def to_dtos(self) -> dict:
        """Gegenstück zu from_dtos: Export im camelCase-Format der Dienste."""
        def dump(items):
            return [i.model_dump(mode="json", by_alias=True) for i in items]

        return {
            "courses": dump(self.courses),
            "subjects": dump(self.subjects),
            "teachers": dump(self.teachers),
            "holidays": dump(self.holidays),
        }


# ─── JSON-Datei ───────────────────────────────────────────────────────────────

class JsonDataSource(InMemoryDataSource):
    """Datenquelle aus einer JSON-Exportdatei der Dienste.

    store_assignments schreibt das AssignmentSet neben die Datei
    (<name>.assignments.json).
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        if not self.path.exists():
            raise FileNotFoundError(f"Datendatei nicht gefunden: {self.path}")
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                payload = json.load(f)
        except json.JSONDecodeError as e:
            raise DataSourceError(f"Ungültiges JSON in {self.path}: {e}") from e

        loaded = InMemoryDataSource.from_dtos(payload)
        super().__init__(loaded.courses, loaded.subjects, loaded.teachers, loaded.holidays)
        logger.debug(
            f"{self.path}: {len(self.courses)} Kurse, {len(self.subjects)} Fächer, "
            f"{len(self.teachers)} Lehrkräfte, {len(self.holidays)} Feiertage"
        )

    @property
    def assignments_path(self) -> Path:
        return self.path.with_name(f"{self.path.stem}.assignments.json")

    def store_assignments(self, assignment_set: AssignmentSet) -> None:
        super().store_assignments(assignment_set)
        assignment_set.save_json(self.assignments_path)
        logger.info(f"{len(assignment_set)} Zuweisungen gespeichert: {self.assignments_path}")

    def load_assignments(self) -> AssignmentSet:
        return AssignmentSet.load_json(self.assignments_path)

    @staticmethod
    def write(source: InMemoryDataSource, path: Path) -> Path:
        """Schreibt eine Quelle im Export-Format auf die Platte."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(source.to_dtos(), f, ensure_ascii=False, indent=2)
        return path


# ─── Snapshot ─────────────────────────────────────────────────────────────────

def load_snapshot(
    source: SchoolDataSource, time_grid: Optional[TimeGridConfig] = None
) -> SchoolSnapshot:
    """Liest alle Dienste einmal aus und friert das Ergebnis ein."""
    subjects: list[Subject] = []
    for level in source.list_levels():
        subjects.extend(source.list_subjects_for_level(level))
    return SchoolSnapshot.capture(
        source.list_courses(), subjects, source.list_teachers(), time_grid
    )
