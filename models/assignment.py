"""Bedarfe und Zuweisungen (Pydantic v2)."""

from collections import Counter
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator

from models.timeslot import Slot


class Requirement(BaseModel):
    """Abgeleiteter Bedarf: ein Kurs braucht `sessions` Blöcke eines Fachs pro Woche.

    Wird nicht gespeichert, sondern pro Solve aus dem Snapshot berechnet.
    """

    model_config = ConfigDict(frozen=True)

    course_id: int
    subject_id: int
    sessions: int = Field(ge=1)

    @property
    def key(self) -> tuple[int, int]:
        return (self.course_id, self.subject_id)


class Assignment(BaseModel):
    """Eine eingeplante Sitzung: Kurs × Fach × Lehrkraft × Slot."""

    model_config = ConfigDict(frozen=True)

    course_id: int
    subject_id: int
    teacher_id: int
    slot: Slot

    @property
    def sort_key(self) -> tuple:
        return (self.course_id, self.subject_id, self.slot, self.teacher_id)


class AssignmentSet(BaseModel):
    """Ergebnis eines Solves: alle Zuweisungen einer Woche.

    Die Zuweisungen liegen kanonisch sortiert vor (Kurs, Fach, Slot, Lehrkraft),
    zwei Solves mit identischer Eingabe liefern also auch identische Sets.
    """

    model_config = ConfigDict(frozen=True)

    assignments: tuple[Assignment, ...] = ()
    snapshot_fingerprint: str = ""   # Fingerprint des Snapshots, aus dem das Set stammt

    @field_validator("assignments", mode="after")
    @classmethod
    def _sort_assignments(cls, v: tuple[Assignment, ...]) -> tuple[Assignment, ...]:
        return tuple(sorted(v, key=lambda a: a.sort_key))

    def __len__(self) -> int:
        return len(self.assignments)

    def __iter__(self):
        return iter(self.assignments)

    def for_course(self, course_id: int) -> list[Assignment]:
        """Alle Zuweisungen eines Kurses."""
        return [a for a in self.assignments if a.course_id == course_id]

    def for_teacher(self, teacher_id: int) -> list[Assignment]:
        """Alle Zuweisungen einer Lehrkraft."""
        return [a for a in self.assignments if a.teacher_id == teacher_id]

    def teacher_load(self) -> dict[int, int]:
        """Zugewiesene Blöcke pro Lehrkraft."""
        return dict(Counter(a.teacher_id for a in self.assignments))

    def count_for(self, course_id: int, subject_id: int) -> int:
        """Anzahl eingeplanter Blöcke für (Kurs, Fach)."""
        return sum(
            1 for a in self.assignments
            if a.course_id == course_id and a.subject_id == subject_id
        )

    # ─── Persistenz ────────────────────────────────────────────────────────

    def save_json(self, path: Path) -> None:
        """Speichert das Set als JSON-Datei."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            f.write(self.model_dump_json(indent=2))

    @classmethod
    def load_json(cls, path: Path) -> "AssignmentSet":
        """Lädt ein gespeichertes Set aus JSON."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Zuweisungen nicht gefunden: {path}")
        with open(path, "r", encoding="utf-8") as f:
            return cls.model_validate_json(f.read())
