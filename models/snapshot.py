"""SchoolSnapshot: unveränderlicher Datenstand für einen Solve + Machbarkeits-Check (Pydantic v2)."""

import hashlib
from collections import defaultdict
from pathlib import Path
from typing import Iterable, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from config.schema import TimeGridConfig
from models.assignment import Requirement
from models.course import Course
from models.subject import Subject
from models.teacher import Teacher


class SnapshotValidationError(ValueError):
    """Fehlerhafte Eingabedaten (unbekannte Referenzen, doppelte IDs).

    Wird VOR dem Solve geworfen; `problems` enthält alle gefundenen Fehler.
    """

    def __init__(self, problems: list[str]) -> None:
        self.problems = list(problems)
        super().__init__(
            f"{len(self.problems)} Eingabefehler:\n" + "\n".join(f"  • {p}" for p in self.problems)
        )


class StructuralIssue(BaseModel):
    """Strukturelle Unlösbarkeit, erkannt vor der Suche (Qualifikation/Kapazität)."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["no_qualified_teacher", "sole_teacher_capacity"]
    requirements: tuple[tuple[int, int], ...]   # betroffene (course_id, subject_id)
    teacher_id: Optional[int] = None
    required_blocks: int = 0
    capacity: int = 0
    message: str


class FeasibilityReport(BaseModel):
    """Ergebnis des Machbarkeits-Checks."""

    is_feasible: bool
    issues: list[StructuralIssue]   # Kritische Probleme (vollständige Lösung unmöglich)
    warnings: list[str]             # Hinweise (Lösung schwierig aber evtl. möglich)

    def print_rich(self) -> None:
        """Gibt den Report formatiert über Rich aus."""
        from rich.console import Console
        from rich.panel import Panel

        console = Console()
        if self.is_feasible:
            status = "[bold green]✓ STRUKTURELL LÖSBAR[/bold green]"
        else:
            status = "[bold red]✗ STRUKTURELL NICHT LÖSBAR[/bold red]"

        lines = [status]
        if self.issues:
            lines.append("\n[red bold]Strukturelle Probleme:[/red bold]")
            for issue in self.issues:
                lines.append(f"  [red]• {issue.message}[/red]")
        if self.warnings:
            lines.append("\n[yellow bold]Warnungen:[/yellow bold]")
            for w in self.warnings:
                lines.append(f"  [yellow]• {w}[/yellow]")
        if not self.issues and not self.warnings:
            lines.append("[dim]Keine Probleme gefunden.[/dim]")

        console.print(Panel("\n".join(lines), title="Machbarkeits-Check", border_style="cyan"))


class SchoolSnapshot(BaseModel):
    """Lesender Datenstand eines Solves: Kurse, Fächer, Lehrkräfte, Wochenraster.

    Alle Sammlungen sind nach ID sortierte Tupel; der Snapshot ist eingefroren
    und wird von der Engine nie verändert.
    """

    model_config = ConfigDict(frozen=True)

    courses: tuple[Course, ...] = ()
    subjects: tuple[Subject, ...] = ()
    teachers: tuple[Teacher, ...] = ()
    time_grid: TimeGridConfig = Field(default_factory=TimeGridConfig)

    @classmethod
    def capture(
        cls,
        courses: Iterable[Course],
        subjects: Iterable[Subject],
        teachers: Iterable[Teacher],
        time_grid: Optional[TimeGridConfig] = None,
    ) -> "SchoolSnapshot":
        """Kopiert die Daten der Dienste in einen eingefrorenen Snapshot (copy-on-read).

        Spätere Änderungen an den übergebenen Listen sind im Snapshot nicht sichtbar.
        """
        return cls(
            courses=tuple(sorted(courses, key=lambda c: c.id)),
            subjects=tuple(sorted(subjects, key=lambda s: s.id)),
            teachers=tuple(sorted(teachers, key=lambda t: t.id)),
            time_grid=(time_grid or TimeGridConfig()).model_copy(deep=True),
        )

    # ─── Lookups ───

    def course(self, course_id: int) -> Optional[Course]:
        return next((c for c in self.courses if c.id == course_id), None)

    def subject(self, subject_id: int) -> Optional[Subject]:
        return next((s for s in self.subjects if s.id == subject_id), None)

    def teacher(self, teacher_id: int) -> Optional[Teacher]:
        return next((t for t in self.teachers if t.id == teacher_id), None)

    def subjects_for_level(self, level: str) -> list[Subject]:
        """Pflichtfächer einer Stufe, nach ID sortiert."""
        return [s for s in self.subjects if s.level == level]

    def requirements(self) -> list[Requirement]:
        """Leitet alle Bedarfe ab, sortiert nach (course_id, subject_id)."""
        reqs: list[Requirement] = []
        for course in self.courses:
            for subject in self.subjects_for_level(course.level):
                reqs.append(Requirement(
                    course_id=course.id,
                    subject_id=subject.id,
                    sessions=subject.weekly_blocks,
                ))
        return reqs

    def total_session_units(self) -> int:
        """Summe aller Pflicht-Blöcke über alle Bedarfe."""
        return sum(r.sessions for r in self.requirements())

    def restrict_to_courses(self, course_ids: Iterable[int]) -> "SchoolSnapshot":
        """Teil-Snapshot mit nur den angegebenen Kursen (Fächer und Lehrkräfte bleiben)."""
        wanted = set(course_ids)
        return self.model_copy(update={
            "courses": tuple(c for c in self.courses if c.id in wanted),
        })

    def fingerprint(self) -> str:
        """SHA-256 über das kanonische JSON; ändert sich bei jeder Datenänderung."""
        return hashlib.sha256(self.model_dump_json().encode("utf-8")).hexdigest()

    # ─── Übersicht ───

    def summary(self) -> str:
        """Kurze Übersicht über den Datensatz."""
        total_need = self.total_session_units()
        total_cap = sum(t.weekly_hours for t in self.teachers)
        num_partial = sum(1 for t in self.teachers if t.is_partial)
        levels = sorted({c.level for c in self.courses})
        lines = [
            f"Kurse: {len(self.courses)} ({len(levels)} Stufen: {', '.join(levels)})",
            f"Fächer: {len(self.subjects)}",
            f"Lehrkräfte: {len(self.teachers)} "
            f"({num_partial} Teilzeit, {len(self.teachers) - num_partial} Vollzeit)",
            f"Gesamtkapazität: {total_cap} Blöcke/Woche",
            f"Gesamtbedarf: {total_need} Blöcke/Woche",
            f"Puffer: {total_cap - total_need:+d} Blöcke" if total_need else "",
            f"Wochenraster: {self.time_grid.days_per_week} Tage × "
            f"{self.time_grid.periods_per_day} Blöcke",
        ]
        return "\n".join(l for l in lines if l)

    # ─── Validierung ───

    def validate_references(self) -> list[str]:
        """Prüft IDs und Referenzen. Wirft SnapshotValidationError bei Fehlern.

        Gibt die Warnungen zurück (z.B. Verfügbarkeit außerhalb des Rasters).
        """
        errors: list[str] = []
        warnings: list[str] = []

        for label, items in (("Kurs", self.courses), ("Fach", self.subjects),
                             ("Lehrkraft", self.teachers)):
            seen: set[int] = set()
            for item in items:
                if item.id in seen:
                    errors.append(f"{label} {item.id}: doppelte ID")
                seen.add(item.id)

        subject_ids = {s.id for s in self.subjects}
        teacher_ids = {t.id for t in self.teachers}
        tg = self.time_grid

        for teacher in self.teachers:
            unknown = [sid for sid in teacher.subject_ids if sid not in subject_ids]
            if unknown:
                errors.append(
                    f"Lehrkraft {teacher.id} ({teacher.name}): unbekannte Fächer {unknown}"
                )
            outside = [b for b in teacher.available_blocks if not tg.contains(b.day, b.period)]
            if outside:
                warnings.append(
                    f"Lehrkraft {teacher.id}: {len(outside)} verfügbare Blöcke außerhalb "
                    f"des Wochenrasters werden ignoriert ({', '.join(str(b) for b in outside[:4])})"
                )

        for course in self.courses:
            if course.head_teacher_id is not None and course.head_teacher_id not in teacher_ids:
                warnings.append(
                    f"Kurs {course.id} ({course.name}): Profesor jefe {course.head_teacher_id} unbekannt"
                )
            if not self.subjects_for_level(course.level):
                warnings.append(
                    f"Kurs {course.id} ({course.name}): keine Fächer für Stufe '{course.level}'"
                )

        if errors:
            raise SnapshotValidationError(errors)
        return warnings

    def qualified_teachers(self, subject_id: int, course_id: Optional[int] = None) -> list[Teacher]:
        """Lehrkräfte mit Qualifikation UND mindestens einem Block im Raster.

        Mit course_id nur Lehrkräfte, die diesem Kurs zugeordnet sind.
        """
        tg = self.time_grid
        return [
            t for t in self.teachers
            if t.is_qualified_for(subject_id)
            and (course_id is None or t.teaches_course(course_id))
            and any(tg.contains(b.day, b.period) for b in t.available_blocks)
        ]

    def structural_issues(self) -> list[StructuralIssue]:
        """Schneller Vorab-Check vor der Suche.

        1. Bedarf ohne qualifizierte, verfügbare (und dem Kurs zugeordnete) Lehrkraft
        2. Alleinige Lehrkraft eines oder mehrerer Bedarfe mit weekly_hours
           unter der Summe dieser Bedarfe
        """
        issues: list[StructuralIssue] = []
        sole_need: dict[int, list[Requirement]] = defaultdict(list)

        for req in self.requirements():
            qualified = self.qualified_teachers(req.subject_id, req.course_id)
            if not qualified:
                subject = self.subject(req.subject_id)
                issues.append(StructuralIssue(
                    kind="no_qualified_teacher",
                    requirements=(req.key,),
                    required_blocks=req.sessions,
                    message=(
                        f"Kurs {req.course_id}, Fach '{subject.name if subject else req.subject_id}': "
                        f"keine qualifizierte Lehrkraft verfügbar ({req.sessions} Blöcke/Woche)"
                    ),
                ))
            elif len(qualified) == 1:
                sole_need[qualified[0].id].append(req)

        for teacher_id in sorted(sole_need):
            reqs = sole_need[teacher_id]
            need = sum(r.sessions for r in reqs)
            teacher = self.teacher(teacher_id)
            if need > teacher.weekly_hours:
                issues.append(StructuralIssue(
                    kind="sole_teacher_capacity",
                    requirements=tuple(r.key for r in reqs),
                    teacher_id=teacher_id,
                    required_blocks=need,
                    capacity=teacher.weekly_hours,
                    message=(
                        f"Lehrkraft {teacher_id} ({teacher.name}) ist einzige Lehrkraft für "
                        f"{len(reqs)} Bedarf(e) mit {need} Blöcken, hat aber nur "
                        f"{teacher.weekly_hours} Wochenstunden"
                    ),
                ))
        return issues

    def validate_feasibility(self) -> FeasibilityReport:
        """Prüft ob die Daten grundsätzlich lösbar sind.

        Prüfungen:
        1. Strukturelle Probleme (siehe structural_issues)
        2. Gesamtbilanz: Summe weekly_hours ≥ Summe Bedarf
        3. Jede Lehrkraft: verfügbare Slots ≥ weekly_hours (sonst Hinweis)
        4. Jeder Kurs: Bedarf ≤ Slots im Wochenraster
        5. Jedes Fach: max_daily_blocks × Tage ≥ weekly_blocks
        """
        warnings = self.validate_references()
        issues = self.structural_issues()
        tg = self.time_grid

        total_need = self.total_session_units()
        total_cap = sum(t.weekly_hours for t in self.teachers)
        if total_need == 0:
            warnings.append("Kein Bedarf definiert – keine Kurse oder Fächer vorhanden.")
        elif total_cap < total_need:
            warnings.append(
                f"Gesamtbilanz: Lehrerkapazität ({total_cap}) < Gesamtbedarf ({total_need}). "
                f"Es fehlen mindestens {total_need - total_cap} Blöcke."
            )

        for teacher in self.teachers:
            available = sum(1 for b in teacher.available_blocks if tg.contains(b.day, b.period))
            if available < teacher.weekly_hours:
                warnings.append(
                    f"Lehrkraft {teacher.id}: weekly_hours ({teacher.weekly_hours}) > "
                    f"verfügbare Slots ({available}) – höchstens {available} Blöcke planbar."
                )

        for course in self.courses:
            need = sum(s.weekly_blocks for s in self.subjects_for_level(course.level))
            if need > tg.slot_count:
                warnings.append(
                    f"Kurs {course.id} ({course.name}): {need} Blöcke Bedarf bei nur "
                    f"{tg.slot_count} Slots im Wochenraster."
                )

        for subject in self.subjects:
            cap = subject.max_daily_blocks
            if cap is not None and cap * tg.days_per_week < subject.weekly_blocks:
                warnings.append(
                    f"Fach {subject.id} ({subject.name}): höchstens {cap} Blöcke/Tag × "
                    f"{tg.days_per_week} Tage < {subject.weekly_blocks} Blöcke/Woche."
                )

        return FeasibilityReport(
            is_feasible=len(issues) == 0,
            issues=issues,
            warnings=warnings,
        )

    # ─── Persistenz ────────────────────────────────────────────────────────

    def save_json(self, path: Path) -> None:
        """Speichert den Snapshot als JSON-Datei."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            f.write(self.model_dump_json(indent=2))

    @classmethod
    def load_json(cls, path: Path) -> "SchoolSnapshot":
        """Lädt einen Snapshot aus einer JSON-Datei."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"JSON-Datei nicht gefunden: {path}")
        with open(path, "r", encoding="utf-8") as f:
            return cls.model_validate_json(f.read())
