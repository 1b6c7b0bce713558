"""Post-Solve Validierung eines AssignmentSets.

Prüft die fertige Lösung auf Constraint-Verletzungen als Sicherheitsnetz
unabhängig vom Solver.
"""

from collections import defaultdict
from typing import Literal

from pydantic import BaseModel

from models.assignment import AssignmentSet
from models.snapshot import SchoolSnapshot


class ValidationViolation(BaseModel):
    """Eine einzelne Constraint-Verletzung."""

    severity: Literal["error", "warning"]
    constraint: str      # z.B. "teacher_double_booking"
    description: str
    entity: str          # "Kurs 3" / "Lehrkraft 7"


class ValidationReport(BaseModel):
    """Ergebnis der Post-Solve Validierung."""

    violations: list[ValidationViolation]
    is_valid: bool       # True wenn keine Errors (Warnings ok)

    @property
    def errors(self) -> list[ValidationViolation]:
        return [v for v in self.violations if v.severity == "error"]

    def print_rich(self) -> None:
        """Gibt den Report formatiert über Rich aus."""
        from rich.console import Console
        from rich.panel import Panel
        from rich.table import Table
        from rich import box

        console = Console()
        errors = self.errors
        warnings = [v for v in self.violations if v.severity == "warning"]

        status = (
            "[bold green]✓ VALIDE[/bold green]"
            if self.is_valid
            else "[bold red]✗ VERLETZUNGEN GEFUNDEN[/bold red]"
        )
        lines = [status, f"Fehler: {len(errors)} | Warnungen: {len(warnings)}"]
        console.print(Panel("\n".join(lines), title="Lösung-Validierung", border_style="cyan"))

        if not self.violations:
            console.print("[dim]Keine Verletzungen gefunden.[/dim]")
            return

        table = Table(box=box.ROUNDED, show_lines=True)
        table.add_column("Typ", width=8)
        table.add_column("Constraint", width=28)
        table.add_column("Entität", width=14)
        table.add_column("Beschreibung")

        for v in self.violations:
            color = "red" if v.severity == "error" else "yellow"
            table.add_row(
                f"[{color}]{v.severity.upper()}[/{color}]",
                v.constraint,
                v.entity,
                v.description,
            )
        console.print(table)


class SolutionValidator:
    """Prüft ein AssignmentSet gegen den Snapshot, aus dem es stammt."""

    def validate(
        self, assignment_set: AssignmentSet, snapshot: SchoolSnapshot
    ) -> ValidationReport:
        """Führt alle Validierungschecks durch und gibt einen ValidationReport zurück."""
        violations: list[ValidationViolation] = []

        violations.extend(self._check_unknown_references(assignment_set, snapshot))
        violations.extend(self._check_course_double_booking(assignment_set))
        violations.extend(self._check_teacher_double_booking(assignment_set))
        violations.extend(self._check_unavailable_slots(assignment_set, snapshot))
        violations.extend(self._check_weekly_hours(assignment_set, snapshot))
        violations.extend(self._check_qualification(assignment_set, snapshot))
        violations.extend(self._check_daily_rules(assignment_set, snapshot))
        violations.extend(self._check_requirement_fulfillment(assignment_set, snapshot))

        has_errors = any(v.severity == "error" for v in violations)
        return ValidationReport(violations=violations, is_valid=not has_errors)

    # ── Einzelne Prüfungen ────────────────────────────────────────────────────

    def _check_unknown_references(
        self, assignment_set: AssignmentSet, snapshot: SchoolSnapshot
    ) -> list[ValidationViolation]:
        """Jede Zuweisung muss auf existierende Kurse, Fächer und Lehrkräfte zeigen."""
        violations: list[ValidationViolation] = []
        course_ids = {c.id for c in snapshot.courses}
        subject_ids = {s.id for s in snapshot.subjects}
        teacher_ids = {t.id for t in snapshot.teachers}

        for a in assignment_set:
            missing = []
            if a.course_id not in course_ids:
                missing.append(f"Kurs {a.course_id}")
            if a.subject_id not in subject_ids:
                missing.append(f"Fach {a.subject_id}")
            if a.teacher_id not in teacher_ids:
                missing.append(f"Lehrkraft {a.teacher_id}")
            if missing:
                violations.append(ValidationViolation(
                    severity="error",
                    constraint="unknown_reference",
                    entity=f"Kurs {a.course_id}",
                    description=f"{a.slot}: unbekannte Referenz(en) {', '.join(missing)}.",
                ))
        return violations

    def _check_course_double_booking(
        self, assignment_set: AssignmentSet
    ) -> list[ValidationViolation]:
        """Ein Kurs kann nicht zwei Sitzungen gleichzeitig besuchen."""
        violations: list[ValidationViolation] = []
        seen: dict[tuple, list[int]] = defaultdict(list)
        for a in assignment_set:
            seen[(a.course_id, a.slot)].append(a.subject_id)

        for (course_id, slot), subjects in seen.items():
            if len(subjects) > 1:
                violations.append(ValidationViolation(
                    severity="error",
                    constraint="course_double_booking",
                    entity=f"Kurs {course_id}",
                    description=(
                        f"{slot}: mehrere Sitzungen gleichzeitig "
                        f"(Fächer {', '.join(str(s) for s in subjects)})."
                    ),
                ))
        return violations

    def _check_teacher_double_booking(
        self, assignment_set: AssignmentSet
    ) -> list[ValidationViolation]:
        """Keine Lehrkraft darf zur selben Zeit in zwei Kursen sein."""
        violations: list[ValidationViolation] = []
        seen: dict[tuple, list[int]] = defaultdict(list)
        for a in assignment_set:
            seen[(a.teacher_id, a.slot)].append(a.course_id)

        for (teacher_id, slot), courses in seen.items():
            if len(courses) > 1:
                violations.append(ValidationViolation(
                    severity="error",
                    constraint="teacher_double_booking",
                    entity=f"Lehrkraft {teacher_id}",
                    description=(
                        f"{slot}: gleichzeitig in Kursen "
                        f"{', '.join(str(c) for c in courses)} eingeplant."
                    ),
                ))
        return violations

    def _check_unavailable_slots(
        self, assignment_set: AssignmentSet, snapshot: SchoolSnapshot
    ) -> list[ValidationViolation]:
        """Keine Lehrkraft darf außerhalb ihrer available_blocks eingeplant sein."""
        violations: list[ValidationViolation] = []
        teacher_map = {t.id: t for t in snapshot.teachers}

        for a in assignment_set:
            teacher = teacher_map.get(a.teacher_id)
            if teacher and not teacher.is_available(a.slot):
                violations.append(ValidationViolation(
                    severity="error",
                    constraint="unavailable_slot_violation",
                    entity=f"Lehrkraft {a.teacher_id}",
                    description=(
                        f"{a.slot} liegt nicht in den verfügbaren Blöcken, "
                        f"aber Fach {a.subject_id} für Kurs {a.course_id} eingeplant."
                    ),
                ))
        return violations

    def _check_weekly_hours(
        self, assignment_set: AssignmentSet, snapshot: SchoolSnapshot
    ) -> list[ValidationViolation]:
        """Zugewiesene Blöcke ≤ weekly_hours je Lehrkraft."""
        violations: list[ValidationViolation] = []
        load = assignment_set.teacher_load()

        for teacher in snapshot.teachers:
            actual = load.get(teacher.id, 0)
            if actual > teacher.weekly_hours:
                violations.append(ValidationViolation(
                    severity="error",
                    constraint="weekly_hours_exceeded",
                    entity=f"Lehrkraft {teacher.id}",
                    description=(
                        f"Ist {actual} Blöcke > Max {teacher.weekly_hours} "
                        f"(Überschreitung: +{actual - teacher.weekly_hours})."
                    ),
                ))
        return violations

    def _check_qualification(
        self, assignment_set: AssignmentSet, snapshot: SchoolSnapshot
    ) -> list[ValidationViolation]:
        """Lehrkraft muss für das Fach qualifiziert und dem Kurs zugeordnet sein."""
        violations: list[ValidationViolation] = []
        teacher_map = {t.id: t for t in snapshot.teachers}

        for a in assignment_set:
            teacher = teacher_map.get(a.teacher_id)
            if teacher and not teacher.is_qualified_for(a.subject_id):
                violations.append(ValidationViolation(
                    severity="error",
                    constraint="unqualified_teacher",
                    entity=f"Lehrkraft {a.teacher_id}",
                    description=f"{a.slot}: nicht qualifiziert für Fach {a.subject_id}.",
                ))
            elif teacher and not teacher.teaches_course(a.course_id):
                violations.append(ValidationViolation(
                    severity="error",
                    constraint="teacher_not_assigned_to_course",
                    entity=f"Lehrkraft {a.teacher_id}",
                    description=f"{a.slot}: dem Kurs {a.course_id} nicht zugeordnet.",
                ))
        return violations

    def _check_daily_rules(
        self, assignment_set: AssignmentSet, snapshot: SchoolSnapshot
    ) -> list[ValidationViolation]:
        """Pro Kurs, Fach und Tag: max_daily_blocks und keine drei Blöcke in Folge."""
        violations: list[ValidationViolation] = []
        periods: dict[tuple, set[int]] = defaultdict(set)
        for a in assignment_set:
            periods[(a.course_id, a.subject_id, a.slot.day)].add(a.slot.period)

        day_names = snapshot.time_grid.day_names
        for (course_id, subject_id, day), taken in sorted(periods.items()):
            subject = snapshot.subject(subject_id)
            day_name = day_names[day] if day < len(day_names) else str(day)
            cap = subject.max_daily_blocks if subject else None
            if cap is not None and len(taken) > cap:
                violations.append(ValidationViolation(
                    severity="error",
                    constraint="daily_blocks_exceeded",
                    entity=f"Kurs {course_id}",
                    description=f"Fach {subject_id} am {day_name}: {len(taken)} Blöcke > Max {cap}.",
                ))
            runs = [p for p in sorted(taken) if p + 1 in taken and p + 2 in taken]
            if runs:
                violations.append(ValidationViolation(
                    severity="error",
                    constraint="consecutive_blocks",
                    entity=f"Kurs {course_id}",
                    description=(
                        f"Fach {subject_id} am {day_name}: drei Blöcke in Folge ab {runs[0]}. Block."
                    ),
                ))
        return violations

    def _check_requirement_fulfillment(
        self, assignment_set: AssignmentSet, snapshot: SchoolSnapshot
    ) -> list[ValidationViolation]:
        """Über-Erfüllung ist ein Fehler, Unter-Erfüllung nur ein Hinweis."""
        violations: list[ValidationViolation] = []
        actual: dict[tuple, int] = defaultdict(int)
        for a in assignment_set:
            actual[(a.course_id, a.subject_id)] += 1

        expected = {r.key: r.sessions for r in snapshot.requirements()}
        for key, got in actual.items():
            if key not in expected:
                violations.append(ValidationViolation(
                    severity="error",
                    constraint="requirement_unknown",
                    entity=f"Kurs {key[0]}",
                    description=f"Fach {key[1]} gehört nicht zur Stufe des Kurses ({got} Blöcke).",
                ))

        for key, sessions in expected.items():
            got = actual.get(key, 0)
            if got > sessions:
                violations.append(ValidationViolation(
                    severity="error",
                    constraint="requirement_exceeded",
                    entity=f"Kurs {key[0]}",
                    description=f"Fach {key[1]}: Soll {sessions}, Ist {got}.",
                ))
            elif got < sessions:
                violations.append(ValidationViolation(
                    severity="warning",
                    constraint="requirement_unmet",
                    entity=f"Kurs {key[0]}",
                    description=f"Fach {key[1]}: Soll {sessions}, Ist {got} ({got - sessions:+d}).",
                ))
        return violations
