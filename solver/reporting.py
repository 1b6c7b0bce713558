"""Ergebnis-Modelle und Konflikt-Report eines Solves.

Aus dem Roh-Ergebnis der Suche wird ein SolveResult:
  - Satisfied          → alle Einheiten eingeplant
  - PartiallySatisfied → Zuweisungen + geordnete Liste offener Einheiten mit Grund
  - Infeasible         → nichts eingeplant, strukturelle Vorbedingung verletzt
Offene Einheiten werden nie verworfen: eingeplant + offen = Gesamtbedarf.
"""

import logging
from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from analysis.solution_validator import SolutionValidator
from models.assignment import AssignmentSet, Requirement
from models.snapshot import SchoolSnapshot, StructuralIssue
from solver.constraint_index import ConstraintIndex
from solver.search import SearchOutcome

logger = logging.getLogger(__name__)


class SolveStatus(str, Enum):
    SATISFIED = "Satisfied"
    PARTIALLY_SATISFIED = "PartiallySatisfied"
    INFEASIBLE = "Infeasible"


class UnmetReason(str, Enum):
    NO_QUALIFIED_TEACHER = "no qualified teacher"
    NO_AVAILABLE_SLOT = "no available slot given current occupancy"
    TEACHER_CAPACITY_EXHAUSTED = "teacher capacity exhausted"


_ISSUE_REASON = {
    "no_qualified_teacher": UnmetReason.NO_QUALIFIED_TEACHER,
    "sole_teacher_capacity": UnmetReason.TEACHER_CAPACITY_EXHAUSTED,
}


# ─── Ergebnis-Modelle ─────────────────────────────────────────────────────────

class UnmetSessionUnit(BaseModel):
    """Eine nicht eingeplante Sitzungs-Einheit (1 Block eines Bedarfs)."""

    model_config = ConfigDict(frozen=True)

    course_id: int
    subject_id: int
    unit_index: int          # 1-basiert innerhalb des Bedarfs
    reason: UnmetReason
    detail: str = ""


class SolveStats(BaseModel):
    """Kennzahlen eines Solves."""

    units_total: int = 0
    units_assigned: int = 0
    backtracks: int = 0
    elapsed_seconds: float = 0.0
    budget_exhausted: bool = False
    cancelled: bool = False
    timed_out: bool = False
    index_fingerprint: str = ""

    @property
    def units_unmet(self) -> int:
        return self.units_total - self.units_assigned


class SolveResult(BaseModel):
    """Vollständiges Ergebnis eines Solves inkl. Diagnose."""

    status: SolveStatus
    assignment_set: AssignmentSet = Field(default_factory=AssignmentSet)
    unmet: list[UnmetSessionUnit] = []
    structural_issues: list[StructuralIssue] = []
    warnings: list[str] = []
    diagnostics: list[str] = []       # Verletzungen aus der Post-Solve Validierung
    stats: SolveStats = Field(default_factory=SolveStats)

    @property
    def is_satisfied(self) -> bool:
        return self.status == SolveStatus.SATISFIED

    def unmet_for_course(self, course_id: int) -> list[UnmetSessionUnit]:
        return [u for u in self.unmet if u.course_id == course_id]

    def to_json(self) -> str:
        return self.model_dump_json(indent=2)

    def save_json(self, path: Path) -> None:
        """Speichert das Ergebnis als JSON-Datei."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            f.write(self.to_json())

    @classmethod
    def load_json(cls, path: Path) -> "SolveResult":
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Ergebnis-Datei nicht gefunden: {path}")
        with open(path, "r", encoding="utf-8") as f:
            return cls.model_validate_json(f.read())

    def print_rich(self, snapshot: Optional[SchoolSnapshot] = None) -> None:
        """Zusammenfassung, offene Einheiten und (mit Snapshot) Lehrer-Auslastung."""
        from rich.console import Console
        from rich.panel import Panel
        from rich.table import Table
        from rich import box

        console = Console()
        color = {
            SolveStatus.SATISFIED: "green",
            SolveStatus.PARTIALLY_SATISFIED: "yellow",
            SolveStatus.INFEASIBLE: "red",
        }[self.status]
        s = self.stats
        lines = [
            f"[bold {color}]{self.status.value}[/bold {color}]",
            f"Einheiten: {s.units_assigned}/{s.units_total} eingeplant "
            f"({s.units_unmet} offen)",
            f"Backtracks: {s.backtracks} | Zeit: {s.elapsed_seconds:.2f}s",
        ]
        if s.budget_exhausted:
            lines.append("[yellow]Suchbudget erschöpft – beste Teillösung[/yellow]")
        if s.cancelled:
            lines.append("[yellow]Abgebrochen – beste Teillösung[/yellow]")
        if s.timed_out:
            lines.append("[yellow]Zeitlimit erreicht – beste Teillösung[/yellow]")
        for issue in self.structural_issues:
            lines.append(f"[red]• {issue.message}[/red]")
        for w in self.warnings:
            lines.append(f"[dim]• {w}[/dim]")
        console.print(Panel("\n".join(lines), title="Solve-Ergebnis", border_style=color))

        if self.unmet:
            table = Table(title="Offene Einheiten", box=box.SIMPLE_HEAVY)
            table.add_column("Kurs", justify="right")
            table.add_column("Fach")
            table.add_column("#", justify="right")
            table.add_column("Grund")
            for u in self.unmet:
                subject = snapshot.subject(u.subject_id) if snapshot else None
                table.add_row(
                    str(u.course_id),
                    subject.name if subject else str(u.subject_id),
                    str(u.unit_index),
                    u.reason.value,
                )
            console.print(table)

        if snapshot is not None and snapshot.teachers:
            load = self.assignment_set.teacher_load()
            table = Table(title="Lehrer-Auslastung", box=box.SIMPLE_HEAVY)
            table.add_column("ID", justify="right")
            table.add_column("Name")
            table.add_column("Vertrag")
            table.add_column("Ist", justify="right")
            table.add_column("Max", justify="right")
            for t in snapshot.teachers:
                actual = load.get(t.id, 0)
                style = "green" if actual == t.weekly_hours else ""
                table.add_row(
                    str(t.id), t.name, t.contract_type.value,
                    f"[{style}]{actual}[/{style}]" if style else str(actual),
                    str(t.weekly_hours),
                )
            console.print(table)


# ─── Reporter ─────────────────────────────────────────────────────────────────

class ConflictReporter:
    """Wandelt ein SearchOutcome in ein SolveResult mit Begründungen um.

    Verwendung:
        reporter = ConflictReporter(index)
        result = reporter.report(outcome, structural_issues, warnings)
    """

    def __init__(self, index: ConstraintIndex) -> None:
        self.index = index
        self._validator = SolutionValidator()

    def report(
        self,
        outcome: SearchOutcome,
        structural_issues: Optional[list[StructuralIssue]] = None,
        warnings: Optional[list[str]] = None,
    ) -> SolveResult:
        issues = list(structural_issues or [])
        excluded: dict[tuple[int, int], StructuralIssue] = {}
        for issue in issues:
            for key in issue.requirements:
                excluded.setdefault(key, issue)

        assignment_set = AssignmentSet(
            assignments=tuple(outcome.assignments),
            snapshot_fingerprint=self.index.fingerprint,
        )
        assigned_count: dict[tuple[int, int], int] = {}
        for a in assignment_set:
            key = (a.course_id, a.subject_id)
            assigned_count[key] = assigned_count.get(key, 0) + 1

        unmet: list[UnmetSessionUnit] = []
        units_total = 0
        for req in self.index.requirements:
            units_total += req.sessions
            got = assigned_count.get(req.key, 0)
            if got >= req.sessions:
                continue
            if req.key in excluded:
                issue = excluded[req.key]
                reason, detail = _ISSUE_REASON[issue.kind], issue.message
            else:
                reason, detail = self._reason_for(req, outcome)
            for unit in range(got + 1, req.sessions + 1):
                unmet.append(UnmetSessionUnit(
                    course_id=req.course_id,
                    subject_id=req.subject_id,
                    unit_index=unit,
                    reason=reason,
                    detail=detail,
                ))

        if not unmet:
            status = SolveStatus.SATISFIED
        elif len(assignment_set) == 0 and issues:
            status = SolveStatus.INFEASIBLE
        else:
            status = SolveStatus.PARTIALLY_SATISFIED

        validation = self._validator.validate(assignment_set, self.index.snapshot)
        diagnostics = [f"{v.constraint}: {v.description}" for v in validation.errors]
        if diagnostics:
            logger.error(f"Post-Solve Validierung: {len(diagnostics)} Verletzungen")

        stats = SolveStats(
            units_total=units_total,
            units_assigned=len(assignment_set),
            backtracks=outcome.backtracks,
            elapsed_seconds=outcome.elapsed_seconds,
            budget_exhausted=outcome.budget_exhausted,
            cancelled=outcome.cancelled,
            timed_out=outcome.timed_out,
            index_fingerprint=self.index.fingerprint,
        )

        logger.info(
            f"Status: {status.value} | eingeplant {stats.units_assigned}/{units_total} | "
            f"offen {len(unmet)}"
        )
        return SolveResult(
            status=status,
            assignment_set=assignment_set,
            unmet=unmet,
            structural_issues=issues,
            warnings=list(warnings or []),
            diagnostics=diagnostics,
            stats=stats,
        )

    def _reason_for(self, req: Requirement, outcome: SearchOutcome) -> tuple[UnmetReason, str]:
        """Begründung gegen die Belegung der gelieferten (Teil-)Lösung.

        Maßgeblich ist candidates_for(req, Belegung): leer heißt, dass für die
        Einheit kein zulässiger Platz mehr existiert.
        """
        qualified = self.index.qualified_teachers(req.subject_id, req.course_id)
        if not qualified:
            return (
                UnmetReason.NO_QUALIFIED_TEACHER,
                "Keine dem Kurs zugeordnete Lehrkraft mit Qualifikation und Verfügbarkeit",
            )

        occ = outcome.occupancy
        live = self.index.candidates_for(req, occ)
        if not live and all(occ.load(t) >= self.index.capacity(t) for t in qualified):
            return (
                UnmetReason.TEACHER_CAPACITY_EXHAUSTED,
                f"Alle qualifizierten Lehrkräfte ausgelastet ({', '.join(map(str, qualified))})",
            )
        return (
            UnmetReason.NO_AVAILABLE_SLOT,
            f"Kein zulässiger Slot bei {len(qualified)} qualifizierten Lehrkräften "
            f"(belegt, Tagesgrenze oder drei Blöcke in Folge)",
        )
