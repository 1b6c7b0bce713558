"""TimetableEngine: Einstiegspunkt für Solve und Projektion.

Ablauf eines Solves:
  1. Snapshot der übergebenen Daten ziehen (copy-on-read)
  2. Referenzen prüfen → SnapshotValidationError bei fehlerhaften Daten
  3. Strukturelle Probleme erkennen; betroffene Bedarfe gehen nicht in die Suche
  4. Constraint-Index aus dem Cache holen (Neuaufbau bei geändertem Snapshot)
  5. Backtracking-Suche, danach Konflikt-Report

Jeder Solve besitzt seine eigene Belegung; mehrere Solves können parallel
laufen (solve_many).
"""

import datetime
import logging
import os
from concurrent.futures import ThreadPoolExecutor
from typing import Iterable, Optional, Sequence, Union

from config.schema import SchedulerConfig, TimeGridConfig
from models.assignment import AssignmentSet
from models.course import Course
from models.holiday import Holiday
from models.snapshot import SchoolSnapshot
from models.subject import Subject
from models.teacher import Teacher
from solver.constraint_index import ConstraintIndex, IndexCache
from solver.projection import DateRange, ScheduleProjector, SessionOccurrence
from solver.reporting import ConflictReporter, SolveResult
from solver.search import AssignmentSearch, CancelSignal

logger = logging.getLogger(__name__)


class TimetableEngine:
    """Wochenplan-Engine.

    Verwendung:
        engine = TimetableEngine(config)
        result = engine.solve(courses, subjects, teachers)
        dates = engine.project_schedule(result.assignment_set, snapshot, 3, date_range)
    """

    def __init__(
        self,
        config: Optional[SchedulerConfig] = None,
        cache: Optional[IndexCache] = None,
    ) -> None:
        self.config = config or SchedulerConfig()
        self.cache = cache if cache is not None else IndexCache()

    # ─── Solve ────────────────────────────────────────────────────────────────

    def solve(
        self,
        courses: Iterable[Course],
        subjects: Iterable[Subject],
        teachers: Iterable[Teacher],
        time_grid: Optional[TimeGridConfig] = None,
        cancel_event: Optional[CancelSignal] = None,
    ) -> SolveResult:
        """Berechnet die Wochen-Zuweisung für die übergebenen Daten."""
        snapshot = SchoolSnapshot.capture(
            courses, subjects, teachers, time_grid or self.config.time_grid
        )
        return self.solve_snapshot(snapshot, cancel_event=cancel_event)

    def solve_snapshot(
        self,
        snapshot: SchoolSnapshot,
        cancel_event: Optional[CancelSignal] = None,
        use_cache: bool = True,
    ) -> SolveResult:
        """Solve auf einem bereits gezogenen Snapshot."""
        warnings = snapshot.validate_references()
        for w in warnings:
            logger.warning(w)

        issues = snapshot.structural_issues()
        for issue in issues:
            logger.error(f"Strukturell unlösbar: {issue.message}")
        excluded = {key for issue in issues for key in issue.requirements}

        solver_cfg = self.config.solver
        if use_cache:
            index = self.cache.get(snapshot, seed=solver_cfg.seed)
        else:
            index = ConstraintIndex(snapshot, seed=solver_cfg.seed)

        searchable = [r for r in index.requirements if r.key not in excluded]
        logger.info(
            f"Solve: {len(snapshot.courses)} Kurse, {len(searchable)}/"
            f"{len(index.requirements)} Bedarfe in der Suche, "
            f"{sum(r.sessions for r in searchable)} Einheiten"
        )

        search = AssignmentSearch(
            index,
            searchable,
            max_backtracks=solver_cfg.max_backtracks,
            time_limit_seconds=solver_cfg.time_limit_seconds,
            cancel_event=cancel_event,
        )
        outcome = search.run()
        return ConflictReporter(index).report(outcome, issues, warnings)

    def solve_many(
        self,
        snapshots: Sequence[SchoolSnapshot],
        num_workers: Optional[int] = None,
        cancel_event: Optional[CancelSignal] = None,
    ) -> list[SolveResult]:
        """Unabhängige Solves parallel; Ergebnisse in Eingabereihenfolge.

        num_workers=None nimmt den Wert aus der Konfiguration (0 = automatisch).
        """
        if num_workers is None:
            num_workers = self.config.solver.num_workers
        workers = num_workers or min(len(snapshots), os.cpu_count() or 4) or 1
        logger.info(f"Parallele Solves: {len(snapshots)} Snapshots, {workers} Worker")

        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = [
                pool.submit(self.solve_snapshot, snap, cancel_event, False)
                for snap in snapshots
            ]
            return [f.result() for f in futures]

    def solve_per_level(
        self,
        snapshot: SchoolSnapshot,
        num_workers: Optional[int] = None,
        cancel_event: Optional[CancelSignal] = None,
    ) -> dict[str, SolveResult]:
        """Ein Solve pro Stufe. Nur sinnvoll, wenn sich die Stufen keine Lehrkräfte teilen."""
        levels = sorted({c.level for c in snapshot.courses})
        parts = [
            snapshot.restrict_to_courses(c.id for c in snapshot.courses if c.level == level)
            for level in levels
        ]
        results = self.solve_many(parts, num_workers=num_workers, cancel_event=cancel_event)
        return dict(zip(levels, results))

    # ─── Projektion ───────────────────────────────────────────────────────────

    def project_schedule(
        self,
        assignment_set: AssignmentSet,
        snapshot: SchoolSnapshot,
        course_id: Optional[int],
        date_range: DateRange,
        holidays: Iterable[Union[Holiday, datetime.date]] = (),
    ) -> list[SessionOccurrence]:
        """Datierte Termine eines Kurses (oder aller Kurse bei course_id=None)."""
        if assignment_set.snapshot_fingerprint and \
                assignment_set.snapshot_fingerprint != snapshot.fingerprint():
            logger.warning("AssignmentSet stammt aus einem anderen Datenstand als der Snapshot")
        return ScheduleProjector(snapshot).project(assignment_set, course_id, date_range, holidays)
