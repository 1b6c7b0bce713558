"""Backtracking-Suche über Sitzungs-Einheiten (explizite Entscheidungs-Stack).

Ablauf:
  - Jede Einheit eines Bedarfs (1 Block von weekly_blocks) braucht einen
    eigenen (Lehrkraft, Slot)-Platz.
  - Most-constrained-first: als nächstes wird der Bedarf expandiert, dessen
    nächste Einheit die wenigsten Live-Kandidaten hat. Gleichstand → kleinere
    course_id, dann kleinere subject_id.
  - Einheiten desselben Bedarfs sind austauschbar: die k+1-te Einheit darf nur
    Kandidaten hinter dem der k-ten wählen (keine Permutationen).
  - Abbruch eines Zweigs, sobald die nächste Einheit eines offenen Bedarfs
    keinen Live-Kandidaten mehr hat.
  - Ist die vollständige Lösung ausgeschlossen (Suche erschöpft oder
    abgebrochen), wird die tiefste Teillösung gierig vervollständigt: tote
    Bedarfe bleiben offen, alle anderen werden weiter eingeplant, bis kein
    offener Bedarf mehr einen Live-Kandidaten hat.
  - Budget = maximale Anzahl Backtrack-Schritte; Zeitlimit und Cancel-Signal
    werden an derselben Stelle geprüft und wie Budget-Erschöpfung behandelt.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Optional, Protocol

from models.assignment import Assignment, Requirement
from solver.constraint_index import ConstraintIndex, Occupancy

logger = logging.getLogger(__name__)

_PRUNE = object()


class CancelSignal(Protocol):
    """Alles mit is_set(), z.B. threading.Event."""

    def is_set(self) -> bool: ...


@dataclass
class SearchFrame:
    """Eine Entscheidungsebene: welcher Bedarf, welche Kandidaten, wo stehen wir."""

    key: tuple[int, int]
    positions: list[int]
    cursor: int = 0
    placed: Optional[int] = None   # aktuell gesetzte Kandidaten-Position
    prev_last: int = -1            # last_pos des Bedarfs vor dieser Entscheidung


@dataclass
class SearchOutcome:
    """Roh-Ergebnis der Suche (noch ohne Diagnose)."""

    assignments: list[Assignment]
    occupancy: Occupancy
    units_total: int
    complete: bool
    backtracks: int = 0
    budget_exhausted: bool = False
    cancelled: bool = False
    timed_out: bool = False
    elapsed_seconds: float = 0.0
    unreachable: dict[tuple[int, int], int] = field(default_factory=dict)


class AssignmentSearch:
    """Backtracking-Solver auf Basis des Constraint-Index.

    Verwendung:
        search = AssignmentSearch(index, requirements, max_backtracks=10_000)
        outcome = search.run()
    """

    def __init__(
        self,
        index: ConstraintIndex,
        requirements: list[Requirement],
        max_backtracks: int = 100_000,
        time_limit_seconds: float = 0,
        cancel_event: Optional[CancelSignal] = None,
    ) -> None:
        self.index = index
        self.max_backtracks = max_backtracks
        self.time_limit_seconds = time_limit_seconds
        self.cancel_event = cancel_event

        # Einheiten, die schon statisch nicht planbar sind (Kandidaten-Slots, Tagesgrenze)
        self.unreachable: dict[tuple[int, int], int] = {}
        self._keys: list[tuple[int, int]] = []
        self._remaining: dict[tuple[int, int], int] = {}

        for req in sorted(requirements, key=lambda r: r.key):
            reachable = min(req.sessions, index.reachable_units(req.key))
            if reachable < req.sessions:
                self.unreachable[req.key] = req.sessions - reachable
            if reachable > 0:
                self._keys.append(req.key)
                self._remaining[req.key] = reachable

        self._units: dict[tuple[int, int], int] = dict(self._remaining)
        self._occ = index.new_occupancy()
        self._last_pos: dict[tuple[int, int], int] = {k: -1 for k in self._keys}
        self._placed: list[tuple[tuple[int, int], int]] = []

        self._best: list[tuple[tuple[int, int], int]] = []
        self._backtracks = 0
        self._deadline: Optional[float] = None

    # ─── Öffentliche API ──────────────────────────────────────────────────────

    def run(self) -> SearchOutcome:
        """Führt die Suche aus; liefert vollständige oder beste Teil-Zuweisung."""
        t0 = time.monotonic()
        if self.time_limit_seconds:
            self._deadline = t0 + self.time_limit_seconds

        units_total = sum(self._remaining.values())
        complete = False
        stop_reason: Optional[str] = None

        if units_total == 0:
            complete = True
        else:
            complete, stop_reason = self._search(units_total)

        if complete:
            final = self._placed
        else:
            final = self._complete(self._best)
            complete = len(final) == units_total
        elapsed = time.monotonic() - t0
        assignments, occupancy = self._materialize(final)

        if stop_reason:
            logger.warning(
                f"Suche abgebrochen ({stop_reason}) nach {self._backtracks} Backtracks – "
                f"beste Teillösung: {len(assignments)}/{units_total} Einheiten"
            )
        logger.info(
            f"Suche beendet: {'vollständig' if complete else 'unvollständig'} | "
            f"Einheiten: {len(assignments)}/{units_total} | "
            f"Backtracks: {self._backtracks} | Zeit: {elapsed:.2f}s"
        )

        return SearchOutcome(
            assignments=assignments,
            occupancy=occupancy,
            units_total=units_total,
            complete=complete,
            backtracks=self._backtracks,
            budget_exhausted=stop_reason == "budget",
            cancelled=stop_reason == "cancelled",
            timed_out=stop_reason == "timeout",
            elapsed_seconds=elapsed,
            unreachable=dict(self.unreachable),
        )

    # ─── Kern ─────────────────────────────────────────────────────────────────

    def _search(self, units_total: int) -> tuple[bool, Optional[str]]:
        """Explizite Stack-Schleife. Gibt (vollständig, Abbruchgrund) zurück."""
        selection = self._select_next()
        if selection is _PRUNE:
            return False, None
        key, positions = selection
        stack: list[SearchFrame] = [SearchFrame(key=key, positions=positions)]

        while stack:
            frame = stack[-1]

            if frame.placed is not None:
                self._undo(frame)
                self._backtracks += 1
                reason = self._check_budget()
                if reason:
                    return False, reason

            if frame.cursor >= len(frame.positions):
                stack.pop()
                continue

            pos = frame.positions[frame.cursor]
            frame.cursor += 1
            self._do(frame, pos)

            if len(self._placed) > len(self._best):
                self._best = list(self._placed)
            if len(self._placed) == units_total:
                return True, None

            selection = self._select_next()
            if selection is _PRUNE:
                continue
            key, positions = selection
            stack.append(SearchFrame(key=key, positions=positions))

        return False, None

    def _select_next(self):
        """Most-constrained-first über alle offenen Bedarfe (mit Zweig-Abbruch)."""
        best_key = None
        best_positions: list[int] = []
        for key in self._keys:
            remaining = self._remaining[key]
            if remaining == 0:
                continue
            positions = self.index.live_positions(key, self._occ, self._last_pos[key])
            if not positions:
                return _PRUNE
            if best_key is None or len(positions) < len(best_positions):
                best_key, best_positions = key, positions
        if best_key is None:
            return _PRUNE
        return best_key, best_positions

    def _do(self, frame: SearchFrame, pos: int) -> None:
        key = frame.key
        cand = self.index.static_candidates(key)[pos]
        bit = self.index.candidate_bits(key)[pos]
        self._occ.place(key[0], cand.teacher_id, bit, key[1])
        self._remaining[key] -= 1
        frame.prev_last = self._last_pos[key]
        self._last_pos[key] = pos
        frame.placed = pos
        self._placed.append((key, pos))

    def _undo(self, frame: SearchFrame) -> None:
        key = frame.key
        pos = frame.placed
        cand = self.index.static_candidates(key)[pos]
        bit = self.index.candidate_bits(key)[pos]
        self._occ.release(key[0], cand.teacher_id, bit, key[1])
        self._remaining[key] += 1
        self._last_pos[key] = frame.prev_last
        frame.placed = None
        self._placed.pop()

    def _complete(
        self, placed: list[tuple[tuple[int, int], int]]
    ) -> list[tuple[tuple[int, int], int]]:
        """Gierige Vervollständigung einer Teillösung ohne Backtracking.

        Die Symmetrie-Regel (last_pos) gilt hier nicht mehr; ein Bedarf ohne
        Live-Kandidaten bleibt offen und wird nicht mehr betrachtet. Am Ende
        hat kein offener Bedarf einen Live-Kandidaten.
        """
        occ = self.index.new_occupancy()
        remaining = dict(self._units)
        for key, pos in placed:
            cand = self.index.static_candidates(key)[pos]
            occ.place(key[0], cand.teacher_id, self.index.candidate_bits(key)[pos], key[1])
            remaining[key] -= 1

        result = list(placed)
        dead: set[tuple[int, int]] = set()
        while True:
            best_key = None
            best_positions: list[int] = []
            for key in self._keys:
                if remaining[key] == 0 or key in dead:
                    continue
                positions = self.index.live_positions(key, occ)
                if not positions:
                    dead.add(key)   # Belegung wächst nur, der Bedarf bleibt tot
                    continue
                if best_key is None or len(positions) < len(best_positions):
                    best_key, best_positions = key, positions
            if best_key is None:
                break
            pos = best_positions[0]
            cand = self.index.static_candidates(best_key)[pos]
            occ.place(best_key[0], cand.teacher_id, self.index.candidate_bits(best_key)[pos], best_key[1])
            remaining[best_key] -= 1
            result.append((best_key, pos))

        if len(result) > len(placed):
            logger.debug(
                f"Vervollständigung: +{len(result) - len(placed)} Einheiten, "
                f"{len(dead)} Bedarf(e) ohne Kandidaten"
            )
        return result

    def _check_budget(self) -> Optional[str]:
        """Wird bei jedem Backtrack-Schritt geprüft."""
        if self.cancel_event is not None and self.cancel_event.is_set():
            return "cancelled"
        if self._backtracks >= self.max_backtracks:
            return "budget"
        if self._deadline is not None and time.monotonic() > self._deadline:
            return "timeout"
        return None

    def _materialize(
        self, placed: list[tuple[tuple[int, int], int]]
    ) -> tuple[list[Assignment], Occupancy]:
        """Baut Assignments und eine passende Belegung aus (Bedarf, Position)-Paaren."""
        occ = self.index.new_occupancy()
        assignments: list[Assignment] = []
        for key, pos in placed:
            cand = self.index.static_candidates(key)[pos]
            occ.place(key[0], cand.teacher_id, self.index.candidate_bits(key)[pos], key[1])
            assignments.append(Assignment(
                course_id=key[0],
                subject_id=key[1],
                teacher_id=cand.teacher_id,
                slot=cand.slot,
            ))
        return assignments, occ
