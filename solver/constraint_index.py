"""Constraint-Index: zulässige (Lehrkraft, Slot)-Kandidaten pro Bedarf.

Aufbau einmal pro Solve aus dem eingefrorenen Snapshot:
  - Kandidaten[Bedarf] = alle (Lehrkraft, Slot) mit
      Lehrkraft qualifiziert für das Fach und dem Kurs zugeordnet,
      Slot ∈ available_blocks ∩ Wochenraster
    sortiert nach (Tageszeit-Vorgabe, Slot, Lehrkraft) bzw. innerhalb der
    Tageszeit-Gruppen per Seed gemischt
  - Live-Filter gegen eine Occupancy (Kurs-/Lehrer-/Fach-Bitmaps + Wochenlast):
      Kurs und Lehrkraft frei, Lehrkraft unter weekly_hours,
      Fach unter max_daily_blocks am Tag, keine drei Fach-Blöcke in Folge

Der Index selbst wird von der Suche nie verändert; veränderlich ist nur die
Occupancy, die genau einer Suche gehört.
"""

import logging
import random
import threading
from collections import defaultdict
from typing import NamedTuple, Optional

from models.assignment import Requirement
from models.snapshot import SchoolSnapshot
from models.timeslot import Slot

logger = logging.getLogger(__name__)


class Candidate(NamedTuple):
    """Ein möglicher Platz für eine Sitzung."""

    teacher_id: int
    slot: Slot


class _SlotRule(NamedTuple):
    day_mask: int
    runs: tuple[int, ...]    # Nachbar-Paare, die mit dem Slot drei in Folge ergäben


# ─── Belegung ─────────────────────────────────────────────────────────────────

class Occupancy:
    """Belegungszustand einer laufenden Suche.

    Pro Kurs, pro Lehrkraft und pro (Kurs, Fach) ein int als Bitmap (ein Bit
    pro Rasterslot), dazu die bisher zugewiesenen Blöcke je Lehrkraft.
    place/release sind exakte Umkehrungen voneinander.
    """

    __slots__ = ("_course_mask", "_teacher_mask", "_teacher_load", "_subject_mask")

    def __init__(self) -> None:
        self._course_mask: dict[int, int] = defaultdict(int)
        self._teacher_mask: dict[int, int] = defaultdict(int)
        self._teacher_load: dict[int, int] = defaultdict(int)
        self._subject_mask: dict[tuple[int, int], int] = defaultdict(int)

    def is_free(self, course_id: int, teacher_id: int, bit: int) -> bool:
        return not (self._course_mask[course_id] & bit or self._teacher_mask[teacher_id] & bit)

    def course_busy(self, course_id: int, bit: int) -> bool:
        return bool(self._course_mask[course_id] & bit)

    def teacher_busy(self, teacher_id: int, bit: int) -> bool:
        return bool(self._teacher_mask[teacher_id] & bit)

    def load(self, teacher_id: int) -> int:
        return self._teacher_load[teacher_id]

    def subject_mask(self, course_id: int, subject_id: int) -> int:
        """Slots, in denen der Kurs das Fach bereits hat."""
        return self._subject_mask[(course_id, subject_id)]

    def place(
        self, course_id: int, teacher_id: int, bit: int, subject_id: Optional[int] = None
    ) -> None:
        if not self.is_free(course_id, teacher_id, bit):
            raise RuntimeError(
                f"Slot-Bit {bit:#x} für Kurs {course_id}/Lehrkraft {teacher_id} bereits belegt"
            )
        self._course_mask[course_id] |= bit
        self._teacher_mask[teacher_id] |= bit
        self._teacher_load[teacher_id] += 1
        if subject_id is not None:
            self._subject_mask[(course_id, subject_id)] |= bit

    def release(
        self, course_id: int, teacher_id: int, bit: int, subject_id: Optional[int] = None
    ) -> None:
        self._course_mask[course_id] &= ~bit
        self._teacher_mask[teacher_id] &= ~bit
        self._teacher_load[teacher_id] -= 1
        if subject_id is not None:
            self._subject_mask[(course_id, subject_id)] &= ~bit


# ─── Index ────────────────────────────────────────────────────────────────────

class ConstraintIndex:
    """Vorberechnete Kandidaten für alle Bedarfe eines Snapshots.

    Verwendung:
        index = ConstraintIndex(snapshot)
        occ = index.new_occupancy()
        index.candidates_for(requirement, occ)
    """

    def __init__(self, snapshot: SchoolSnapshot, seed: Optional[int] = None) -> None:
        self.snapshot = snapshot
        self.seed = seed
        self.fingerprint = snapshot.fingerprint()
        self.grid = snapshot.time_grid
        self.requirements: list[Requirement] = snapshot.requirements()

        self._capacity: dict[int, int] = {t.id: t.weekly_hours for t in snapshot.teachers}
        self._daily_cap: dict[int, Optional[int]] = {
            s.id: s.max_daily_blocks for s in snapshot.subjects
        }
        self._qualified: dict[tuple[int, int], list[int]] = {}
        self._candidates: dict[tuple[int, int], tuple[Candidate, ...]] = {}
        self._bits: dict[tuple[int, int], tuple[int, ...]] = {}
        self._rules: dict[tuple[int, int], tuple[_SlotRule, ...]] = {}

        self._build()

    def _build(self) -> None:
        """Erstellt Qualifikations-Lookup und statische Kandidatenlisten."""
        grid = self.grid

        teacher_slots: dict[int, list[Slot]] = {
            t.id: [b for b in t.available_blocks if grid.contains(b.day, b.period)]
            for t in self.snapshot.teachers
        }
        slot_rules: dict[Slot, _SlotRule] = {
            slot: self._slot_rule(slot) for slots in teacher_slots.values() for slot in slots
        }

        for req in self.requirements:
            # (Kurs, Fach) -> zugeordnete Lehrkräfte mit Qualifikation und Blöcken im Raster
            qualified = [
                t.id for t in self.snapshot.qualified_teachers(req.subject_id, req.course_id)
            ]
            self._qualified[req.key] = qualified

            subject = self.snapshot.subject(req.subject_id)
            cands = [
                Candidate(teacher_id, slot)
                for teacher_id in qualified
                for slot in teacher_slots[teacher_id]
            ]
            cands.sort(key=lambda c: (c.slot, c.teacher_id))
            if self.seed is not None:
                rng = random.Random(f"{self.seed}:{req.course_id}:{req.subject_id}")
                rng.shuffle(cands)
            # Stabil: bevorzugte Tageszeit zuerst, sonst Reihenfolge wie oben
            cands.sort(key=lambda c: not subject.prefers(grid.is_morning(c.slot.period)))

            self._candidates[req.key] = tuple(cands)
            self._bits[req.key] = tuple(self.slot_bit(c.slot) for c in cands)
            self._rules[req.key] = tuple(slot_rules[c.slot] for c in cands)

        logger.debug(
            f"Constraint-Index: {len(self.requirements)} Bedarfe, "
            f"{sum(len(c) for c in self._candidates.values())} Kandidaten"
        )

    def _slot_rule(self, slot: Slot) -> _SlotRule:
        """Tagesmaske und Folge-Paare (p-2,p-1), (p-1,p+1), (p+1,p+2) eines Slots."""
        grid = self.grid
        runs = []
        for a, b in ((-2, -1), (-1, 1), (1, 2)):
            pa, pb = slot.period + a, slot.period + b
            if grid.contains(slot.day, pa) and grid.contains(slot.day, pb):
                runs.append(self.slot_bit(Slot(slot.day, pa)) | self.slot_bit(Slot(slot.day, pb)))
        return _SlotRule(grid.day_mask(slot.day), tuple(runs))

    # ─── Lookups ──────────────────────────────────────────────────────────────

    def slot_bit(self, slot: Slot) -> int:
        """Bit eines Slots in den Occupancy-Bitmaps."""
        return 1 << self.grid.slot_index(slot.day, slot.period)

    def new_occupancy(self) -> Occupancy:
        """Leere Belegung für eine neue Suche."""
        return Occupancy()

    def qualified_teachers(self, subject_id: int, course_id: Optional[int] = None) -> list[int]:
        """IDs der qualifizierten Lehrkräfte mit Verfügbarkeit im Raster.

        Mit course_id nur die dem Kurs zugeordneten.
        """
        if course_id is not None and (course_id, subject_id) in self._qualified:
            return list(self._qualified[(course_id, subject_id)])
        return [t.id for t in self.snapshot.qualified_teachers(subject_id, course_id)]

    def capacity(self, teacher_id: int) -> int:
        """weekly_hours der Lehrkraft."""
        return self._capacity[teacher_id]

    def static_candidates(self, key: tuple[int, int]) -> tuple[Candidate, ...]:
        """Alle Kandidaten eines Bedarfs ohne Berücksichtigung der Belegung."""
        return self._candidates.get(key, ())

    def candidate_bits(self, key: tuple[int, int]) -> tuple[int, ...]:
        return self._bits.get(key, ())

    def reachable_units(self, key: tuple[int, int]) -> int:
        """Obergrenze planbarer Einheiten: je Tag min(max_daily_blocks, Kandidaten-Slots)."""
        per_day: dict[int, set[int]] = defaultdict(set)
        for c in self._candidates.get(key, ()):
            per_day[c.slot.day].add(c.slot.period)
        cap = self._daily_cap.get(key[1])
        return sum(len(p) if cap is None else min(cap, len(p)) for p in per_day.values())

    # ─── Live-Filter ──────────────────────────────────────────────────────────

    def is_live(self, key: tuple[int, int], pos: int, occupancy: Occupancy) -> bool:
        """Kandidat an Position pos für eine weitere Sitzung des Bedarfs zulässig?"""
        course_id, subject_id = key
        teacher_id = self._candidates[key][pos].teacher_id
        bit = self._bits[key][pos]
        if occupancy.load(teacher_id) >= self._capacity[teacher_id]:
            return False
        if not occupancy.is_free(course_id, teacher_id, bit):
            return False
        taken = occupancy.subject_mask(course_id, subject_id)
        if not taken:
            return True
        rule = self._rules[key][pos]
        cap = self._daily_cap.get(subject_id)
        if cap is not None and bin(taken & rule.day_mask).count("1") >= cap:
            return False
        return not any(taken & run == run for run in rule.runs)

    def live_positions(
        self, key: tuple[int, int], occupancy: Occupancy, after: int = -1
    ) -> list[int]:
        """Positionen der aktuell zulässigen Kandidaten (nur Positionen > after)."""
        return [
            pos for pos in range(after + 1, len(self._candidates.get(key, ())))
            if self.is_live(key, pos, occupancy)
        ]

    def candidates_for(self, requirement: Requirement, occupancy: Occupancy) -> list[Candidate]:
        """Geordnete zulässige (Lehrkraft, Slot)-Paare für eine weitere Sitzung.

        Leere Liste = diese Sitzung ist bei der aktuellen Belegung nicht planbar.
        """
        cands = self._candidates.get(requirement.key, ())
        return [cands[pos] for pos in self.live_positions(requirement.key, occupancy)]


# ─── Cache ────────────────────────────────────────────────────────────────────

class IndexCache:
    """Vom Aufrufer gehaltener Cache für den zuletzt gebauten Index.

    Schlüssel ist (Snapshot-Fingerprint, Seed): jede Datenänderung ergibt einen
    neuen Fingerprint und damit einen Neuaufbau.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._key: Optional[tuple[str, Optional[int]]] = None
        self._index: Optional[ConstraintIndex] = None
        self.builds = 0

    def get(self, snapshot: SchoolSnapshot, seed: Optional[int] = None) -> ConstraintIndex:
        key = (snapshot.fingerprint(), seed)
        with self._lock:
            if self._index is None or self._key != key:
                self._index = ConstraintIndex(snapshot, seed=seed)
                self._key = key
                self.builds += 1
            return self._index

    def invalidate(self) -> None:
        with self._lock:
            self._key = None
            self._index = None
