"""Tests für die Wochenplan-Engine (Solve, Konflikt-Report, Budget, Parallelität)."""

import threading

import pytest
from pydantic import ValidationError

from config.schema import SchedulerConfig, SolverConfig, TimeGridConfig
from data.fake_data import FakeDataGenerator
from models.assignment import Requirement
from models.course import Course
from models.snapshot import SchoolSnapshot, SnapshotValidationError
from models.subject import Subject
from models.teacher import ContractType, Teacher
from models.timeslot import Slot
from solver.constraint_index import ConstraintIndex, IndexCache
from solver.engine import TimetableEngine
from solver.reporting import SolveStatus, UnmetReason


# ─── Hilfsfunktionen ──────────────────────────────────────────────────────────

def make_subject(id: int = 1, blocks: int = 2, level: str = "basico", name: str = "") -> Subject:
    return Subject(id=id, name=name or f"Fach {id}", level=level, weekly_blocks=blocks)


def make_course(id: int = 1, level: str = "basico") -> Course:
    return Course(id=id, name=f"Kurs {id}", level=level, student_count=30)


def make_teacher(
    id: int = 1,
    subject_ids=(1,),
    hours: int = 5,
    blocks=("MON-1", "WED-1"),
    contract: ContractType = ContractType.FULL,
) -> Teacher:
    return Teacher(
        id=id,
        name=f"Lehrkraft {id}",
        contract_type=contract,
        weekly_hours=hours,
        subject_ids=list(subject_ids),
        available_blocks=list(blocks),
    )


def make_engine(**solver_kwargs) -> TimetableEngine:
    return TimetableEngine(SchedulerConfig(solver=SolverConfig(**solver_kwargs)))


def scenario_a():
    return [make_course()], [make_subject(blocks=2)], [make_teacher(hours=5)]


def scenario_b():
    return (
        [make_course()],
        [make_subject(blocks=3)],
        [make_teacher(hours=2, blocks=("MON-1", "TUE-1", "WED-1", "THU-1"))],
    )


def scenario_c():
    """Zwei Kurse, ein Fach, eine Lehrkraft mit nur 3 Slots für 4 Blöcke."""
    return (
        [make_course(1), make_course(2)],
        [make_subject(blocks=2)],
        [make_teacher(hours=10, blocks=("MON-1", "TUE-1", "WED-1"))],
    )


def assert_hard_constraints(result, snapshot: SchoolSnapshot) -> None:
    """Konfliktfreiheit, Verfügbarkeit, Wochenstunden, Qualifikation."""
    course_slots: set[tuple] = set()
    teacher_slots: set[tuple] = set()
    for a in result.assignment_set:
        assert (a.course_id, a.slot) not in course_slots, f"Kurs doppelt belegt: {a}"
        assert (a.teacher_id, a.slot) not in teacher_slots, f"Lehrkraft doppelt belegt: {a}"
        course_slots.add((a.course_id, a.slot))
        teacher_slots.add((a.teacher_id, a.slot))

        teacher = snapshot.teacher(a.teacher_id)
        assert teacher.is_available(a.slot), f"Außerhalb der Verfügbarkeit: {a}"
        assert teacher.is_qualified_for(a.subject_id), f"Nicht qualifiziert: {a}"

    load = result.assignment_set.teacher_load()
    for teacher in snapshot.teachers:
        assert load.get(teacher.id, 0) <= teacher.weekly_hours


def assert_unmet_have_no_candidates(result, snapshot: SchoolSnapshot) -> None:
    """Jede offene Einheit hat gegen die gelieferte Belegung keinen Kandidaten mehr."""
    index = ConstraintIndex(snapshot)
    occ = index.new_occupancy()
    for a in result.assignment_set:
        occ.place(a.course_id, a.teacher_id, index.slot_bit(a.slot), a.subject_id)
    excluded = {key for issue in result.structural_issues for key in issue.requirements}
    for u in result.unmet:
        if (u.course_id, u.subject_id) in excluded:
            continue
        req = Requirement(course_id=u.course_id, subject_id=u.subject_id, sessions=1)
        assert index.candidates_for(req, occ) == [], f"Offene Einheit noch planbar: {u}"


# ─── Szenarien ────────────────────────────────────────────────────────────────

class TestScenarios:
    def test_scenario_a_satisfied(self):
        """Ein Kurs, 2 Blöcke, Lehrkraft mit genau 2 Slots → Satisfied."""
        result = make_engine().solve(*scenario_a())
        assert result.status == SolveStatus.SATISFIED
        assert len(result.assignment_set) == 2
        assert {a.slot for a in result.assignment_set} == {Slot(0, 1), Slot(2, 1)}
        assert all(a.teacher_id == 1 for a in result.assignment_set)
        assert result.unmet == []

    def test_scenario_b_infeasible(self):
        """Einzige Lehrkraft mit 2 Wochenstunden für 3 Blöcke → Infeasible."""
        result = make_engine().solve(*scenario_b())
        assert result.status == SolveStatus.INFEASIBLE
        assert len(result.assignment_set) == 0
        assert len(result.structural_issues) == 1
        issue = result.structural_issues[0]
        assert issue.kind == "sole_teacher_capacity"
        assert issue.teacher_id == 1
        assert issue.required_blocks == 3
        assert issue.capacity == 2

    def test_scenario_b_reports_all_units(self):
        """Auch bei Infeasible werden alle Einheiten als offen gemeldet."""
        result = make_engine().solve(*scenario_b())
        assert [u.unit_index for u in result.unmet] == [1, 2, 3]
        assert all(u.reason == UnmetReason.TEACHER_CAPACITY_EXHAUSTED for u in result.unmet)

    def test_scenario_b_needs_no_search(self):
        result = make_engine().solve(*scenario_b())
        assert result.stats.backtracks == 0

    def test_scenario_c_partially_satisfied(self):
        """4 Blöcke auf 3 Slots derselben Lehrkraft → eine offene Einheit."""
        result = make_engine().solve(*scenario_c())
        assert result.status == SolveStatus.PARTIALLY_SATISFIED
        assert len(result.assignment_set) == 3
        assert len(result.unmet) == 1
        assert result.unmet[0].reason == UnmetReason.NO_AVAILABLE_SLOT
        assert result.unmet[0].reason.value == "no available slot given current occupancy"

    def test_scenario_c_search_exhausted_without_budget(self):
        result = make_engine().solve(*scenario_c())
        assert result.stats.backtracks > 0
        assert not result.stats.budget_exhausted

    @pytest.mark.parametrize("max_backtracks", [1, 100_000])
    def test_scenario_c_with_independent_subject(self, max_backtracks):
        """Szenario C plus Fach 2 mit eigener Lehrkraft: Fach 2 wird voll eingeplant."""
        courses, subjects, teachers = scenario_c()
        subjects.append(make_subject(2, blocks=1))
        teachers.append(make_teacher(
            2, subject_ids=(2,), hours=10,
            blocks=("MON-2", "TUE-2", "WED-2", "THU-2", "FRI-2"),
        ))
        snapshot = SchoolSnapshot.capture(courses, subjects, teachers)
        result = make_engine(max_backtracks=max_backtracks).solve_snapshot(snapshot)

        assert result.status == SolveStatus.PARTIALLY_SATISFIED
        assert result.assignment_set.count_for(1, 2) == 1
        assert result.assignment_set.count_for(2, 2) == 1
        assert len(result.assignment_set) == 5
        assert [(u.course_id, u.subject_id) for u in result.unmet] == [(2, 1)]
        assert result.unmet[0].reason == UnmetReason.NO_AVAILABLE_SLOT
        assert_unmet_have_no_candidates(result, snapshot)


# ─── Eigenschaften ────────────────────────────────────────────────────────────

class TestProperties:
    @pytest.fixture(scope="class")
    def generated(self):
        config = SchedulerConfig(solver=SolverConfig(max_backtracks=2_000))
        snapshot = FakeDataGenerator(config, seed=7).generate()
        result = TimetableEngine(config).solve_snapshot(snapshot)
        return snapshot, result

    def test_hard_constraints_generated(self, generated):
        snapshot, result = generated
        assert_hard_constraints(result, snapshot)

    def test_completeness_generated(self, generated):
        """Eingeplant + offen = Gesamtbedarf."""
        snapshot, result = generated
        assert len(result.assignment_set) + len(result.unmet) == snapshot.total_session_units()
        assert result.stats.units_total == snapshot.total_session_units()

    def test_no_diagnostics(self, generated):
        """Die unabhängige Nachprüfung findet keine Verletzungen."""
        _, result = generated
        assert result.diagnostics == []

    def test_never_over_fulfilled(self, generated):
        snapshot, result = generated
        for req in snapshot.requirements():
            assert result.assignment_set.count_for(req.course_id, req.subject_id) <= req.sessions

    def test_unmet_ordered(self, generated):
        _, result = generated
        keys = [(u.course_id, u.subject_id, u.unit_index) for u in result.unmet]
        assert keys == sorted(keys)

    def test_unmet_have_no_candidates_generated(self, generated):
        snapshot, result = generated
        assert_unmet_have_no_candidates(result, snapshot)

    def test_fingerprint_attached(self, generated):
        snapshot, result = generated
        assert result.assignment_set.snapshot_fingerprint == snapshot.fingerprint()

    @pytest.mark.parametrize("scenario", [scenario_a, scenario_b, scenario_c])
    def test_hard_constraints_scenarios(self, scenario):
        courses, subjects, teachers = scenario()
        snapshot = SchoolSnapshot.capture(courses, subjects, teachers)
        result = make_engine().solve_snapshot(snapshot)
        assert_hard_constraints(result, snapshot)
        assert len(result.assignment_set) + len(result.unmet) == snapshot.total_session_units()

    def test_idempotent(self):
        """Gleiche Eingabe → identisches Ergebnis."""
        first = make_engine().solve(*scenario_c())
        second = make_engine().solve(*scenario_c())
        assert first.assignment_set.assignments == second.assignment_set.assignments
        assert first.unmet == second.unmet

    def test_idempotent_with_seed(self):
        first = make_engine(seed=11).solve(*scenario_c())
        second = make_engine(seed=11).solve(*scenario_c())
        assert first.assignment_set.assignments == second.assignment_set.assignments

    def test_input_order_irrelevant(self):
        courses, subjects, teachers = scenario_c()
        first = make_engine().solve(courses, subjects, teachers)
        second = make_engine().solve(list(reversed(courses)), subjects, teachers)
        assert first.assignment_set.assignments == second.assignment_set.assignments


# ─── Begründungen ─────────────────────────────────────────────────────────────

class TestUnmetReasons:
    def test_no_qualified_teacher(self):
        """Fach ohne Lehrkraft → offen mit 'no qualified teacher', Rest wird geplant."""
        subjects = [make_subject(1, blocks=2), make_subject(2, blocks=1)]
        result = make_engine().solve([make_course()], subjects, [make_teacher(subject_ids=(1,))])
        assert result.status == SolveStatus.PARTIALLY_SATISFIED
        assert len(result.assignment_set) == 2
        assert len(result.unmet) == 1
        assert result.unmet[0].subject_id == 2
        assert result.unmet[0].reason == UnmetReason.NO_QUALIFIED_TEACHER

    def test_only_unqualified_is_infeasible(self):
        result = make_engine().solve([make_course()], [make_subject(1)], [make_teacher(subject_ids=())])
        assert result.status == SolveStatus.INFEASIBLE
        assert result.structural_issues[0].kind == "no_qualified_teacher"

    def test_teacher_outside_grid_counts_as_unqualified(self):
        """Verfügbarkeit nur außerhalb des Rasters → keine planbare Lehrkraft."""
        result = make_engine().solve(
            [make_course()], [make_subject(1, blocks=1)], [make_teacher(blocks=("SAT-1",))]
        )
        assert result.status == SolveStatus.INFEASIBLE
        assert result.unmet[0].reason == UnmetReason.NO_QUALIFIED_TEACHER
        assert any("außerhalb" in w for w in result.warnings)

    def test_capacity_exhausted_after_search(self):
        """Zwei Lehrkräfte mit je 1 Wochenstunde für 3 Blöcke."""
        blocks = ("MON-1", "MON-2", "MON-3", "MON-4")
        teachers = [make_teacher(1, hours=1, blocks=blocks), make_teacher(2, hours=1, blocks=blocks)]
        result = make_engine().solve([make_course()], [make_subject(1, blocks=3)], teachers)
        assert result.status == SolveStatus.PARTIALLY_SATISFIED
        assert len(result.assignment_set) == 2
        assert len(result.unmet) == 1
        assert result.unmet[0].reason == UnmetReason.TEACHER_CAPACITY_EXHAUSTED

    def test_teacher_bound_to_other_course(self):
        """Einzige Lehrkraft ist nur Kurs 1 zugeordnet → Kurs 2 ohne Lehrkraft."""
        teacher = Teacher(id=1, name="Lehrkraft 1", weekly_hours=10, subject_ids=[1], course_ids=[1],
                          available_blocks=["MON-1", "TUE-1", "WED-1", "THU-1"])
        result = make_engine().solve([make_course(1), make_course(2)], [make_subject(1, blocks=2)], [teacher])
        assert result.assignment_set.count_for(1, 1) == 2
        assert result.assignment_set.count_for(2, 1) == 0
        assert {u.reason for u in result.unmet} == {UnmetReason.NO_QUALIFIED_TEACHER}
        assert [u.course_id for u in result.unmet] == [2, 2]

    def test_daily_limit_leaves_units_open(self):
        """Höchstens 1 Block/Tag, Lehrkraft nur montags → 1 von 2 Blöcken."""
        subject = Subject(id=1, name="Fach 1", level="basico", weekly_blocks=2, max_daily_blocks=1)
        result = make_engine().solve([make_course()], [subject], [make_teacher(blocks=("MON-1", "MON-3"))])
        assert result.status == SolveStatus.PARTIALLY_SATISFIED
        assert len(result.assignment_set) == 1
        assert result.unmet[0].reason == UnmetReason.NO_AVAILABLE_SLOT
        assert result.diagnostics == []

    def test_more_blocks_than_slots(self):
        """Mehr Blöcke als verschiedene Slots → Rest ohne Suche als offen gemeldet."""
        result = make_engine().solve(
            [make_course()], [make_subject(1, blocks=4)], [make_teacher(hours=10)]
        )
        assert result.status == SolveStatus.PARTIALLY_SATISFIED
        assert len(result.assignment_set) == 2
        assert [u.unit_index for u in result.unmet] == [3, 4]
        assert all(u.reason == UnmetReason.NO_AVAILABLE_SLOT for u in result.unmet)


# ─── Budget und Abbruch ───────────────────────────────────────────────────────

class TestBudgetAndCancel:
    def test_budget_exhaustion_returns_best_partial(self):
        result = make_engine(max_backtracks=1).solve(*scenario_c())
        assert result.status == SolveStatus.PARTIALLY_SATISFIED
        assert result.stats.budget_exhausted
        assert result.stats.backtracks == 1
        assert len(result.assignment_set) == 3
        assert len(result.assignment_set) + len(result.unmet) == 4

    def test_cancel_signal(self):
        cancel = threading.Event()
        cancel.set()
        courses, subjects, teachers = scenario_c()
        result = make_engine().solve(courses, subjects, teachers, cancel_event=cancel)
        assert result.stats.cancelled
        assert result.status == SolveStatus.PARTIALLY_SATISFIED
        assert len(result.assignment_set) == 3

    def test_cancel_not_needed_when_no_backtrack(self):
        cancel = threading.Event()
        cancel.set()
        result = make_engine().solve(*scenario_a(), cancel_event=cancel)
        assert result.status == SolveStatus.SATISFIED
        assert not result.stats.cancelled


# ─── Eingabefehler ────────────────────────────────────────────────────────────

class TestValidation:
    def test_unknown_subject_reference_raises(self):
        with pytest.raises(SnapshotValidationError) as exc:
            make_engine().solve([make_course()], [make_subject(1)], [make_teacher(subject_ids=(1, 99))])
        assert any("99" in p for p in exc.value.problems)

    def test_duplicate_ids_raise(self):
        with pytest.raises(SnapshotValidationError):
            make_engine().solve([make_course(1), make_course(1)], [make_subject(1)], [make_teacher()])

    def test_zero_weekly_blocks_rejected(self):
        with pytest.raises(ValidationError):
            make_subject(blocks=0)

    def test_negative_weekly_blocks_rejected(self):
        with pytest.raises(ValidationError):
            make_subject(blocks=-1)

    def test_zero_weekly_hours_rejected(self):
        with pytest.raises(ValidationError):
            make_teacher(hours=0)

    def test_snapshot_validation_error_is_value_error(self):
        assert issubclass(SnapshotValidationError, ValueError)


# ─── Engine: Cache und Parallelität ───────────────────────────────────────────

class TestEngine:
    def test_index_cache_reused(self):
        cache = IndexCache()
        engine = TimetableEngine(cache=cache)
        engine.solve(*scenario_a())
        engine.solve(*scenario_a())
        assert cache.builds == 1

    def test_index_cache_rebuilt_on_change(self):
        cache = IndexCache()
        engine = TimetableEngine(cache=cache)
        courses, subjects, teachers = scenario_a()
        engine.solve(courses, subjects, teachers)
        engine.solve(courses, subjects, [make_teacher(hours=6)])
        assert cache.builds == 2

    def test_custom_time_grid(self):
        """Slots außerhalb eines kleineren Rasters werden nicht verwendet."""
        grid = TimeGridConfig(days_per_week=1, periods_per_day=2, day_names=["Mo"])
        result = make_engine().solve(*scenario_a(), time_grid=grid)
        assert {a.slot for a in result.assignment_set} == {Slot(0, 1)}
        assert len(result.unmet) == 1

    def test_solve_many_keeps_order(self):
        snapshots = [
            SchoolSnapshot.capture(*scenario_a()),
            SchoolSnapshot.capture(*scenario_b()),
            SchoolSnapshot.capture(*scenario_c()),
        ]
        results = make_engine().solve_many(snapshots, num_workers=2)
        assert [r.status for r in results] == [
            SolveStatus.SATISFIED,
            SolveStatus.INFEASIBLE,
            SolveStatus.PARTIALLY_SATISFIED,
        ]

    def test_solve_many_matches_sequential(self):
        snapshots = [SchoolSnapshot.capture(*scenario_c()) for _ in range(4)]
        engine = make_engine()
        parallel = engine.solve_many(snapshots, num_workers=4)
        sequential = [engine.solve_snapshot(s) for s in snapshots]
        for p, s in zip(parallel, sequential):
            assert p.assignment_set.assignments == s.assignment_set.assignments

    def test_solve_per_level(self):
        courses = [make_course(1, "basico"), make_course(2, "media")]
        subjects = [make_subject(1, blocks=2, level="basico"), make_subject(2, blocks=1, level="media")]
        teachers = [
            make_teacher(1, subject_ids=(1,)),
            make_teacher(2, subject_ids=(2,), blocks=("TUE-3",)),
        ]
        snapshot = SchoolSnapshot.capture(courses, subjects, teachers)
        results = make_engine().solve_per_level(snapshot, num_workers=2)
        assert set(results) == {"basico", "media"}
        assert all(r.status == SolveStatus.SATISFIED for r in results.values())
        assert results["media"].assignment_set.assignments[0].slot == Slot(1, 3)

    def test_result_json_roundtrip(self, tmp_path):
        from solver.reporting import SolveResult

        result = make_engine().solve(*scenario_c())
        path = tmp_path / "result.json"
        result.save_json(path)
        loaded = SolveResult.load_json(path)
        assert loaded.status == result.status
        assert loaded.unmet == result.unmet
        assert loaded.assignment_set.assignments == result.assignment_set.assignments
