"""Tests für das Konfigurationssystem (Schema, Defaults, YAML-Manager)."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from config.schema import SchedulerConfig, SolverConfig, TimeGridConfig
from config.defaults import (
    LEVELS,
    SUBJECT_CATALOG,
    default_scheduler_config,
    default_solver_config,
    default_time_grid,
)
from config.manager import ConfigManager


# ─── DEFAULT-KONFIGURATION ────────────────────────────────────────────────────

class TestDefaultConfig:
    def test_default_time_grid_valid(self):
        """Default-Raster: 5 Tage × 8 Blöcke = 40 Slots."""
        tg = default_time_grid()
        assert tg.days_per_week == 5
        assert tg.periods_per_day == 8
        assert tg.slot_count == 40

    def test_default_solver_config(self):
        sc = default_solver_config()
        assert sc.max_backtracks == 100_000
        assert sc.time_limit_seconds == 0
        assert sc.seed is None

    def test_default_scheduler_config_valid(self):
        config = default_scheduler_config()
        assert config.full_time_weekly_hours == 38
        assert config == SchedulerConfig()

    def test_catalog_covers_all_levels(self):
        """Fächerkatalog enthält jede Stufe mit mindestens einem Fach."""
        for level in LEVELS:
            assert SUBJECT_CATALOG[level], f"Stufe {level} fehlt im Katalog"

    def test_catalog_fits_default_grid(self):
        """Kein Kurs braucht mehr Blöcke als das Standard-Raster hat."""
        slots = default_time_grid().slot_count
        for level, subjects in SUBJECT_CATALOG.items():
            need = sum(blocks for blocks, _, _ in subjects.values())
            assert need <= slots, f"Stufe {level}: {need} > {slots}"


# ─── WOCHENRASTER ─────────────────────────────────────────────────────────────

class TestTimeGrid:
    def test_contains(self):
        tg = TimeGridConfig(days_per_week=5, periods_per_day=4)
        assert tg.contains(0, 1)
        assert tg.contains(4, 4)
        assert not tg.contains(5, 1)
        assert not tg.contains(0, 5)
        assert not tg.contains(0, 0)

    def test_slot_index_unique_and_dense(self):
        tg = TimeGridConfig(days_per_week=3, periods_per_day=4)
        indices = [
            tg.slot_index(d, p)
            for d in range(tg.days_per_week)
            for p in range(1, tg.periods_per_day + 1)
        ]
        assert indices == list(range(tg.slot_count))

    def test_period_times(self):
        tg = default_time_grid()
        assert tg.period_times(1) == ("08:00", "08:45")
        assert tg.period_times(8) == ("13:15", "14:00")

    def test_too_few_day_names(self):
        with pytest.raises(ValidationError):
            TimeGridConfig(days_per_week=6)

    def test_invalid_day_start(self):
        with pytest.raises(ValidationError):
            TimeGridConfig(day_start="8 Uhr")
        with pytest.raises(ValidationError):
            TimeGridConfig(day_start="25:00")

    def test_bounds(self):
        with pytest.raises(ValidationError):
            TimeGridConfig(periods_per_day=0)
        with pytest.raises(ValidationError):
            TimeGridConfig(days_per_week=8, day_names=["x"] * 8)


class TestSolverConfig:
    def test_max_backtracks_positive(self):
        with pytest.raises(ValidationError):
            SolverConfig(max_backtracks=0)

    def test_negative_time_limit_rejected(self):
        with pytest.raises(ValidationError):
            SolverConfig(time_limit_seconds=-1)

    def test_seed_optional(self):
        assert SolverConfig(seed=42).seed == 42


# ─── CONFIG-MANAGER ───────────────────────────────────────────────────────────

class TestConfigManager:
    def test_save_and_load_roundtrip(self, tmp_path):
        """Gespeicherte Config lässt sich identisch wieder laden."""
        config = SchedulerConfig(
            school_name="Colegio San Martín",
            time_grid=TimeGridConfig(days_per_week=4, periods_per_day=6),
            solver=SolverConfig(max_backtracks=500, seed=3),
        )
        path = tmp_path / "scheduler_config.yaml"
        mgr = ConfigManager()
        mgr.save(config, path)
        assert mgr.load(path) == config

    def test_saved_yaml_has_comments(self, tmp_path):
        path = tmp_path / "cfg.yaml"
        ConfigManager().save(default_scheduler_config(), path)
        text = path.read_text(encoding="utf-8")
        assert text.startswith("# ====")
        assert "Wochenraster" in text
        assert "0 = kein Limit" in text

    def test_load_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            ConfigManager().load(tmp_path / "fehlt.yaml")

    def test_load_invalid_file(self, tmp_path):
        path = tmp_path / "kaputt.yaml"
        path.write_text("solver:\n  max_backtracks: 0\n", encoding="utf-8")
        with pytest.raises(ValueError):
            ConfigManager().load(path)

    def test_load_partial_file_uses_defaults(self, tmp_path):
        path = tmp_path / "teil.yaml"
        path.write_text("school_name: Liceo A-12\n", encoding="utf-8")
        config = ConfigManager().load(path)
        assert config.school_name == "Liceo A-12"
        assert config.time_grid == default_time_grid()

    def test_load_broken_yaml(self, tmp_path):
        path = tmp_path / "syntax.yaml"
        path.write_text("solver: [unclosed\n", encoding="utf-8")
        with pytest.raises(ValueError):
            ConfigManager().load(path)

    def test_solver_overrides(self):
        base = default_scheduler_config()
        changed = ConfigManager.with_solver_overrides(base, max_backtracks=10, seed=None)
        assert changed.solver.max_backtracks == 10
        assert changed.solver.seed is None
        assert base.solver.max_backtracks == 100_000
        assert ConfigManager.with_solver_overrides(base, seed=None) is base

    def test_solver_overrides_validated(self):
        with pytest.raises(ValidationError):
            ConfigManager.with_solver_overrides(default_scheduler_config(), max_backtracks=0)

    def test_load_or_default(self, tmp_path):
        config = ConfigManager().load_or_default(tmp_path / "fehlt.yaml")
        assert config == default_scheduler_config()

    def test_first_run_check(self, tmp_path, monkeypatch):
        monkeypatch.setattr(ConfigManager, "DEFAULT_CONFIG", Path(tmp_path / "x.yaml"))
        assert ConfigManager().first_run_check()
