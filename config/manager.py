"""Konfigurationsmanager: Laden, Speichern und Validieren.

Nutzt ruamel.yaml für YAML-Serialisierung mit Kommentaren.
"""

import json
from datetime import date
from pathlib import Path
from typing import Optional

from rich.console import Console
from pydantic import ValidationError
from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError
from ruamel.yaml.comments import CommentedMap

from config.defaults import default_scheduler_config
from config.schema import SchedulerConfig

console = Console()
yaml = YAML()
yaml.default_flow_style = False
yaml.width = 120


# ─── YAML-KOMMENTAR-AUFBAU ───

_YAML_HEADER = f"""\
# ============================================
# Wochenplan — Konfiguration
# Version: 1.0
# Erstellt: {date.today().isoformat()}
# ============================================
"""

_SECTION_COMMENTS = {
    "time_grid": (
        "Wochenraster",
        "Tage × Blöcke. Verfügbarkeiten der Lehrkräfte außerhalb des Rasters\n"
        "werden ignoriert.",
    ),
    "solver": (
        "Solver",
        "max_backtracks begrenzt die Suche; bei Erschöpfung wird die beste\n"
        "Teillösung geliefert.",
    ),
}


class ConfigManager:
    CONFIG_DIR = Path("config")
    DEFAULT_CONFIG = CONFIG_DIR / "scheduler_config.yaml"

    def first_run_check(self) -> bool:
        """Gibt True zurück wenn noch keine Config existiert (Erstaufruf)."""
        return not self.DEFAULT_CONFIG.exists()

    # ─── Laden ───

    def load(self, path: Optional[Path] = None) -> SchedulerConfig:
        """Lade Config aus YAML. Validiert automatisch via Pydantic."""
        target = path or self.DEFAULT_CONFIG
        if not target.exists():
            raise FileNotFoundError(
                f"Konfigurationsdatei nicht gefunden: {target}\n"
                f"Führen Sie 'wochenplan config init' aus."
            )
        try:
            with open(target, "r", encoding="utf-8") as f:
                raw = yaml.load(f)
        except YAMLError as e:
            raise ValueError(f"Konfigurationsdatei kein gültiges YAML: {target}\n{e}") from e
        try:
            return SchedulerConfig.model_validate(dict(raw or {}))
        except ValidationError as e:
            raise ValueError(
                f"Konfigurationsdatei ungültig: {target}\n"
                f"Pydantic-Fehler: {e}"
            ) from e

    def load_or_default(self, path: Optional[Path] = None) -> SchedulerConfig:
        """Wie load(), fällt aber ohne Datei auf die Default-Konfiguration zurück."""
        target = path or self.DEFAULT_CONFIG
        if not target.exists():
            return default_scheduler_config()
        return self.load(target)

    @staticmethod
    def with_solver_overrides(config: SchedulerConfig, **overrides) -> SchedulerConfig:
        """Kopie der Config mit geänderten Solver-Werten (None-Werte werden ignoriert).

        Ungültige Werte fallen als pydantic.ValidationError auf.
        """
        update = {k: v for k, v in overrides.items() if v is not None}
        if not update:
            return config
        solver = type(config.solver).model_validate({**config.solver.model_dump(), **update})
        return config.model_copy(update={"solver": solver})

    # ─── Speichern ───

    def save(self, config: SchedulerConfig, path: Optional[Path] = None) -> None:
        """Speichere Config als YAML mit deutschen Kommentaren."""
        target = path or self.DEFAULT_CONFIG
        target.parent.mkdir(parents=True, exist_ok=True)

        data = self._build_commented_yaml(config)

        with open(target, "w", encoding="utf-8") as f:
            f.write(_YAML_HEADER + "\n")
            yaml.dump(data, f)

        console.print(f"[green]✓[/green] Konfiguration gespeichert: {target}")

    def _build_commented_yaml(self, config: SchedulerConfig) -> CommentedMap:
        """Baut die YAML-Struktur mit Kommentaren auf."""
        raw = json.loads(config.model_dump_json())
        cm = CommentedMap(raw)

        for field, (label, comment) in _SECTION_COMMENTS.items():
            cm.yaml_set_comment_before_after_key(
                field,
                before=f"\n─── {label} ───" + (f"\n{comment}" if comment else ""),
            )

        if "solver" in cm:
            solver_map = CommentedMap(cm["solver"])
            solver_map.yaml_add_eol_comment("0 = kein Limit", "time_limit_seconds")
            solver_map.yaml_add_eol_comment("0 = automatisch", "num_workers")
            cm["solver"] = solver_map

        return cm
