"""Datenmodell für einen Slot im Wochenraster."""

from dataclasses import dataclass
from typing import Any

# Tagesbezeichner der Dienste (Englisch/Deutsch/Spanisch, lang und kurz) → 0=Mo..6=So
_DAY_MAP = {
    "mon": 0, "monday": 0, "mo": 0, "montag": 0, "lu": 0, "lun": 0, "lunes": 0,
    "tue": 1, "tuesday": 1, "di": 1, "dienstag": 1, "ma": 1, "mar": 1, "martes": 1,
    "wed": 2, "wednesday": 2, "mi": 2, "mittwoch": 2, "mie": 2, "miércoles": 2, "miercoles": 2,
    "thu": 3, "thursday": 3, "do": 3, "donnerstag": 3, "ju": 3, "jue": 3, "jueves": 3,
    "fri": 4, "friday": 4, "fr": 4, "freitag": 4, "vi": 4, "vie": 4, "viernes": 4,
    "sat": 5, "saturday": 5, "sa": 5, "samstag": 5, "sab": 5, "sábado": 5, "sabado": 5,
    "sun": 6, "sunday": 6, "so": 6, "sonntag": 6, "dom": 6, "domingo": 6,
}

_DAY_NAMES = ["Mo", "Di", "Mi", "Do", "Fr", "Sa", "So"]


@dataclass(frozen=True, order=True)
class Slot:
    """Ein einzelner Slot im Wochenraster: Kombination aus Wochentag und Block.

    Immutable (frozen=True) damit es als Dict-Key / Set-Element nutzbar ist.
    order=True ordnet global nach (day, period).
    """

    # Wochentag (0=Montag, 1=Dienstag, ..., 6=Sonntag)
    day: int
    # Block (1-basiert, z.B. 1 = 1. Block)
    period: int

    def __post_init__(self) -> None:
        if not 0 <= self.day <= 6:
            raise ValueError(f"Wochentag {self.day} außerhalb 0..6")
        if self.period < 1:
            raise ValueError(f"Block {self.period} muss >= 1 sein")

    @property
    def slot_id(self) -> str:
        """Eindeutiger String-Bezeichner (z.B. "0_1" für Mo 1. Block)."""
        return f"{self.day}_{self.period}"

    @property
    def day_name(self) -> str:
        """Abgekürzter Tagesname."""
        return _DAY_NAMES[self.day]

    @classmethod
    def parse(cls, token: Any) -> "Slot":
        """Wandelt einen Verfügbarkeits-Token in einen Slot um.

        Akzeptiert:
          - Slot-Objekte
          - {"day": 0, "period": 1}
          - "MON-1", "Mo-1", "Lunes-1" (Tagesname + Block)
          - "0_1" (slot_id)
        """
        if isinstance(token, Slot):
            return token
        if isinstance(token, dict):
            return cls(day=int(token["day"]), period=int(token["period"]))
        if isinstance(token, (tuple, list)) and len(token) == 2:
            return cls(day=int(token[0]), period=int(token[1]))
        if not isinstance(token, str):
            raise ValueError(f"Unbekanntes Slot-Format: {token!r}")

        text = token.strip()
        if "_" in text:
            day_part, _, period_part = text.partition("_")
            if day_part.isdigit() and period_part.isdigit():
                return cls(day=int(day_part), period=int(period_part))

        for sep in ("-", ":", " "):
            if sep in text:
                day_part, _, period_part = text.rpartition(sep)
                break
        else:
            raise ValueError(f"Unbekanntes Slot-Format: {token!r}")

        day = _DAY_MAP.get(day_part.strip().lower())
        if day is None:
            raise ValueError(f"Unbekannter Wochentag in Slot-Token: {token!r}")
        if not period_part.strip().isdigit():
            raise ValueError(f"Ungültiger Block in Slot-Token: {token!r}")
        return cls(day=day, period=int(period_part))

    def __repr__(self) -> str:
        return f"Slot({self.day_name}, Block {self.period})"

    def __str__(self) -> str:
        return f"{self.day_name} {self.period}."
