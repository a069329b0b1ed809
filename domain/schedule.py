# domain/schedule.py
"""
Agenda: horário de atendimento resolvido por profissional.

Contrato:
    ScheduleConfig.from_settings(raw: dict | None) -> ScheduleConfig
    is_outside_business_hours(slot: "HH:MM", config: ScheduleConfig) -> bool

Regras:
  - startTime / endTime ausentes ou vazios = sem limite naquele lado
  - almoço só vale com lunchStart E lunchEnd preenchidos; intervalo semiaberto
    [lunchStart, lunchEnd) → o slot exatamente em lunchEnd é reservável
  - slotInterval inválido ou <= 0 cai no padrão (45 min)
  - comparação lexicográfica de "HH:MM" (formato fixo, zero à esquerda)

Valores malformados degradam para "sem limite" (fail-open), igual ao widget.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, Optional
import logging
import re

DEFAULT_SLOT_INTERVAL = 45

_HHMM_RE = re.compile(r"^\s*(\d{1,2}):(\d{2})\s*$")


def normalize_hhmm(value: Any, fallback: Optional[str] = None) -> Optional[str]:
    """
    Normaliza HH:MM (zero-padded). Se estiver inválido, volta para o fallback.
    """
    if not isinstance(value, str):
        return fallback
    m = _HHMM_RE.match(value)
    if not m:
        return fallback
    h = int(m.group(1))
    mi = int(m.group(2))
    if 0 <= h <= 23 and 0 <= mi <= 59:
        return f"{h:02d}:{mi:02d}"
    return fallback


def resolve_interval(value: Any, default: int = DEFAULT_SLOT_INTERVAL) -> int:
    # bool é int em Python; não aceitar True como "1 minuto"
    if isinstance(value, bool):
        return default
    try:
        v = int(value)
    except (TypeError, ValueError):
        return default
    if v <= 0:
        return default
    return v


@dataclass(frozen=True)
class ScheduleConfig:
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    lunch_start: Optional[str] = None
    lunch_end: Optional[str] = None
    slot_interval: int = DEFAULT_SLOT_INTERVAL

    @property
    def has_lunch(self) -> bool:
        return bool(self.lunch_start and self.lunch_end)

    @classmethod
    def from_settings(cls, raw: Optional[Dict[str, Any]]) -> "ScheduleConfig":
        """Resolve o dict `settings` salvo no documento do profissional."""
        if not isinstance(raw, dict):
            return cls()
        raw_interval = raw.get("slotInterval")
        interval = resolve_interval(raw_interval)
        if raw_interval not in (None, "") and resolve_interval(raw_interval, default=0) == 0:
            logging.warning("[schedule] slotInterval inválido %r; usando %s", raw_interval, interval)
        return cls(
            start_time=normalize_hhmm(raw.get("startTime")),
            end_time=normalize_hhmm(raw.get("endTime")),
            lunch_start=normalize_hhmm(raw.get("lunchStart")),
            lunch_end=normalize_hhmm(raw.get("lunchEnd")),
            slot_interval=interval,
        )

    def to_settings(self) -> Dict[str, Any]:
        # "" = sem limite, como o painel grava "Ninguno"
        return {
            "startTime": self.start_time or "",
            "endTime": self.end_time or "",
            "lunchStart": self.lunch_start or "",
            "lunchEnd": self.lunch_end or "",
            "slotInterval": self.slot_interval,
        }


def is_outside_business_hours(slot: str, config: ScheduleConfig) -> bool:
    if config.start_time and slot < config.start_time:
        return True
    if config.end_time and slot > config.end_time:
        return True
    if config.has_lunch and config.lunch_start <= slot < config.lunch_end:
        return True
    return False
