# domain/availability.py
"""
Agenda: disponibilidade por slot (funções puras, sem banco).

Cada slot do dia cai em exatamente um estado, na ordem (primeiro que bater):
  1. OCCUPIED          há agendamento "confirmed" exatamente nesse horário
  2. MANUALLY_BLOCKED  o dia inteiro está bloqueado (time == "all")
  3. OUTSIDE_HOURS     fora do horário de atendimento (não desbloqueável)
  4. MANUALLY_BLOCKED  bloqueio manual só desse horário
  5. FREE

O bloqueio de dia inteiro vale "independente do horário": por isso vem antes
do OUTSIDE_HOURS. Um agendamento existente nunca some atrás de um bloqueio.

Painel admin usa os quatro estados (resolve_day); a tela de reserva usa só
disponível / indisponível e esconde o que está fora do horário (booking_view).
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Sequence

from domain.models import Appointment, Block, BLOCK_ALL
from domain.schedule import ScheduleConfig, is_outside_business_hours
from domain.slots import generate_time_slots


class SlotState(str, Enum):
    OCCUPIED = "occupied"
    OUTSIDE_HOURS = "outside_hours"
    MANUALLY_BLOCKED = "blocked"
    FREE = "free"


# rótulos do painel
STATE_LABELS = {
    SlotState.OCCUPIED: "Ocupado",
    SlotState.OUTSIDE_HOURS: "Fuera Horario",
    SlotState.MANUALLY_BLOCKED: "Bloqueado",
    SlotState.FREE: "Libre",
}


@dataclass(frozen=True)
class SlotAvailability:
    time: str
    state: SlotState
    # há bloqueio manual cobrindo o slot (o botão vira "Quitar Bloqueo")
    manually_blocked: bool = False

    @property
    def bookable(self) -> bool:
        return self.state == SlotState.FREE

    @property
    def toggleable(self) -> bool:
        # fora do horário é estrutural: sem botão de bloquear/desbloquear
        return self.state != SlotState.OUTSIDE_HOURS

    def to_json(self) -> Dict[str, Any]:
        return {
            "time": self.time,
            "state": self.state.value,
            "label": STATE_LABELS[self.state],
            "blocked": self.manually_blocked,
            "toggleable": self.toggleable,
        }


def _confirmed_times(appointments: Iterable[Appointment]) -> set:
    return {a.time for a in appointments if a.confirmed}


def _block_times(blocks: Iterable[Block]) -> set:
    return {b.time for b in blocks}


def classify_slot(
    slot: str,
    config: ScheduleConfig,
    blocks: Iterable[Block],
    appointments: Iterable[Appointment],
) -> SlotState:
    return _classify(slot, config, _block_times(blocks), _confirmed_times(appointments))


def _classify(slot: str, config: ScheduleConfig, block_times: set, taken: set) -> SlotState:
    if slot in taken:
        return SlotState.OCCUPIED
    if BLOCK_ALL in block_times:
        return SlotState.MANUALLY_BLOCKED
    if is_outside_business_hours(slot, config):
        return SlotState.OUTSIDE_HOURS
    if slot in block_times:
        return SlotState.MANUALLY_BLOCKED
    return SlotState.FREE


def resolve_day(
    config: ScheduleConfig,
    blocks: Sequence[Block],
    appointments: Sequence[Appointment],
    slots: Optional[Sequence[str]] = None,
) -> List[SlotAvailability]:
    """Visão do admin: os quatro estados para todos os slots do dia."""
    if slots is None:
        slots = generate_time_slots(config.slot_interval)
    block_times = _block_times(blocks)
    taken = _confirmed_times(appointments)
    out: List[SlotAvailability] = []
    for t in slots:
        state = _classify(t, config, block_times, taken)
        out.append(SlotAvailability(
            time=t,
            state=state,
            manually_blocked=(t in block_times) or (BLOCK_ALL in block_times),
        ))
    return out


def booking_view(
    config: ScheduleConfig,
    blocks: Sequence[Block],
    appointments: Sequence[Appointment],
    slots: Optional[Sequence[str]] = None,
) -> List[Dict[str, Any]]:
    """
    Visão do paciente: slots fora do horário nem aparecem; o resto vem como
    {"time": "HH:MM", "available": bool}.
    """
    if slots is None:
        slots = generate_time_slots(config.slot_interval)
    visible = [t for t in slots if not is_outside_business_hours(t, config)]
    return [
        {"time": s.time, "available": s.bookable}
        for s in resolve_day(config, blocks, appointments, visible)
    ]


def month_indicators(
    appointments: Iterable[Appointment],
    blocks: Iterable[Block],
) -> Dict[str, Dict[str, bool]]:
    """Marcadores do calendário: dias com cita confirmada e dias bloqueados inteiros."""
    appt_days: Dict[str, bool] = {}
    blocked_days: Dict[str, bool] = {}
    for a in appointments:
        if a.confirmed and a.date:
            appt_days[a.date] = True
    for b in blocks:
        if b.whole_day and b.date:
            blocked_days[b.date] = True
    return {"appointmentDays": appt_days, "blockedDays": blocked_days}
