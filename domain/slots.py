# domain/slots.py
# Geração dos horários candidatos do dia. O horário de atendimento NÃO entra
# aqui: é aplicado depois, como filtro (domain/availability.py).
#
# Janela fixa 06:00 (inclusive) → 22:00 (exclusive), a mesma faixa da lista
# fixa antiga (06:00 ... 21:45 em passos de 45 min).

from typing import Iterator, List, Tuple
from functools import lru_cache
import math

from domain.schedule import DEFAULT_SLOT_INTERVAL, resolve_interval

DAY_START_MIN = 6 * 60
DAY_END_MIN = 22 * 60


def _min_to_hhmm(total: int) -> str:
    return f"{total // 60:02d}:{total % 60:02d}"


def hhmm_to_min(hhmm: str) -> int:
    hh, mm = hhmm.split(":")
    return int(hh) * 60 + int(mm)


def iter_time_slots(interval_minutes=DEFAULT_SLOT_INTERVAL) -> Iterator[str]:
    step = resolve_interval(interval_minutes)
    cur = DAY_START_MIN
    while cur < DAY_END_MIN:
        yield _min_to_hhmm(cur)
        cur += step


@lru_cache(maxsize=64)
def _slots_for(step: int) -> Tuple[str, ...]:
    return tuple(iter_time_slots(step))


def generate_time_slots(interval_minutes=DEFAULT_SLOT_INTERVAL) -> List[str]:
    """
    Lista ordenada de slots "HH:MM" para o intervalo dado.
    Intervalo inválido ou <= 0 usa o padrão (45 min).
    """
    return list(_slots_for(resolve_interval(interval_minutes)))


def expected_slot_count(interval_minutes=DEFAULT_SLOT_INTERVAL) -> int:
    step = resolve_interval(interval_minutes)
    return math.ceil((DAY_END_MIN - DAY_START_MIN) / step)


def is_valid_slot(slot: str, interval_minutes=DEFAULT_SLOT_INTERVAL) -> bool:
    return slot in _slots_for(resolve_interval(interval_minutes))
