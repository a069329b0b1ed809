# services/agenda_repo.py
# Persistência da agenda por profissional + leitura do dia / mês.
# Coleções:
#   professionals/{proId}                      (perfil + settings + services)
#   professionals/{proId}/appointments/{autoId}
#   professionals/{proId}/blocks/{date}_{time} (ou {date}_all)
#   professionals/{proId}/slotClaims/{date}_{time}  (1 por slot ocupado)

import os
import calendar
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

import pytz

from domain.availability import month_indicators, resolve_day
from domain.models import (
    Appointment, Block, BLOCK_ALL, Professional, STATUS_CONFIRMED, block_id,
)
from domain.reminders import build_reminders, window_dates
from domain.schedule import ScheduleConfig, normalize_hhmm
from domain.validators import validate_date
from services.errors import NotFoundError, ValidationError
from services.phone_utils import whatsapp_link
from services.store import Store

DEFAULT_TZ = "America/Santiago"
PROS_COL = "professionals"

# -------------------------------------------------------------------
# Helpers gerais
# -------------------------------------------------------------------


def _tz(tz_str: Optional[str] = None) -> pytz.BaseTzInfo:
    tz_str = (tz_str or os.getenv("AGENDA_TZ") or DEFAULT_TZ).strip()
    try:
        return pytz.timezone(tz_str)
    except pytz.UnknownTimeZoneError:
        logging.warning("[agenda_repo] TZ inválido %r, usando %s", tz_str, DEFAULT_TZ)
        return pytz.timezone(DEFAULT_TZ)


def now_local(tz_str: Optional[str] = None) -> datetime:
    return datetime.now(_tz(tz_str))


def today_str(tz_str: Optional[str] = None) -> str:
    return now_local(tz_str).strftime("%Y-%m-%d")


def pro_path(pro_id: str) -> str:
    pro_id = (pro_id or "").strip()
    if not pro_id or "/" in pro_id:
        raise NotFoundError("professional_not_found", "Profesional no encontrado.")
    return f"{PROS_COL}/{pro_id}"


def appointments_col(pro_id: str) -> str:
    return f"{pro_path(pro_id)}/appointments"


def blocks_col(pro_id: str) -> str:
    return f"{pro_path(pro_id)}/blocks"


def claims_col(pro_id: str) -> str:
    return f"{pro_path(pro_id)}/slotClaims"


def require_date(date_str: str) -> str:
    date_str = (date_str or "").strip()
    if not validate_date(date_str):
        raise ValidationError("invalid_date", "Fecha inválida (use YYYY-MM-DD).")
    return date_str


def month_range(month: str) -> Tuple[str, str]:
    """'2025-06' -> ('2025-06-01', '2025-06-30')"""
    try:
        y, m = (int(x) for x in (month or "").split("-"))
        last = calendar.monthrange(y, m)[1]
    except (ValueError, calendar.IllegalMonthError):
        raise ValidationError("invalid_month", "Mes inválido (use YYYY-MM).")
    return f"{y:04d}-{m:02d}-01", f"{y:04d}-{m:02d}-{last:02d}"


# -------------------------------------------------------------------
# Profissional
# -------------------------------------------------------------------

def load_professional(store: Store, pro_id: str) -> Professional:
    doc = store.get(pro_path(pro_id))
    if doc is None:
        raise NotFoundError("professional_not_found", "Profesional no encontrado.")
    return Professional.from_doc(doc.id, doc.data)


def load_settings(store: Store, pro_id: str) -> ScheduleConfig:
    return load_professional(store, pro_id).settings


def save_settings(store: Store, pro_id: str, data: Dict[str, Any]) -> ScheduleConfig:
    """
    Merge suave dos campos enviados sobre o que já existe. Horário inválido
    vira "" (sem limite); intervalo inválido volta para o padrão.
    """
    pro = load_professional(store, pro_id)
    current = pro.settings.to_settings()
    for key in ("startTime", "endTime", "lunchStart", "lunchEnd"):
        if key in data:
            current[key] = normalize_hhmm(data.get(key)) or ""
    if "slotInterval" in data:
        current["slotInterval"] = data.get("slotInterval")
    cfg = ScheduleConfig.from_settings(current)
    store.update(pro_path(pro_id), {
        "settings": cfg.to_settings(),
        "updatedAt": store.server_timestamp(),
    })
    logging.info("[agenda_repo] settings salvos pro=%s %s", pro_id, cfg.to_settings())
    return cfg


# -------------------------------------------------------------------
# Leitura de agendamentos / bloqueios
# -------------------------------------------------------------------

def list_blocks_for(store: Store, pro_id: str, date_str: str) -> List[Block]:
    docs = store.query(blocks_col(pro_id), [("date", "==", date_str)])
    return [Block.from_doc(d.id, d.data) for d in docs]


def list_appointments_for(store: Store, pro_id: str, date_str: str) -> List[Appointment]:
    docs = store.query(appointments_col(pro_id), [("date", "==", date_str)])
    return [Appointment.from_doc(d.id, d.data) for d in docs]


def list_confirmed_at(store: Store, pro_id: str, date_str: str, time: str) -> List[Appointment]:
    docs = store.query(appointments_col(pro_id), [
        ("date", "==", date_str),
        ("time", "==", time),
        ("status", "==", STATUS_CONFIRMED),
    ])
    return [Appointment.from_doc(d.id, d.data) for d in docs]


def load_day(store: Store, pro_id: str, date_str: str) -> Tuple[List[Block], List[Appointment]]:
    date_str = require_date(date_str)
    return list_blocks_for(store, pro_id, date_str), list_appointments_for(store, pro_id, date_str)


def get_appointment(store: Store, pro_id: str, appt_id: str) -> Appointment:
    if not appt_id or "/" in appt_id:
        raise NotFoundError("appointment_not_found", "Cita no encontrada.")
    doc = store.get(f"{appointments_col(pro_id)}/{appt_id}")
    if doc is None:
        raise NotFoundError("appointment_not_found", "Cita no encontrada.")
    return Appointment.from_doc(doc.id, doc.data)


def confirmed_sorted(appointments: List[Appointment]) -> List[Appointment]:
    return sorted((a for a in appointments if a.confirmed), key=lambda a: a.time)


def day_view(store: Store, pro_id: str, date_str: str) -> Dict[str, Any]:
    """Grade de 4 estados + lista de citas confirmadas do dia (painel admin)."""
    config = load_settings(store, pro_id)
    blocks, appts = load_day(store, pro_id, date_str)
    return build_day_payload(date_str, config, blocks, appts)


def build_day_payload(date_str: str, config: ScheduleConfig, blocks, appts) -> Dict[str, Any]:
    return {
        "date": date_str,
        "settings": config.to_settings(),
        "dayBlocked": any(b.whole_day for b in blocks),
        "slots": [s.to_json() for s in resolve_day(config, blocks, appts)],
        "appointments": [a.to_json() for a in confirmed_sorted(appts)],
    }


def list_month(store: Store, pro_id: str, month: str) -> Tuple[List[Appointment], List[Block]]:
    start, end = month_range(month)
    rng = [("date", ">=", start), ("date", "<=", end)]
    appts = [Appointment.from_doc(d.id, d.data) for d in store.query(appointments_col(pro_id), rng)]
    blocks = [Block.from_doc(d.id, d.data) for d in store.query(blocks_col(pro_id), rng)]
    return appts, blocks


def month_view(store: Store, pro_id: str, month: str) -> Dict[str, Any]:
    load_professional(store, pro_id)
    appts, blocks = list_month(store, pro_id, month)
    out = month_indicators(appts, blocks)
    out["month"] = month
    return out


# -------------------------------------------------------------------
# Bloqueios (IDs determinísticos → recriar é sobrescrever)
# -------------------------------------------------------------------

def _require_block_time(time: str) -> str:
    if time == BLOCK_ALL:
        return time
    norm = normalize_hhmm(time)
    if not norm:
        raise ValidationError("invalid_time", "Horario inválido.")
    return norm


def block_slot(store: Store, pro_id: str, date_str: str, time: str) -> Block:
    load_professional(store, pro_id)
    date_str = require_date(date_str)
    time = _require_block_time(time)
    bid = block_id(date_str, time)
    store.set(f"{blocks_col(pro_id)}/{bid}", {
        "date": date_str,
        "time": time,
        "createdAt": store.server_timestamp(),
    })
    logging.info("[agenda_repo] bloqueio pro=%s id=%s", pro_id, bid)
    return Block(date=date_str, time=time, id=bid)


def block_day(store: Store, pro_id: str, date_str: str) -> Block:
    return block_slot(store, pro_id, date_str, BLOCK_ALL)


def unblock_slot(store: Store, pro_id: str, date_str: str, time: str) -> Optional[str]:
    """
    Remove o bloqueio do slot. Se o slot só está coberto pelo bloqueio do dia
    inteiro, é esse que sai. Retorna o ID removido (ou None se nada havia).
    """
    date_str = require_date(date_str)
    time = _require_block_time(time)
    blocks = list_blocks_for(store, pro_id, date_str)
    target = next((b for b in blocks if b.time == time), None)
    if target is None:
        target = next((b for b in blocks if b.whole_day), None)
    if target is None:
        return None
    store.delete(f"{blocks_col(pro_id)}/{target.id}")
    logging.info("[agenda_repo] desbloqueio pro=%s id=%s", pro_id, target.id)
    return target.id


def clear_day_blocks(store: Store, pro_id: str, date_str: str) -> int:
    date_str = require_date(date_str)
    blocks = list_blocks_for(store, pro_id, date_str)
    if not blocks:
        return 0
    store.commit([("delete", f"{blocks_col(pro_id)}/{b.id}", None) for b in blocks])
    logging.info("[agenda_repo] %d bloqueios removidos pro=%s date=%s", len(blocks), pro_id, date_str)
    return len(blocks)


# -------------------------------------------------------------------
# Avisos (próximos 5 dias)
# -------------------------------------------------------------------

def list_reminders(store: Store, pro_id: str, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
    load_professional(store, pro_id)
    now = now or now_local()
    dates = window_dates(now)
    docs = store.query(appointments_col(pro_id), [
        ("status", "==", STATUS_CONFIRMED),
        ("date", ">=", dates[0]),
        ("date", "<=", dates[-1]),
    ])
    appts = [Appointment.from_doc(d.id, d.data) for d in docs]
    out = []
    for r in build_reminders(appts, now):
        appt = r.pop("appointment")
        r["appointment"] = appt.to_json()
        r["whatsappUrl"] = whatsapp_link(appt.patient_phone, r["message"])
        out.append(r)
    return out
