# domain/reminders.py
# Avisos para pacientes (aba "Avisos" do painel) + textos de WhatsApp.
# Janela: hoje + 4 dias. Hoje só entra o que ainda não passou.

from __future__ import annotations
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List

from domain.models import Appointment

REMINDER_WINDOW_DAYS = 5
SOON_HOURS = 3

# weekday() do Python: 0 = segunda
DAY_NAMES_SHORT = ["Lun", "Mar", "Mié", "Jue", "Vie", "Sáb", "Dom"]

KIND_SOON = "2h"
KIND_TODAY = "today"
KIND_TOMORROW = "24h"
KIND_FUTURE = "future"


def window_dates(now: datetime, days: int = REMINDER_WINDOW_DAYS) -> List[str]:
    return [(now + timedelta(days=i)).strftime("%Y-%m-%d") for i in range(days)]


def _day_name(date_str: str) -> str:
    return DAY_NAMES_SHORT[datetime.strptime(date_str, "%Y-%m-%d").weekday()]


def reminder_text(appt: Appointment, day_offset: int) -> str:
    if day_offset == 0:
        return f"Hola {appt.patient_name}, te recordamos tu hora de hoy a las {appt.time}."
    day_name = _day_name(appt.date)
    if day_offset == 1:
        return f"Hola {appt.patient_name}, te recordamos tu hora para mañana {day_name} a las {appt.time}."
    return f"Hola {appt.patient_name}, te recordamos tu cita del {day_name} {appt.date} a las {appt.time}."


def booking_text(service: str, date: str, time: str) -> str:
    return f"Su hora ha sido agendada para {service} el día {date} a las {time}. Muchas gracias"


def cancellation_text(appt: Appointment) -> str:
    return (
        f"Hola {appt.patient_name}, lamentamos informarte que tu cita del {appt.date} "
        f"a las {appt.time} ha sido cancelada. Contáctanos para reagendar."
    )


def build_reminders(appointments: Iterable[Appointment], now: datetime) -> List[Dict[str, Any]]:
    """
    `now` deve estar no fuso da agenda (tz-aware ou não, desde que coerente).
    Retorna lista ordenada por (date, time) com kind/label/message.
    """
    dates = window_dates(now)
    out: List[Dict[str, Any]] = []
    for appt in appointments:
        if not appt.confirmed or appt.date not in dates:
            continue
        offset = dates.index(appt.date)
        if offset == 0:
            try:
                h, m = (int(x) for x in appt.time.split(":"))
            except ValueError:
                continue
            appt_dt = now.replace(hour=h, minute=m, second=0, microsecond=0)
            diff_hours = (appt_dt - now).total_seconds() / 3600
            if diff_hours <= 0:
                continue
            kind = KIND_SOON if diff_hours <= SOON_HOURS else KIND_TODAY
            label = "Hoy (Pronto)" if kind == KIND_SOON else "Hoy"
        elif offset == 1:
            kind, label = KIND_TOMORROW, "Mañana"
        else:
            kind, label = KIND_FUTURE, f"En {offset} días ({_day_name(appt.date)})"

        out.append({
            "appointment": appt,
            "kind": kind,
            "label": label,
            "dayOffset": offset,
            "message": reminder_text(appt, offset),
        })

    out.sort(key=lambda r: (r["appointment"].date, r["appointment"].time))
    return out
