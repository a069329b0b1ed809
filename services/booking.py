# services/booking.py
"""
Agenda: reserva com proteção contra dupla marcação.

Fluxo (book_appointment):
  1. valida os dados do paciente (síncrono, antes de qualquer escrita)
  2. relê o dia (citas confirmadas + bloqueios) e classifica o slot com o
     mesmo predicado da tela (domain.availability.classify_slot):
       OCCUPIED                       → SlotConflictError
       OUTSIDE_HOURS / bloqueado      → SlotUnavailableError
  3. grava em lote atômico: cria professionals/{id}/slotClaims/{date}_{time}
     (create falha se já existe) + o agendamento. Se dois clientes passaram
     pela releitura ao mesmo tempo, só um "create" vence; o outro recebe
     SlotConflictError.

Cancelar = status "cancelled" (histórico preservado) + remove o claim.
Remarcar (admin muda o horário) passa pelo mesmo guard no novo slot.
"""

from __future__ import annotations
from typing import Any, Dict, Optional
import logging

from domain.availability import SlotState, classify_slot
from domain.models import Appointment, STATUS_CANCELLED, STATUS_CONFIRMED, slot_key
from domain.schedule import ScheduleConfig, normalize_hhmm
from domain.slots import is_valid_slot
from domain.validators import validate_email, validate_phone, validate_rut
from services import agenda_repo
from services.errors import (
    DocumentExistsError, SlotConflictError, SlotUnavailableError, ValidationError,
)
from services.phone_utils import normalize_cl_mobile
from services.store import Store

log = logging.getLogger(__name__)


def _claim_path(pro_id: str, date: str, time: str) -> str:
    return f"{agenda_repo.claims_col(pro_id)}/{slot_key(date, time)}"


def _appt_path(pro_id: str, appt_id: str) -> str:
    return f"{agenda_repo.appointments_col(pro_id)}/{appt_id}"


# ---------------------------------------------------------------------
# Validação dos dados do paciente
# ---------------------------------------------------------------------

def _clean_patient_fields(data: Dict[str, Any], partial: bool = False) -> Dict[str, str]:
    out: Dict[str, str] = {}

    if not partial or "name" in data:
        name = str(data.get("name") or "").strip()
        if not name:
            raise ValidationError("invalid_name", "Por favor, ingresa tu nombre.")
        out["patientName"] = name

    if not partial or "phone" in data:
        phone = normalize_cl_mobile(str(data.get("phone") or ""))
        if not validate_phone(phone):
            raise ValidationError("invalid_phone", "Ingresa un número de teléfono válido de 9 dígitos.")
        out["patientPhone"] = phone

    if not partial or "email" in data:
        email = str(data.get("email") or "").strip()
        if not validate_email(email):
            raise ValidationError("invalid_email", "El correo electrónico no es válido.")
        out["patientEmail"] = email

    if not partial or "rut" in data:
        rut = str(data.get("rut") or "").strip().upper()
        if rut and not validate_rut(rut):
            raise ValidationError(
                "invalid_rut", "El RUT ingresado no es válido. Verifica el dígito verificador."
            )
        out["patientRut"] = rut

    if "notes" in data:
        out["notes"] = str(data.get("notes") or "").strip()

    return out


def _require_slot_time(time: Any, config: ScheduleConfig) -> str:
    norm = normalize_hhmm(time)
    if not norm or not is_valid_slot(norm, config.slot_interval):
        raise ValidationError("invalid_time", "Selecciona un horario válido.")
    return norm


def validate_booking(pro, data: Dict[str, Any], today: str) -> Appointment:
    service = str(data.get("service") or "").strip()
    names = pro.service_names()
    if not service or (names and service not in names):
        raise ValidationError("invalid_service", "Selecciona un servicio válido.")

    date = agenda_repo.require_date(str(data.get("date") or ""))
    if date < today:
        raise ValidationError("past_date", "No se puede agendar en una fecha pasada.")
    time = _require_slot_time(data.get("time"), pro.settings)

    fields = _clean_patient_fields(data)
    return Appointment(
        date=date,
        time=time,
        service_name=service,
        patient_name=fields["patientName"],
        patient_phone=fields["patientPhone"],
        patient_email=fields["patientEmail"],
        patient_rut=fields["patientRut"],
        notes=fields.get("notes", ""),
        status=STATUS_CONFIRMED,
    )


# ---------------------------------------------------------------------
# Guard
# ---------------------------------------------------------------------

def ensure_slot_free(
    store: Store,
    pro_id: str,
    config: ScheduleConfig,
    date: str,
    time: str,
    exclude_id: Optional[str] = None,
    allow_blocked: bool = False,
) -> None:
    """Releitura imediatamente antes da escrita."""
    blocks, appts = agenda_repo.load_day(store, pro_id, date)
    if exclude_id:
        appts = [a for a in appts if a.id != exclude_id]
    state = classify_slot(time, config, blocks, appts)
    if state == SlotState.OCCUPIED:
        log.info("[booking] conflito pro=%s %s %s (releitura)", pro_id, date, time)
        raise SlotConflictError(date=date, time=time)
    if state != SlotState.FREE and not allow_blocked:
        log.info("[booking] slot indisponível pro=%s %s %s state=%s", pro_id, date, time, state.value)
        raise SlotUnavailableError(date=date, time=time)


def _claim_is_stale(store: Store, pro_id: str, date: str, time: str) -> bool:
    claim = store.get(_claim_path(pro_id, date, time))
    if claim is None:
        return True
    owner = claim.data.get("appointmentId")
    if not owner:
        return True
    doc = store.get(_appt_path(pro_id, owner))
    if doc is None:
        return True
    appt = Appointment.from_doc(doc.id, doc.data)
    return not (appt.confirmed and appt.date == date and appt.time == time)


def _claim_doc(store: Store, appt_id: str, date: str, time: str) -> Dict[str, Any]:
    return {"appointmentId": appt_id, "date": date, "time": time, "createdAt": store.server_timestamp()}


def _commit_with_claim(store: Store, pro_id: str, date: str, time: str, ops) -> None:
    """
    Commit atômico que começa com o create do claim. Claim órfão (cita
    cancelada/apagada fora do fluxo) é removido e o commit tenta uma vez mais.
    """
    try:
        store.commit(ops)
        return
    except DocumentExistsError:
        if not _claim_is_stale(store, pro_id, date, time):
            log.info("[booking] conflito pro=%s %s %s (claim)", pro_id, date, time)
            raise SlotConflictError(date=date, time=time)
    log.warning("[booking] claim órfão removido pro=%s %s %s", pro_id, date, time)
    store.delete(_claim_path(pro_id, date, time))
    try:
        store.commit(ops)
    except DocumentExistsError:
        raise SlotConflictError(date=date, time=time)


def commit_booking(store: Store, pro_id: str, appt: Appointment) -> Appointment:
    col = agenda_repo.appointments_col(pro_id)
    appt.id = appt.id or store.new_id(col)
    appt.created_at = store.server_timestamp()
    ops = [
        ("create", _claim_path(pro_id, appt.date, appt.time), _claim_doc(store, appt.id, appt.date, appt.time)),
        ("set", _appt_path(pro_id, appt.id), appt.to_doc()),
    ]
    _commit_with_claim(store, pro_id, appt.date, appt.time, ops)
    logging.info("[booking] cita criada pro=%s id=%s %s %s", pro_id, appt.id, appt.date, appt.time)
    # relê: createdAt vem resolvido pelo servidor
    return agenda_repo.get_appointment(store, pro_id, appt.id)


def book_appointment(
    store: Store,
    pro_id: str,
    data: Dict[str, Any],
    today: Optional[str] = None,
) -> Appointment:
    pro = agenda_repo.load_professional(store, pro_id)
    appt = validate_booking(pro, data or {}, today or agenda_repo.today_str())
    ensure_slot_free(store, pro_id, pro.settings, appt.date, appt.time)
    return commit_booking(store, pro_id, appt)


# ---------------------------------------------------------------------
# Edição / cancelamento (painel admin)
# ---------------------------------------------------------------------

_EDITABLE = {"name", "phone", "email", "rut", "notes", "time"}


def update_appointment(store: Store, pro_id: str, appt_id: str, data: Dict[str, Any]) -> Appointment:
    pro = agenda_repo.load_professional(store, pro_id)
    appt = agenda_repo.get_appointment(store, pro_id, appt_id)
    if not appt.confirmed:
        raise ValidationError("appointment_cancelled", "La cita ya fue cancelada.")

    data = {k: v for k, v in (data or {}).items() if k in _EDITABLE}
    if not data:
        raise ValidationError("no_valid_fields", "Nada que actualizar.")

    updates: Dict[str, Any] = _clean_patient_fields(data, partial=True)
    updates["updatedAt"] = store.server_timestamp()

    new_time = appt.time
    if "time" in data:
        new_time = _require_slot_time(data.get("time"), pro.settings)

    if new_time == appt.time:
        store.update(_appt_path(pro_id, appt_id), updates)
    else:
        # admin pode remarcar em slot bloqueado/fora do horário; só não em cima de outra cita
        ensure_slot_free(store, pro_id, pro.settings, appt.date, new_time,
                         exclude_id=appt_id, allow_blocked=True)
        updates["time"] = new_time
        ops = [
            ("create", _claim_path(pro_id, appt.date, new_time), _claim_doc(store, appt_id, appt.date, new_time)),
            ("update", _appt_path(pro_id, appt_id), updates),
        ]
        old_claim = store.get(_claim_path(pro_id, appt.date, appt.time))
        if old_claim is not None and old_claim.data.get("appointmentId") == appt_id:
            ops.append(("delete", _claim_path(pro_id, appt.date, appt.time), None))
        _commit_with_claim(store, pro_id, appt.date, new_time, ops)
        logging.info("[booking] cita remarcada pro=%s id=%s %s -> %s", pro_id, appt_id, appt.time, new_time)

    return agenda_repo.get_appointment(store, pro_id, appt_id)


def cancel_appointment(store: Store, pro_id: str, appt_id: str, reason: str = "") -> Appointment:
    """Soft delete: status → cancelled, claim do slot liberado."""
    appt = agenda_repo.get_appointment(store, pro_id, appt_id)
    if appt.status == STATUS_CANCELLED:
        return appt

    ops = [("update", _appt_path(pro_id, appt_id), {
        "status": STATUS_CANCELLED,
        "cancelReason": (reason or "").strip() or "Cancelado por el profesional",
        "cancelledAt": store.server_timestamp(),
        "updatedAt": store.server_timestamp(),
    })]
    claim = store.get(_claim_path(pro_id, appt.date, appt.time))
    if claim is not None and claim.data.get("appointmentId") == appt_id:
        ops.append(("delete", _claim_path(pro_id, appt.date, appt.time), None))
    store.commit(ops)
    logging.info("[booking] cita cancelada pro=%s id=%s %s %s", pro_id, appt_id, appt.date, appt.time)
    return agenda_repo.get_appointment(store, pro_id, appt_id)
