# services/professionals.py
# Cadastro de profissionais (tela de setup) + PIN mestre.
#   professionals/{slug}   (o slug é o ID do documento)
#   config/master          { pin, updatedAt }

import os
import logging
from typing import Any, Dict, List

from domain.models import Professional, Service
from domain.schedule import ScheduleConfig
from domain.validators import (
    PIN_MIN, slugify, validate_email, validate_phone, validate_pin, validate_slug,
)
from services import agenda_repo
from services.errors import DocumentExistsError, ValidationError
from services.phone_utils import normalize_cl_mobile
from services.store import Store

MASTER_PATH = "config/master"
# Firestore aceita até 500 escritas por lote
BATCH_LIMIT = 450


def default_master_pin() -> str:
    return (os.getenv("DEFAULT_MASTER_PIN") or "0000").strip()


# -------------------------------------------------------------------
# Leitura
# -------------------------------------------------------------------

def list_professionals(store: Store) -> List[Professional]:
    pros = [Professional.from_doc(d.id, d.data) for d in store.list(agenda_repo.PROS_COL)]
    return sorted(pros, key=lambda p: (p.name.lower(), p.id))


# -------------------------------------------------------------------
# Validação
# -------------------------------------------------------------------

def _clean_contact(data: Dict[str, Any]) -> Dict[str, str]:
    out = {}
    if "name" in data:
        name = str(data.get("name") or "").strip()
        if not name:
            raise ValidationError("invalid_name", "El nombre no puede estar vacío.")
        out["name"] = name
    if "phone" in data:
        phone = normalize_cl_mobile(str(data.get("phone") or ""))
        if phone and not validate_phone(phone):
            raise ValidationError("invalid_phone", "Ingresa un número de teléfono válido de 9 dígitos.")
        out["phone"] = phone
    if "email" in data:
        email = str(data.get("email") or "").strip()
        if not validate_email(email):
            raise ValidationError("invalid_email", "El correo electrónico no es válido.")
        out["email"] = email
    return out


def _require_pin(pin: str) -> str:
    if not validate_pin(pin):
        raise ValidationError("invalid_pin", "El PIN debe tener 4-6 dígitos numéricos.")
    return pin


# -------------------------------------------------------------------
# CRUD
# -------------------------------------------------------------------

def create_professional(store: Store, data: Dict[str, Any]) -> Professional:
    data = data or {}
    fields = _clean_contact({"name": data.get("name"), **{k: data[k] for k in ("phone", "email") if k in data}})
    slug = str(data.get("slug") or "").strip().lower() or slugify(fields["name"])
    if not validate_slug(slug):
        raise ValidationError(
            "invalid_slug",
            "El identificador solo puede contener letras minúsculas, números y guiones (mínimo 3).",
        )
    pin = _require_pin(str(data.get("pin") or "").strip())

    pro = Professional(
        id=slug,
        name=fields["name"],
        phone=fields.get("phone", ""),
        email=fields.get("email", ""),
        pin=pin,
        settings=ScheduleConfig(),
        services=[],
        created_at=store.server_timestamp(),
    )
    try:
        store.create(agenda_repo.pro_path(slug), pro.to_doc())
    except DocumentExistsError:
        raise ValidationError("slug_taken", "Ya existe un profesional con ese identificador.")
    logging.info("[professionals] criado id=%s", slug)
    return pro


def update_professional(store: Store, pro_id: str, data: Dict[str, Any]) -> Professional:
    agenda_repo.load_professional(store, pro_id)
    data = data or {}
    updates: Dict[str, Any] = _clean_contact({k: data[k] for k in ("name", "phone", "email") if k in data})
    pin = str(data.get("pin") or "").strip()
    if pin:
        updates["pin"] = _require_pin(pin)
    if not updates:
        raise ValidationError("no_valid_fields", "Nada que actualizar.")
    updates["updatedAt"] = store.server_timestamp()
    store.update(agenda_repo.pro_path(pro_id), updates)
    logging.info("[professionals] atualizado id=%s campos=%s", pro_id, sorted(k for k in updates if k != "pin"))
    return agenda_repo.load_professional(store, pro_id)


def update_services(store: Store, pro_id: str, services: Any) -> List[Service]:
    agenda_repo.load_professional(store, pro_id)
    if not isinstance(services, list):
        raise ValidationError("invalid_services", "Lista de servicios inválida.")
    out: List[Service] = []
    seen = set()
    for raw in services:
        svc = Service.from_doc(raw if isinstance(raw, dict) else {"name": raw})
        if not svc.name:
            raise ValidationError("invalid_services", "Cada servicio necesita un nombre.")
        if svc.name in seen:
            continue
        seen.add(svc.name)
        out.append(svc)
    store.update(agenda_repo.pro_path(pro_id), {
        "services": [s.to_doc() for s in out],
        "updatedAt": store.server_timestamp(),
    })
    logging.info("[professionals] %d serviços salvos id=%s", len(out), pro_id)
    return out


def delete_professional(store: Store, pro_id: str) -> int:
    """Apaga o profissional e as subcoleções (citas, bloqueios, claims). Retorna nº de docs apagados."""
    agenda_repo.load_professional(store, pro_id)
    paths = []
    for col in (agenda_repo.appointments_col(pro_id),
                agenda_repo.blocks_col(pro_id),
                agenda_repo.claims_col(pro_id)):
        paths.extend(f"{col}/{d.id}" for d in store.list(col))
    paths.append(agenda_repo.pro_path(pro_id))

    for i in range(0, len(paths), BATCH_LIMIT):
        store.commit([("delete", p, None) for p in paths[i:i + BATCH_LIMIT]])
    logging.info("[professionals] removido id=%s (%d docs)", pro_id, len(paths))
    return len(paths)


# -------------------------------------------------------------------
# PIN mestre
# -------------------------------------------------------------------

def get_master_pin(store: Store) -> str:
    doc = store.get(MASTER_PATH)
    if doc is None:
        return default_master_pin()
    return str(doc.data.get("pin") or default_master_pin())


def change_master_pin(store: Store, new_pin: str, confirm_pin: str) -> None:
    new_pin = (new_pin or "").strip()
    confirm_pin = (confirm_pin or "").strip()
    if len(new_pin) < PIN_MIN:
        raise ValidationError("invalid_pin", "El PIN debe tener al menos 4 dígitos.")
    if new_pin != confirm_pin:
        raise ValidationError("pin_mismatch", "Los PIN no coinciden.")
    if not new_pin.isdigit():
        raise ValidationError("invalid_pin", "El PIN debe contener solo números.")
    store.set(MASTER_PATH, {"pin": new_pin, "updatedAt": store.server_timestamp()})
    logging.info("[professionals] PIN mestre atualizado")
