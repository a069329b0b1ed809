# services/auth.py: PIN do profissional / PIN mestre + decorators das rotas
from __future__ import annotations

import hmac
import logging
from functools import wraps

from flask import current_app, g, request, session

from services import agenda_repo
from services.db import get_store
from services.errors import AuthError
from services.professionals import get_master_pin
from services.store import Store

SESSION_PRO_KEY = "agenda_pro"
SESSION_MASTER_KEY = "agenda_master"
PRO_PIN_HEADER = "X-Agenda-Pin"
MASTER_PIN_HEADER = "X-Master-Pin"


def current_store() -> Store:
    """Store do app (create_app injeta em AGENDA_STORE); fallback p/ o singleton."""
    store = current_app.config.get("AGENDA_STORE")
    return store if store is not None else get_store()


def pin_matches(entered: str, stored: str) -> bool:
    entered = (entered or "").strip()
    stored = (stored or "").strip()
    if not entered or not stored:
        return False
    return hmac.compare_digest(entered.encode("utf-8"), stored.encode("utf-8"))


# ------------------------------
# Login / logout (sessão assinada do Flask)
# ------------------------------

def login_professional(store: Store, pro_id: str, pin: str) -> None:
    pro = agenda_repo.load_professional(store, pro_id)
    if not pin_matches(pin, pro.pin):
        logging.info("[auth] PIN incorreto pro=%s", pro_id)
        raise AuthError()
    session[SESSION_PRO_KEY] = pro_id
    logging.info("[auth] login pro=%s", pro_id)


def logout_professional() -> None:
    session.pop(SESSION_PRO_KEY, None)


def login_master(store: Store, pin: str) -> None:
    if not pin_matches(pin, get_master_pin(store)):
        logging.info("[auth] PIN mestre incorreto")
        raise AuthError()
    session[SESSION_MASTER_KEY] = True
    logging.info("[auth] login setup")


def logout_master() -> None:
    session.pop(SESSION_MASTER_KEY, None)


# ------------------------------
# Decorators
# ------------------------------

def pro_pin_required(fn):
    """
    Exige (para o pro_id da URL):
      - sessão de login do mesmo profissional, ou
      - header X-Agenda-Pin com o PIN dele
    """
    @wraps(fn)
    def wrapper(*args, **kwargs):
        pro_id = kwargs.get("pro_id") or ""
        if session.get(SESSION_PRO_KEY) != pro_id:
            header_pin = request.headers.get(PRO_PIN_HEADER, "")
            pro = agenda_repo.load_professional(current_store(), pro_id)
            if not pin_matches(header_pin, pro.pin):
                raise AuthError("auth_required", "Ingresa tu PIN para continuar.")
        g.pro_id = pro_id
        return fn(*args, **kwargs)
    return wrapper


def master_pin_required(fn):
    """Exige sessão do setup ou header X-Master-Pin."""
    @wraps(fn)
    def wrapper(*args, **kwargs):
        if not session.get(SESSION_MASTER_KEY):
            header_pin = request.headers.get(MASTER_PIN_HEADER, "")
            if not pin_matches(header_pin, get_master_pin(current_store())):
                raise AuthError("auth_required", "Ingresa el PIN maestro.")
        return fn(*args, **kwargs)
    return wrapper
