# services/db.py
# Cliente Firestore via Firebase Admin + escolha do backend da agenda.
# Compatível com:
#   from services.db import get_db      (client Firestore cru)
#   from services.db import get_store   (contrato de services/store.py)
#
# Backend:
#   STORE_BACKEND=memory            → MemoryStore (dev/testes)
#   FIREBASE_PROJECT_ID ausente     → MemoryStore (com aviso)
#   caso contrário                  → FirestoreStore

import os
import json
import logging
from typing import Optional

import firebase_admin
from firebase_admin import credentials, firestore as fa_firestore

from services.store import MemoryStore, Store

log = logging.getLogger(__name__)

# -----------------------------------
# Inicialização do Firebase / Firestore
# -----------------------------------
_APP: Optional[firebase_admin.App] = None
_DB = None
_STORE: Optional[Store] = None


def _load_credentials_from_inline_json():
    """
    Lê credenciais do ENV FIREBASE_CREDENTIALS_JSON (recomendado).
    Retorna (cred_obj, project_id_from_key) ou (None, None) se ausente.
    """
    creds_json = (os.getenv("FIREBASE_CREDENTIALS_JSON") or "").strip()
    if not creds_json:
        return None, None
    try:
        creds_dict = json.loads(creds_json)
        cred = credentials.Certificate(creds_dict)
        return cred, creds_dict.get("project_id")
    except (ValueError, TypeError) as e:
        log.error("[FIREBASE] ERRO ao ler FIREBASE_CREDENTIALS_JSON: %s", e)
        return None, None


def _load_credentials_from_file():
    """
    Fallback: lê do caminho GOOGLE_APPLICATION_CREDENTIALS (arquivo .json).
    """
    path = (os.getenv("GOOGLE_APPLICATION_CREDENTIALS") or "").strip()
    if not path:
        return None, None
    if not os.path.exists(path):
        log.error("[FIREBASE] Arquivo não encontrado em GOOGLE_APPLICATION_CREDENTIALS: %s", path)
        return None, None
    try:
        with open(path, "r", encoding="utf-8") as f:
            key_dict = json.load(f)
        cred = credentials.Certificate(key_dict)
        return cred, key_dict.get("project_id")
    except (OSError, ValueError) as e:
        log.error("[FIREBASE] ERRO ao ler GOOGLE_APPLICATION_CREDENTIALS: %s", e)
        return None, None


def _ensure_project_match(key_project_id: Optional[str], env_project_id: str):
    if not key_project_id:
        raise RuntimeError("[FIREBASE] project_id ausente dentro da chave de serviço.")
    if key_project_id != env_project_id:
        raise RuntimeError(
            f"[FIREBASE] Project mismatch: key={key_project_id} env={env_project_id}"
        )


def _init_firebase_app() -> firebase_admin.App:
    """
    Inicializa o firebase_admin.App uma única vez, priorizando:
      1) FIREBASE_CREDENTIALS_JSON
      2) GOOGLE_APPLICATION_CREDENTIALS
    """
    global _APP

    if _APP is not None:
        return _APP

    try:
        _APP = firebase_admin.get_app()
        return _APP
    except ValueError:
        pass  # ainda não inicializado

    env_project_id = (os.getenv("FIREBASE_PROJECT_ID") or "").strip()
    if not env_project_id:
        raise RuntimeError("[FIREBASE] FIREBASE_PROJECT_ID não definido.")

    cred, key_pid = _load_credentials_from_inline_json()
    if not cred:
        cred, key_pid = _load_credentials_from_file()
    if not cred:
        raise RuntimeError(
            "[FIREBASE] Nenhuma credencial encontrada. Defina FIREBASE_CREDENTIALS_JSON "
            "ou GOOGLE_APPLICATION_CREDENTIALS."
        )

    _ensure_project_match(key_pid, env_project_id)
    _APP = firebase_admin.initialize_app(cred, {"projectId": env_project_id})
    log.info("[FIREBASE] app inicializado (project=%s)", env_project_id)
    return _APP


def get_db():
    """Retorna um client do Firestore (cacheado)."""
    global _DB
    if _DB is not None:
        return _DB
    _init_firebase_app()
    _DB = fa_firestore.client()
    return _DB


def _db_ready() -> bool:
    """Firestore só é usado se FIREBASE_PROJECT_ID estiver definido e o backend não for forçado p/ memória."""
    if (os.getenv("STORE_BACKEND") or "").strip().lower() == "memory":
        return False
    return bool((os.getenv("FIREBASE_PROJECT_ID") or "").strip())


def get_store() -> Store:
    global _STORE
    if _STORE is not None:
        return _STORE
    if _db_ready():
        from services.firestore_store import FirestoreStore
        _STORE = FirestoreStore(get_db())
    else:
        log.warning("[db] FIREBASE_PROJECT_ID ausente ou STORE_BACKEND=memory; usando MemoryStore")
        _STORE = MemoryStore()
    return _STORE
