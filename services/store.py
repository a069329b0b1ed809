# services/store.py
"""
Agenda: acesso ao banco de documentos.

Contrato mínimo que a agenda precisa do banco (Firestore em produção):
  - leitura pontual por caminho  (get)
  - consulta por campo: ==, >=, <=, <, >, in   (query)
  - escuta contínua de uma consulta com cancelamento explícito (watch)
  - escritas simples e em lote atômico, incluindo "create" que falha se o
    documento já existe (commit)

Caminhos no estilo Firestore:
  coleção   "professionals/ana/blocks"
  documento "professionals/ana/blocks/2025-06-01_10:00"

Backends:
  - FirestoreStore (services/firestore_store.py)
  - MemoryStore (este arquivo) → dev/offline/testes; mesmo contrato, estado
    no processo, callbacks de watch síncronos.
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple
import copy
import itertools
import logging
import threading
import uuid

from services.errors import DocumentExistsError, DocumentMissingError, ValidationError

Filter = Tuple[str, str, Any]
WriteOp = Tuple[str, str, Optional[Dict[str, Any]]]

OPS = ("==", ">=", "<=", "<", ">", "in")


@dataclass(frozen=True)
class Document:
    id: str
    data: Dict[str, Any]


class Subscription:
    """
    Handle de uma escuta. Quem chama watch() é dono do handle e precisa
    chamar unsubscribe() (ou usar `with`). unsubscribe() é idempotente.
    """

    def __init__(self, cancel: Callable[[], None], label: str = ""):
        self._cancel = cancel
        self._lock = threading.Lock()
        self.label = label
        self.active = True

    def unsubscribe(self) -> None:
        with self._lock:
            if not self.active:
                return
            self.active = False
        try:
            self._cancel()
        except Exception:
            logging.exception("[store] falha ao cancelar escuta %s", self.label)
            raise

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc) -> None:
        self.unsubscribe()

    def __repr__(self) -> str:
        return f"<Subscription {self.label!r} active={self.active}>"


def parent_path(doc_path: str) -> str:
    parts = [p for p in (doc_path or "").split("/") if p]
    if len(parts) < 2 or len(parts) % 2 != 0:
        raise ValidationError("invalid_path", f"Caminho de documento inválido: {doc_path!r}")
    return "/".join(parts[:-1])


def doc_id_of(doc_path: str) -> str:
    return doc_path.rstrip("/").rsplit("/", 1)[-1]


def check_filters(filters: Optional[Iterable[Filter]]) -> List[Filter]:
    out = []
    for f in filters or ():
        field, op, _value = f
        if op not in OPS:
            raise ValidationError("invalid_filter", f"Operador não suportado: {op!r}")
        out.append(f)
    return out


def _matches(data: Dict[str, Any], filters: Sequence[Filter]) -> bool:
    for field, op, value in filters:
        if field not in data:
            return False
        cur = data[field]
        try:
            if op == "==" and not cur == value:
                return False
            if op == "in" and cur not in value:
                return False
            if op == ">=" and not cur >= value:
                return False
            if op == "<=" and not cur <= value:
                return False
            if op == "<" and not cur < value:
                return False
            if op == ">" and not cur > value:
                return False
        except TypeError:
            # tipos diferentes não se comparam (Firestore também não casa)
            return False
    return True


class Store:
    """Interface comum dos backends."""

    backend = "abstract"

    def get(self, doc_path: str) -> Optional[Document]:
        raise NotImplementedError

    def query(self, col_path: str, filters: Optional[Iterable[Filter]] = None) -> List[Document]:
        raise NotImplementedError

    def list(self, col_path: str) -> List[Document]:
        return self.query(col_path)

    def watch(
        self,
        col_path: str,
        filters: Optional[Iterable[Filter]],
        callback: Callable[[List[Document]], None],
    ) -> Subscription:
        raise NotImplementedError

    def commit(self, ops: Sequence[WriteOp]) -> None:
        raise NotImplementedError

    def new_id(self, col_path: str) -> str:
        return uuid.uuid4().hex[:20]

    def server_timestamp(self) -> Any:
        return datetime.now(timezone.utc)

    # ---- atalhos ----
    def set(self, doc_path: str, data: Dict[str, Any], merge: bool = False) -> None:
        if merge and self.get(doc_path) is not None:
            self.update(doc_path, data)
            return
        self.commit([("set", doc_path, data)])

    def create(self, doc_path: str, data: Dict[str, Any]) -> None:
        self.commit([("create", doc_path, data)])

    def update(self, doc_path: str, data: Dict[str, Any]) -> None:
        self.commit([("update", doc_path, data)])

    def delete(self, doc_path: str) -> None:
        self.commit([("delete", doc_path, None)])

    def add(self, col_path: str, data: Dict[str, Any]) -> str:
        doc_id = self.new_id(col_path)
        self.set(f"{col_path}/{doc_id}", data)
        return doc_id


class MemoryStore(Store):
    backend = "memory"

    def __init__(self):
        self._docs: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.RLock()
        self._watchers: Dict[int, Tuple[str, List[Filter], Callable[[List[Document]], None]]] = {}
        self._watch_seq = itertools.count(1)

    # ---- leitura ----
    def get(self, doc_path: str) -> Optional[Document]:
        parent_path(doc_path)
        with self._lock:
            data = self._docs.get(doc_path)
            if data is None:
                return None
            return Document(doc_id_of(doc_path), copy.deepcopy(data))

    def _query_locked(self, col_path: str, filters: Sequence[Filter]) -> List[Document]:
        out = []
        for path in sorted(self._docs):
            if path.rsplit("/", 1)[0] != col_path:
                continue
            data = self._docs[path]
            if _matches(data, filters):
                out.append(Document(doc_id_of(path), copy.deepcopy(data)))
        return out

    def query(self, col_path: str, filters: Optional[Iterable[Filter]] = None) -> List[Document]:
        flt = check_filters(filters)
        with self._lock:
            return self._query_locked(col_path.strip("/"), flt)

    # ---- escuta ----
    def watch(self, col_path, filters, callback) -> Subscription:
        flt = check_filters(filters)
        col_path = col_path.strip("/")
        with self._lock:
            wid = next(self._watch_seq)
            self._watchers[wid] = (col_path, flt, callback)
            first = self._query_locked(col_path, flt)

        def _cancel():
            with self._lock:
                self._watchers.pop(wid, None)

        sub = Subscription(_cancel, label=f"{col_path}#{wid}")
        # snapshot inicial, igual ao onSnapshot
        callback(first)
        return sub

    @property
    def active_watchers(self) -> int:
        with self._lock:
            return len(self._watchers)

    # ---- escrita ----
    def commit(self, ops: Sequence[WriteOp]) -> None:
        touched = set()
        with self._lock:
            staged = dict(self._docs)
            for op, path, data in ops:
                parent = parent_path(path)
                if op == "create":
                    if path in staged:
                        raise DocumentExistsError(message=f"Documento já existe: {path}")
                    staged[path] = copy.deepcopy(data or {})
                elif op == "set":
                    staged[path] = copy.deepcopy(data or {})
                elif op == "update":
                    if path not in staged:
                        raise DocumentMissingError(message=f"Documento não encontrado: {path}")
                    merged = dict(staged[path])
                    merged.update(copy.deepcopy(data or {}))
                    staged[path] = merged
                elif op == "delete":
                    staged.pop(path, None)
                else:
                    raise ValidationError("invalid_write", f"Operação desconhecida: {op!r}")
                touched.add(parent)
            self._docs = staged
            pending = [
                (cb, self._query_locked(col, flt))
                for col, flt, cb in list(self._watchers.values())
                if col in touched
            ]
        # callbacks fora do lock: podem ler/escrever no store
        for cb, docs in pending:
            try:
                cb(docs)
            except Exception:
                logging.exception("[store] callback de escuta falhou")
