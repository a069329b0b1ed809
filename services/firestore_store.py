# services/firestore_store.py
# Backend Firestore (firebase-admin) do contrato de services/store.py.
# Erros do google-api-core viram erros da agenda (services/errors.py).

from __future__ import annotations
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence
import logging

from firebase_admin import firestore as fb_firestore
from google.api_core import exceptions as gexc
from google.cloud.firestore_v1.base_query import FieldFilter

from services.errors import DocumentExistsError, DocumentMissingError, StoreError, ValidationError
from services.store import Document, Filter, Store, Subscription, WriteOp, check_filters, parent_path

log = logging.getLogger(__name__)


def _translate(e: Exception, where: str) -> Exception:
    if isinstance(e, gexc.AlreadyExists):
        return DocumentExistsError(message=str(e))
    if isinstance(e, gexc.NotFound):
        return DocumentMissingError(message=str(e))
    log.error("[firestore_store] %s falhou: %s", where, e)
    return StoreError(detail=str(e))


class FirestoreStore(Store):
    backend = "firestore"

    def __init__(self, client):
        self._db = client

    def _query(self, col_path: str, filters: Optional[Iterable[Filter]]):
        q = self._db.collection(col_path)
        for field, op, value in check_filters(filters):
            q = q.where(filter=FieldFilter(field, op, value))
        return q

    def get(self, doc_path: str) -> Optional[Document]:
        parent_path(doc_path)
        try:
            snap = self._db.document(doc_path).get()
        except gexc.GoogleAPICallError as e:
            raise _translate(e, f"get {doc_path}") from e
        if not getattr(snap, "exists", False):
            return None
        return Document(snap.id, snap.to_dict() or {})

    def query(self, col_path: str, filters: Optional[Iterable[Filter]] = None) -> List[Document]:
        try:
            return [Document(d.id, d.to_dict() or {}) for d in self._query(col_path, filters).stream()]
        except gexc.GoogleAPICallError as e:
            raise _translate(e, f"query {col_path}") from e

    def watch(self, col_path: str, filters, callback: Callable[[List[Document]], None]) -> Subscription:
        def _on_snapshot(docs, changes, read_time):
            callback([Document(d.id, d.to_dict() or {}) for d in docs])

        try:
            watch = self._query(col_path, filters).on_snapshot(_on_snapshot)
        except gexc.GoogleAPICallError as e:
            raise _translate(e, f"watch {col_path}") from e
        return Subscription(watch.unsubscribe, label=col_path)

    def commit(self, ops: Sequence[WriteOp]) -> None:
        batch = self._db.batch()
        for op, path, data in ops:
            ref = self._db.document(path)
            if op == "create":
                batch.create(ref, data or {})
            elif op == "set":
                batch.set(ref, data or {})
            elif op == "update":
                batch.update(ref, data or {})
            elif op == "delete":
                batch.delete(ref)
            else:
                raise ValidationError("invalid_write", f"Operação desconhecida: {op!r}")
        try:
            batch.commit()
        except gexc.GoogleAPICallError as e:
            raise _translate(e, "commit") from e

    def new_id(self, col_path: str) -> str:
        return self._db.collection(col_path).document().id

    def server_timestamp(self) -> Any:
        return fb_firestore.SERVER_TIMESTAMP
