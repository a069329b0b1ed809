# routes/sse_bp.py
# Agenda ao vivo via SSE: /api/sse/agenda/<pro_id>?date=YYYY-MM-DD
# Cada mudança no store (citas/bloqueios do dia ou do mês) vira um evento
# "agenda" com a grade do dia + indicadores do mês. As escutas são
# canceladas quando o stream fecha.

import os, json, time, queue
import logging
from flask import Blueprint, Response, request

from services import agenda_repo
from services.agenda_watch import AgendaViewState
from services.auth import current_store, pro_pin_required

sse_bp = Blueprint("sse_bp", __name__, url_prefix="/api/sse")

log = logging.getLogger(__name__)


def _heartbeat_sec() -> float:
    try:
        return max(1.0, float(os.getenv("SSE_HEARTBEAT_SEC", "15")))
    except ValueError:
        return 15.0


# === util: headers do stream
def _sse_headers():
    return {
        "Content-Type": "text/event-stream",
        "Cache-Control": "no-cache, no-store, must-revalidate",
        "Pragma": "no-cache",
        "Connection": "keep-alive",
        "X-Accel-Buffering": "no",  # evita buffering em proxies
    }


def _drain(q) -> None:
    while True:
        try:
            q.get_nowait()
        except queue.Empty:
            return


def _event(view: AgendaViewState) -> str:
    payload = view.day_payload()
    payload["appointmentDays"] = view.appointment_days
    payload["blockedDays"] = view.blocked_days
    return f"event: agenda\ndata: {json.dumps(payload, default=str)}\n\n"


@sse_bp.route("/agenda/<pro_id>", methods=["GET"])
@pro_pin_required
def agenda_stream(pro_id):
    store = current_store()
    date_str = agenda_repo.require_date(request.args.get("date") or agenda_repo.today_str())
    heartbeat = _heartbeat_sec()

    changes: "queue.Queue[bool]" = queue.Queue()
    view = AgendaViewState(store, pro_id, on_change=lambda _v: changes.put(True))
    view.select_date(date_str)
    log.info("[sse] stream aberto pro=%s date=%s", pro_id, date_str)

    def gen():
        last_ping = time.time()
        try:
            # hello inicial destrava proxies
            yield "event: hello\ndata: {}\n\n"
            _drain(changes)
            yield _event(view)
            while True:
                try:
                    changes.get(timeout=1.0)
                except queue.Empty:
                    if time.time() - last_ping >= heartbeat:
                        last_ping = time.time()
                        yield ": keep-alive\n\n"
                    continue
                # junta rajadas de mudanças num evento só
                _drain(changes)
                yield _event(view)
        finally:
            view.close()
            log.info("[sse] stream fechado pro=%s", pro_id)

    resp = Response(gen(), headers=_sse_headers())
    # gerador que nunca iniciou não roda o finally
    resp.call_on_close(view.close)
    return resp
