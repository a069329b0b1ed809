# routes/booking_api.py
# Rotas públicas do paciente: /api/booking/<pro_id>, /availability, /appointments
# Sem auth. Erros da agenda sobem para o errorhandler do app.py.

import logging
from flask import Blueprint, request, jsonify

from routes import json_body
from domain.availability import booking_view
from domain.reminders import booking_text
from services import agenda_repo
from services.auth import current_store
from services.booking import book_appointment
from services.errors import SlotConflictError, SlotUnavailableError
from services.phone_utils import whatsapp_link

booking_api_bp = Blueprint("booking_api_bp", __name__, url_prefix="/api/booking")

log = logging.getLogger(__name__)


def _availability(store, pro, date_str):
    blocks, appts = agenda_repo.load_day(store, pro.id, date_str)
    return booking_view(pro.settings, blocks, appts)


@booking_api_bp.route("/<pro_id>", methods=["GET"])
def public_profile(pro_id):
    pro = agenda_repo.load_professional(current_store(), pro_id)
    return jsonify({"ok": True, "professional": pro.public_json(), "today": agenda_repo.today_str()}), 200


@booking_api_bp.route("/<pro_id>/availability", methods=["GET"])
def availability(pro_id):
    store = current_store()
    pro = agenda_repo.load_professional(store, pro_id)
    date_str = agenda_repo.require_date(request.args.get("date", ""))
    return jsonify({"ok": True, "date": date_str, "slots": _availability(store, pro, date_str)}), 200


@booking_api_bp.route("/<pro_id>/appointments", methods=["POST"])
def create_appointment(pro_id):
    store = current_store()
    data = json_body()
    try:
        appt = book_appointment(store, pro_id, data)
    except (SlotConflictError, SlotUnavailableError) as e:
        # devolve a grade atualizada para o paciente escolher outro horário
        pro = agenda_repo.load_professional(store, pro_id)
        body = e.payload()
        body["slots"] = _availability(store, pro, e.extra.get("date") or data.get("date"))
        return jsonify(body), e.status

    text = booking_text(appt.service_name, appt.date, appt.time)
    return jsonify({
        "ok": True,
        "appointment": appt.to_json(),
        "whatsappUrl": whatsapp_link(appt.patient_phone, text),
    }), 201
