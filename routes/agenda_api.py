# routes/agenda_api.py
# Painel do profissional: /api/agenda/<pro_id>/...
#   login/logout, day, today, month, blocks, blocks/day,
#   appointments/<id> (PATCH + cancel), settings, services, reminders
# Protegidas por PIN (sessão ou header X-Agenda-Pin), exceto login.

import logging
from flask import Blueprint, request, jsonify

from routes import json_body
from domain.reminders import cancellation_text
from services import agenda_repo
from services.auth import (
    current_store, login_professional, logout_professional, pro_pin_required,
)
from services.booking import cancel_appointment, update_appointment
from services.phone_utils import whatsapp_link
from services.professionals import update_services

agenda_api_bp = Blueprint("agenda_api_bp", __name__, url_prefix="/api/agenda/<pro_id>")

log = logging.getLogger(__name__)


# ---------------------------------------------------------------------
# Sessão
# ---------------------------------------------------------------------

@agenda_api_bp.route("/login", methods=["POST"])
def login(pro_id):
    store = current_store()
    data = json_body(required=False)
    login_professional(store, pro_id, str(data.get("pin") or ""))
    pro = agenda_repo.load_professional(store, pro_id)
    return jsonify({"ok": True, "professional": pro.public_json()}), 200


@agenda_api_bp.route("/logout", methods=["POST"])
def logout(pro_id):
    logout_professional()
    return jsonify({"ok": True}), 200


# ---------------------------------------------------------------------
# Leitura
# ---------------------------------------------------------------------

@agenda_api_bp.route("/day", methods=["GET"])
@pro_pin_required
def day(pro_id):
    date_str = request.args.get("date") or agenda_repo.today_str()
    return jsonify({"ok": True, **agenda_repo.day_view(current_store(), pro_id, date_str)}), 200


@agenda_api_bp.route("/today", methods=["GET"])
@pro_pin_required
def today(pro_id):
    store = current_store()
    agenda_repo.load_professional(store, pro_id)
    date_str = agenda_repo.today_str()
    appts = agenda_repo.confirmed_sorted(agenda_repo.list_appointments_for(store, pro_id, date_str))
    return jsonify({"ok": True, "date": date_str, "appointments": [a.to_json() for a in appts]}), 200


@agenda_api_bp.route("/month", methods=["GET"])
@pro_pin_required
def month(pro_id):
    month_str = request.args.get("month") or agenda_repo.today_str()[:7]
    return jsonify({"ok": True, **agenda_repo.month_view(current_store(), pro_id, month_str)}), 200


@agenda_api_bp.route("/reminders", methods=["GET"])
@pro_pin_required
def reminders(pro_id):
    items = agenda_repo.list_reminders(current_store(), pro_id)
    return jsonify({"ok": True, "count": len(items), "reminders": items}), 200


# ---------------------------------------------------------------------
# Bloqueios
# ---------------------------------------------------------------------

@agenda_api_bp.route("/blocks", methods=["POST"])
@pro_pin_required
def block(pro_id):
    data = json_body()
    b = agenda_repo.block_slot(current_store(), pro_id, str(data.get("date") or ""), str(data.get("time") or ""))
    return jsonify({"ok": True, "block": {"id": b.id, "date": b.date, "time": b.time}}), 200


@agenda_api_bp.route("/blocks", methods=["DELETE"])
@pro_pin_required
def unblock(pro_id):
    data = json_body(required=False)
    date_str = str(data.get("date") or request.args.get("date") or "")
    time = str(data.get("time") or request.args.get("time") or "")
    removed = agenda_repo.unblock_slot(current_store(), pro_id, date_str, time)
    return jsonify({"ok": True, "removed": removed}), 200


@agenda_api_bp.route("/blocks/day", methods=["POST"])
@pro_pin_required
def block_day(pro_id):
    data = json_body()
    b = agenda_repo.block_day(current_store(), pro_id, str(data.get("date") or ""))
    return jsonify({"ok": True, "block": {"id": b.id, "date": b.date, "time": b.time}}), 200


@agenda_api_bp.route("/blocks/day", methods=["DELETE"])
@pro_pin_required
def clear_day(pro_id):
    removed = agenda_repo.clear_day_blocks(current_store(), pro_id, request.args.get("date", ""))
    return jsonify({"ok": True, "removed": removed}), 200


# ---------------------------------------------------------------------
# Citas
# ---------------------------------------------------------------------

@agenda_api_bp.route("/appointments/<appt_id>", methods=["PATCH"])
@pro_pin_required
def patch_appointment(pro_id, appt_id):
    appt = update_appointment(current_store(), pro_id, appt_id, json_body())
    return jsonify({"ok": True, "appointment": appt.to_json()}), 200


@agenda_api_bp.route("/appointments/<appt_id>/cancel", methods=["POST"])
@pro_pin_required
def cancel(pro_id, appt_id):
    data = json_body(required=False)
    appt = cancel_appointment(current_store(), pro_id, appt_id, str(data.get("reason") or ""))
    return jsonify({
        "ok": True,
        "appointment": appt.to_json(),
        "whatsappUrl": whatsapp_link(appt.patient_phone, cancellation_text(appt)),
    }), 200


# ---------------------------------------------------------------------
# Configuração
# ---------------------------------------------------------------------

@agenda_api_bp.route("/settings", methods=["GET"])
@pro_pin_required
def get_settings(pro_id):
    pro = agenda_repo.load_professional(current_store(), pro_id)
    return jsonify({"ok": True, "settings": pro.settings.to_settings(),
                    "services": [s.to_doc() for s in pro.services]}), 200


@agenda_api_bp.route("/settings", methods=["POST"])
@pro_pin_required
def post_settings(pro_id):
    cfg = agenda_repo.save_settings(current_store(), pro_id, json_body())
    return jsonify({"ok": True, "settings": cfg.to_settings()}), 200


@agenda_api_bp.route("/services", methods=["PUT"])
@pro_pin_required
def put_services(pro_id):
    data = json_body()
    services = update_services(current_store(), pro_id, data.get("services"))
    return jsonify({"ok": True, "services": [s.to_doc() for s in services]}), 200
