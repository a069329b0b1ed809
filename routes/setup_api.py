# routes/setup_api.py
# Tela de setup (PIN mestre): /api/setup/...
# Cria/edita/remove profissionais e troca o PIN mestre.

from flask import Blueprint, jsonify

from routes import json_body
from services.auth import current_store, login_master, logout_master, master_pin_required
from services.professionals import (
    change_master_pin, create_professional, delete_professional,
    list_professionals, update_professional,
)

setup_api_bp = Blueprint("setup_api_bp", __name__, url_prefix="/api/setup")


@setup_api_bp.route("/login", methods=["POST"])
def login():
    data = json_body()
    login_master(current_store(), str(data.get("pin") or ""))
    return jsonify({"ok": True}), 200


@setup_api_bp.route("/logout", methods=["POST"])
def logout():
    logout_master()
    return jsonify({"ok": True}), 200


@setup_api_bp.route("/professionals", methods=["GET"])
@master_pin_required
def list_pros():
    pros = list_professionals(current_store())
    return jsonify({"ok": True, "professionals": [p.public_json() for p in pros]}), 200


@setup_api_bp.route("/professionals", methods=["POST"])
@master_pin_required
def create_pro():
    pro = create_professional(current_store(), json_body())
    return jsonify({"ok": True, "professional": pro.public_json()}), 201


@setup_api_bp.route("/professionals/<pro_id>", methods=["PATCH"])
@master_pin_required
def update_pro(pro_id):
    pro = update_professional(current_store(), pro_id, json_body())
    return jsonify({"ok": True, "professional": pro.public_json()}), 200


@setup_api_bp.route("/professionals/<pro_id>", methods=["DELETE"])
@master_pin_required
def delete_pro(pro_id):
    removed = delete_professional(current_store(), pro_id)
    return jsonify({"ok": True, "removed": removed}), 200


@setup_api_bp.route("/master-pin", methods=["POST"])
@master_pin_required
def master_pin():
    data = json_body()
    change_master_pin(current_store(), str(data.get("pin") or ""), str(data.get("confirm") or ""))
    return jsonify({"ok": True}), 200
