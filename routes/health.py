# routes/health.py
from flask import Blueprint, jsonify
import os, time

from services.auth import current_store

health_bp = Blueprint("health_bp", __name__, url_prefix="/api")

@health_bp.route("/health", methods=["GET"])
def health():
    # healthcheck simples, sem consultar o banco e sem exigir auth
    return jsonify({
        "ok": True,
        "service": "agenda-citas-api",
        "store": current_store().backend,
        "ts": int(time.time()),
        "env": os.getenv("RENDER_SERVICE_NAME", "local")
    }), 200
