# app.py: Agenda de citas (API), fachada enxuta
# Mantém: CORS em /api/*, /health, blueprints da agenda, handlers de erro JSON.
# Backend do banco: services/db.get_store() (Firestore ou memória) ou injetado
# via create_app(store=...) nos testes.

import os, logging
from flask import Flask, jsonify
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

from services.errors import AgendaError

logging.basicConfig(level=logging.INFO)

DEFAULT_ALLOWED_ORIGINS = [
    "http://localhost:5000",
    "http://127.0.0.1:5000",
]


def _allowed_origins():
    raw = (os.getenv("ALLOWED_ORIGINS") or "").strip()
    if not raw:
        return DEFAULT_ALLOWED_ORIGINS
    return [o.strip() for o in raw.split(",") if o.strip()]


def create_app(store=None) -> Flask:
    app = Flask(__name__)
    app.config["SECRET_KEY"] = os.getenv("SECRET_KEY") or "dev-agenda-secret"
    app.config["AGENDA_STORE"] = store
    if not os.getenv("SECRET_KEY"):
        logging.warning("[boot] SECRET_KEY ausente; usando chave de desenvolvimento")

    # =====================================
    # CORS fino: só /api/*
    # =====================================
    CORS(app, resources={
        r"/api/*": {
            "origins": _allowed_origins(),
            "supports_credentials": True,
            "allow_headers": ["Content-Type", "X-Requested-With", "X-Agenda-Pin", "X-Master-Pin"],
            "methods": ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        },
    })

    # =====================================
    # Erros → JSON {"ok": false, "error", "message"}
    # =====================================
    @app.errorhandler(AgendaError)
    def _agenda_error(e):
        return jsonify(e.payload()), e.status

    @app.errorhandler(HTTPException)
    def _http_error(e):
        return jsonify({"ok": False, "error": (e.name or "http_error").lower().replace(" ", "_"),
                        "message": e.description}), e.code

    @app.errorhandler(Exception)
    def _unexpected(e):
        logging.exception("[app] erro inesperado")
        return jsonify({"ok": False, "error": "internal_error",
                        "message": "Ocurrió un error. Inténtalo de nuevo."}), 500

    @app.route("/health", methods=["GET"])
    def health():
        return jsonify({"ok": True}), 200

    from routes import register_blueprints
    register_blueprints(app)
    logging.info("[boot] agenda app pronto ✓")
    return app


app = create_app()
