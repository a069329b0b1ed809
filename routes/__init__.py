# routes/__init__.py
import logging

from flask import request

from services.errors import ValidationError


def json_body(required: bool = True) -> dict:
    """
    Corpo JSON da requisição como dict. Lista/escalar/JSON quebrado → 400
    invalid_json. Com required=False, corpo ausente vale {}.
    """
    data = request.get_json(silent=True)
    if data is None and not required and not request.get_data():
        return {}
    if not isinstance(data, dict):
        raise ValidationError("invalid_json", "Cuerpo JSON inválido.")
    return data


def register_blueprints(app):
    """
    Registra todos os blueprints da agenda.
    O SSE é opcional: se falhar o import, o resto da API sobe igual.
    """
    from .health import health_bp
    app.register_blueprint(health_bp)

    from .booking_api import booking_api_bp
    app.register_blueprint(booking_api_bp)

    from .agenda_api import agenda_api_bp
    app.register_blueprint(agenda_api_bp)

    from .setup_api import setup_api_bp
    app.register_blueprint(setup_api_bp)

    try:
        from .sse_bp import sse_bp
        app.register_blueprint(sse_bp)
    except ImportError as e:
        logging.warning("[routes] sse_bp não registrado: %s", e)
