# services/errors.py
# Taxonomia de erros da agenda. O app.py converte qualquer AgendaError em
# {"ok": false, "error": code, "message": humano} com o status HTTP da classe.

from typing import Any, Dict, Optional


class AgendaError(Exception):
    status = 400
    code = "agenda_error"
    message = "No se pudo completar la operación."

    def __init__(self, code: Optional[str] = None, message: Optional[str] = None, **extra: Any):
        self.code = code or self.code
        self.message = message or self.message
        self.extra = extra
        super().__init__(self.code)

    def payload(self) -> Dict[str, Any]:
        out = {"ok": False, "error": self.code, "message": self.message}
        out.update(self.extra)
        return out


class ValidationError(AgendaError, ValueError):
    status = 400
    code = "invalid_request"
    message = "Datos inválidos."


class AuthError(AgendaError):
    status = 401
    code = "unauthorized"
    message = "PIN incorrecto."


class NotFoundError(AgendaError):
    status = 404
    code = "not_found"
    message = "No encontrado."


class SlotConflictError(AgendaError):
    """O horário foi reservado entre a leitura e a escrita."""
    status = 409
    code = "slot_taken"
    message = "Este horario acaba de ser reservado por otro paciente. Por favor elige otro."


class SlotUnavailableError(AgendaError):
    status = 409
    code = "slot_unavailable"
    message = "Este horario no está disponible. Por favor elige otro."


class StoreError(AgendaError):
    """Falha de transporte/permissão do banco. Sem retry automático."""
    status = 503
    code = "store_unavailable"
    message = "Error de conexión. Inténtalo de nuevo."


class DocumentExistsError(StoreError):
    status = 409
    code = "already_exists"
    message = "El registro ya existe."


class DocumentMissingError(StoreError):
    status = 404
    code = "not_found"
    message = "No encontrado."
