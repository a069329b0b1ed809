# domain/models.py
# Registros da agenda como ficam no banco de documentos (chaves camelCase)
# e a forma tipada usada pelo domínio.

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from domain.schedule import ScheduleConfig

STATUS_CONFIRMED = "confirmed"
STATUS_CANCELLED = "cancelled"
STATUSES = (STATUS_CONFIRMED, STATUS_CANCELLED)

BLOCK_ALL = "all"


def block_id(date: str, time: str) -> str:
    """ID determinístico do bloqueio: {date}_{time} ou {date}_all."""
    return f"{date}_{time}"


def slot_key(date: str, time: str) -> str:
    return f"{date}_{time}"


@dataclass(frozen=True)
class Block:
    date: str
    time: str
    id: Optional[str] = None

    @property
    def whole_day(self) -> bool:
        return self.time == BLOCK_ALL

    @classmethod
    def from_doc(cls, doc_id: Optional[str], data: Dict[str, Any]) -> "Block":
        return cls(date=str(data.get("date") or ""), time=str(data.get("time") or ""), id=doc_id)


@dataclass
class Appointment:
    date: str
    time: str
    service_name: str = ""
    patient_name: str = ""
    patient_phone: str = ""
    patient_email: str = ""
    patient_rut: str = ""
    notes: str = ""
    status: str = STATUS_CONFIRMED
    id: Optional[str] = None
    created_at: Any = None
    cancelled_at: Any = None
    cancel_reason: str = ""

    @property
    def confirmed(self) -> bool:
        return self.status == STATUS_CONFIRMED

    @classmethod
    def from_doc(cls, doc_id: Optional[str], data: Dict[str, Any]) -> "Appointment":
        d = data or {}
        return cls(
            date=str(d.get("date") or ""),
            time=str(d.get("time") or ""),
            service_name=d.get("serviceName") or "",
            patient_name=d.get("patientName") or "",
            patient_phone=d.get("patientPhone") or "",
            patient_email=d.get("patientEmail") or "",
            patient_rut=d.get("patientRut") or "",
            notes=d.get("notes") or "",
            status=d.get("status") or STATUS_CONFIRMED,
            id=doc_id,
            created_at=d.get("createdAt"),
            cancelled_at=d.get("cancelledAt"),
            cancel_reason=d.get("cancelReason") or "",
        )

    def to_doc(self) -> Dict[str, Any]:
        out = {
            "serviceName": self.service_name,
            "date": self.date,
            "time": self.time,
            "patientName": self.patient_name,
            "patientPhone": self.patient_phone,
            "patientEmail": self.patient_email,
            "patientRut": self.patient_rut,
            "notes": self.notes,
            "status": self.status,
        }
        if self.created_at is not None:
            out["createdAt"] = self.created_at
        if self.cancelled_at is not None:
            out["cancelledAt"] = self.cancelled_at
            out["cancelReason"] = self.cancel_reason
        return out

    def to_json(self) -> Dict[str, Any]:
        out = self.to_doc()
        out["id"] = self.id
        # timestamps do Firestore não são serializáveis direto
        for k in ("createdAt", "cancelledAt"):
            v = out.get(k)
            if v is not None and hasattr(v, "isoformat"):
                out[k] = v.isoformat()
            elif v is not None:
                out[k] = str(v)
        return out


@dataclass(frozen=True)
class Service:
    name: str
    duration: int = 0

    @classmethod
    def from_doc(cls, data: Dict[str, Any]) -> "Service":
        try:
            dur = int(data.get("duration") or 0)
        except (TypeError, ValueError):
            dur = 0
        return cls(name=str(data.get("name") or "").strip(), duration=max(0, dur))

    def to_doc(self) -> Dict[str, Any]:
        return {"name": self.name, "duration": self.duration}


@dataclass
class Professional:
    id: str
    name: str = ""
    phone: str = ""
    email: str = ""
    pin: str = ""
    settings: ScheduleConfig = field(default_factory=ScheduleConfig)
    services: List[Service] = field(default_factory=list)
    created_at: Any = None

    @classmethod
    def from_doc(cls, doc_id: str, data: Dict[str, Any]) -> "Professional":
        d = data or {}
        services = [Service.from_doc(s) for s in (d.get("services") or []) if isinstance(s, dict)]
        return cls(
            id=doc_id,
            name=d.get("name") or "",
            phone=d.get("phone") or "",
            email=d.get("email") or "",
            pin=str(d.get("pin") or ""),
            settings=ScheduleConfig.from_settings(d.get("settings")),
            services=[s for s in services if s.name],
            created_at=d.get("createdAt"),
        )

    def to_doc(self) -> Dict[str, Any]:
        out = {
            "name": self.name,
            "phone": self.phone,
            "email": self.email,
            "slug": self.id,
            "pin": self.pin,
            "settings": self.settings.to_settings(),
            "services": [s.to_doc() for s in self.services],
        }
        if self.created_at is not None:
            out["createdAt"] = self.created_at
        return out

    def public_json(self) -> Dict[str, Any]:
        # nunca expõe o PIN
        return {
            "id": self.id,
            "name": self.name,
            "phone": self.phone,
            "email": self.email,
            "services": [s.to_doc() for s in self.services],
            "settings": self.settings.to_settings(),
        }

    def service_names(self) -> List[str]:
        return [s.name for s in self.services]
