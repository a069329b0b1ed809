"""Shared test fixtures."""
import pytest

from domain.models import Professional, Service
from domain.schedule import ScheduleConfig
from services.store import MemoryStore

PRO_ID = "ana-perez"
PIN = "1234"
# datas bem no futuro: nunca viram "data passada"
DATE = "2099-06-01"
OTHER_DATE = "2099-06-02"

HOURS = ScheduleConfig(
    start_time="09:00",
    end_time="17:00",
    lunch_start="13:00",
    lunch_end="14:00",
    slot_interval=45,
)


@pytest.fixture(autouse=True)
def setup_env(monkeypatch):
    """Force the in-memory backend and a fixed country code."""
    monkeypatch.setenv("STORE_BACKEND", "memory")
    monkeypatch.setenv("PHONE_COUNTRY_CODE", "56")
    monkeypatch.delenv("DEFAULT_MASTER_PIN", raising=False)
    yield


@pytest.fixture
def store() -> MemoryStore:
    """Memory store seeded with one professional."""
    s = MemoryStore()
    pro = Professional(
        id=PRO_ID,
        name="Ana Pérez",
        phone="912345678",
        email="ana@example.com",
        pin=PIN,
        settings=HOURS,
        services=[Service("Kinesiología", 45), Service("Evaluación", 30)],
    )
    s.set(f"professionals/{PRO_ID}", pro.to_doc())
    return s


@pytest.fixture
def booking_data():
    """Valid patient booking payload."""
    def _create(**overrides):
        data = {
            "service": "Kinesiología",
            "date": DATE,
            "time": "10:30",
            "name": "Juan Soto",
            "phone": "987654321",
            "email": "juan@example.com",
            "rut": "12345678-5",
            "notes": "",
        }
        data.update(overrides)
        return data
    return _create


@pytest.fixture
def app(store):
    from app import create_app
    flask_app = create_app(store=store)
    flask_app.config["TESTING"] = True
    return flask_app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def pin_headers():
    return {"X-Agenda-Pin": PIN}
