# domain/validators.py
# Validações síncronas do fluxo de reserva e do setup (antes de qualquer escrita).

import re
import unicodedata
from datetime import date

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_SLUG_RE = re.compile(r"^[a-z0-9\-]+$")
_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

PHONE_DIGITS = 9
PIN_MIN = 4
PIN_MAX = 6
SLUG_MIN = 3


def clean_rut(rut: str) -> str:
    return re.sub(r"[.\-\s]", "", rut or "").upper()


def rut_check_digit(body: str) -> str:
    """Dígito verificador (módulo 11) do RUT chileno."""
    total = 0
    multiplier = 2
    for ch in reversed(body):
        total += int(ch) * multiplier
        multiplier = 2 if multiplier == 7 else multiplier + 1
    remainder = 11 - (total % 11)
    if remainder == 11:
        return "0"
    if remainder == 10:
        return "K"
    return str(remainder)


def validate_rut(rut: str) -> bool:
    rut = clean_rut(rut)
    if len(rut) < 2:
        return False
    body, dv = rut[:-1], rut[-1]
    if not body.isdigit():
        return False
    return rut_check_digit(body) == dv


def validate_email(email: str) -> bool:
    # campo opcional
    if not email:
        return True
    return bool(_EMAIL_RE.match(email))


def validate_phone(phone: str) -> bool:
    return bool(phone) and phone.isdigit() and len(phone) == PHONE_DIGITS


def validate_pin(pin: str) -> bool:
    return bool(pin) and pin.isdigit() and PIN_MIN <= len(pin) <= PIN_MAX


def validate_slug(slug: str) -> bool:
    return bool(slug) and len(slug) >= SLUG_MIN and bool(_SLUG_RE.match(slug))


def validate_date(date_str: str) -> bool:
    if not isinstance(date_str, str) or not _DATE_RE.match(date_str):
        return False
    y, m, d = (int(x) for x in date_str.split("-"))
    try:
        date(y, m, d)
    except ValueError:
        return False
    return True


def slugify(name: str) -> str:
    """'Dra. María Pérez' -> 'dra-maria-perez'"""
    t = unicodedata.normalize("NFD", (name or "").lower())
    t = "".join(ch for ch in t if not unicodedata.combining(ch))
    t = re.sub(r"[^a-z0-9]+", "-", t)
    return t.strip("-")
