# services/phone_utils.py
# Utilitário canônico de telefone (CL) + links wa.me.
# - digits_only: remove tudo que não é dígito
# - normalize_cl_mobile: aceita +56 9xxxx xxxx, 56..., 9xxxxxxxx → 9 dígitos nacionais
# - whatsapp_link: https://wa.me/<DDI><número>?text=...

from __future__ import annotations

import os
from urllib.parse import quote


def digits_only(s: str) -> str:
    return "".join(ch for ch in (s or "") if ch.isdigit())


def country_code() -> str:
    return digits_only(os.getenv("PHONE_COUNTRY_CODE") or "56") or "56"


def normalize_cl_mobile(raw: str) -> str:
    """Tira DDI (56 / 0056) quando presente; devolve só os dígitos nacionais."""
    d = digits_only(raw)
    cc = country_code()
    if d.startswith("00" + cc):
        d = d[2 + len(cc):]
    elif d.startswith(cc) and len(d) == len(cc) + 9:
        d = d[len(cc):]
    return d


def whatsapp_link(phone: str, text: str) -> str:
    d = normalize_cl_mobile(phone)
    if not d:
        return ""
    return f"https://wa.me/{country_code()}{d}?text={quote(text or '', safe='')}"
