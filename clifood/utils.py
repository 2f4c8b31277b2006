#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Small text helpers shared by the iFood client and the CLI.
"""
import os
import re
import unicodedata
from dataclasses import dataclass
from urllib.parse import urlparse

ITEM_SPEC_RE = re.compile(r"^(.*?)(?:\s*[xX*]\s*(\d+)|\s*[:=]\s*(\d+))?$")


@dataclass(frozen=True)
class ItemSpec:
    name: str
    qty: int = 1

    def to_dict(self):
        return {"name": self.name, "qty": self.qty}


def normalize_text(value: str) -> str:
    """Lowercase, trim and drop combining accents ("Açaí" -> "acai")."""
    decomposed = unicodedata.normalize("NFD", (value or "").lower())
    stripped = "".join(ch for ch in decomposed if not "\u0300" <= ch <= "\u036f")
    return stripped.strip()


def parse_item_spec(text: str) -> ItemSpec:
    """
    Parse a free-text item spec into name + quantity.
    Accepts "Pizza:2", "Pizza=2", "Combo x 3" and "Combo*3"; quantity defaults to 1.
    """
    trimmed = (text or "").strip()
    m = ITEM_SPEC_RE.match(trimmed)
    if not m:
        return ItemSpec(name=trimmed, qty=1)
    name = m.group(1).strip()
    raw = m.group(2) or m.group(3)
    qty = max(1, int(raw)) if raw else 1
    return ItemSpec(name=name, qty=qty)


def parse_number(value, fallback: int) -> int:
    if isinstance(value, bool):
        return fallback
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        m = re.match(r"^\s*([+-]?\d+)", value)
        return int(m.group(1)) if m else fallback
    return fallback


def is_url(value: str) -> bool:
    try:
        parsed = urlparse(value)
    except (TypeError, ValueError):
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def ensure_dir(path):
    os.makedirs(path, exist_ok=True)


def ensure_parent_dir(path):
    parent = os.path.dirname(os.path.abspath(path))
    ensure_dir(parent)
