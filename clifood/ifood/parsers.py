# -*- coding: utf-8 -*-
"""
Parsers for iFood feed payloads.

The home screen, category pages and search results all share the card shape
    sections[].cards[].data.contents[]
where each content entry carries an "action" token such as
    merchant?identifier=<uuid>&slug=<city>/<name>
    page?identifier=<category id>&title=<title>
Extraction is best effort: anything that doesn't decode is skipped.
"""
import re
from typing import Iterable, Iterator, List, Optional, Tuple
from urllib.parse import parse_qs

from clifood.utils import normalize_text
from clifood.ifood.types import CategoryPage, Restaurant, restaurant_url

MERCHANT_PREFIX = "merchant?"
PAGE_PREFIX = "page?"

FOOD_TYPE_RE = re.compile(r"Tipo de comida:\s*([^,]+)", re.IGNORECASE)


def _query_params(query: str) -> dict:
    try:
        parsed = parse_qs(query, keep_blank_values=True)
    except ValueError:
        return {}
    return {k: v[0] for k, v in parsed.items() if v}


def parse_merchant_action(action: str) -> Optional[dict]:
    """merchant?identifier=ID&slug=SLUG -> {"id": ID or None, "slug": SLUG or ""}"""
    if not isinstance(action, str) or not action.startswith(MERCHANT_PREFIX):
        return None
    params = _query_params(action[len(MERCHANT_PREFIX):])
    return {"id": params.get("identifier"), "slug": params.get("slug", "")}


def parse_category_action(action: str) -> Optional[str]:
    if not isinstance(action, str) or not action.startswith(PAGE_PREFIX):
        return None
    return _query_params(action[len(PAGE_PREFIX):]).get("identifier")


def extract_category_from_entry(entry) -> str:
    """
    Category of a feed entry: mainCategory when present, otherwise scraped
    from the accessibility text ("..., Tipo de comida: Japonesa, 1.2 km").
    """
    if not isinstance(entry, dict):
        return ""
    main = entry.get("mainCategory")
    if main:
        return str(main)
    desc = entry.get("contentDescription") or ""
    m = FOOD_TYPE_RE.search(str(desc))
    return m.group(1).strip() if m else ""


def iter_feed_contents(payload) -> Iterator[dict]:
    """Yield every content entry of every card of every section."""
    if not isinstance(payload, dict):
        return
    for section in payload.get("sections") or []:
        if not isinstance(section, dict):
            continue
        for card in section.get("cards") or []:
            if not isinstance(card, dict):
                continue
            data = card.get("data") or {}
            for entry in data.get("contents") or []:
                if isinstance(entry, dict):
                    yield entry


def _merchant_from_entry(entry: dict, name: str) -> Optional[Restaurant]:
    parsed = parse_merchant_action(entry.get("action"))
    if not parsed or not parsed["id"] or not name:
        return None
    return Restaurant(
        id=parsed["id"],
        slug=parsed["slug"],
        name=name,
        url=restaurant_url(parsed["slug"], parsed["id"]),
        info=extract_category_from_entry(entry),
    )


def extract_home_data(payload) -> Tuple[List[CategoryPage], List[Restaurant]]:
    """
    Split a home feed into category pages (in order of appearance) and
    merchants (deduplicated by id, first occurrence wins).
    """
    categories = []
    merchants = []
    seen = set()

    for entry in iter_feed_contents(payload):
        action = entry.get("action", "")
        if not isinstance(action, str):
            continue

        if action.startswith(PAGE_PREFIX) and entry.get("title"):
            category_id = parse_category_action(action)
            if category_id:
                categories.append(CategoryPage(id=category_id, title=str(entry["title"])))

        if action.startswith(MERCHANT_PREFIX) and entry.get("name"):
            merchant = _merchant_from_entry(entry, str(entry["name"]))
            if merchant is None or merchant.id in seen:
                continue
            merchants.append(merchant)
            seen.add(merchant.id)

    return categories, merchants


def extract_merchants_from_page(payload) -> List[Restaurant]:
    merchants = []
    seen = set()
    for entry in iter_feed_contents(payload):
        action = entry.get("action", "")
        if not isinstance(action, str) or not action.startswith(MERCHANT_PREFIX):
            continue
        name = entry.get("name") or entry.get("title") or ""
        merchant = _merchant_from_entry(entry, str(name))
        if merchant is None or merchant.id in seen:
            continue
        merchants.append(merchant)
        seen.add(merchant.id)
    return merchants


def matches_exclude_term(text: str, exclude_terms: Iterable[str]) -> bool:
    normalized = normalize_text(text or "")
    return any(term and term in normalized for term in (normalize_text(t) for t in exclude_terms))


def should_exclude_restaurant(restaurant: Restaurant, exclude_terms: Iterable[str]) -> bool:
    """True when an exclude term appears in the restaurant's name or category."""
    terms = [normalize_text(t) for t in exclude_terms]
    terms = [t for t in terms if t]
    name = normalize_text(restaurant.name or "")
    info = normalize_text(restaurant.info or "")
    return any(term in name or term in info for term in terms)
