# -*- coding: utf-8 -*-
"""
iFood marketplace API client.

Every call reuses the headers captured by clifood.ifood.session. Calls can run
either inside the browser tab (page.evaluate + fetch, so the anti-bot cookies
ride along) or straight from Python with requests.
"""
import json
from typing import Iterable, List, Optional, Sequence
from urllib.parse import urlencode

import requests
import structlog
from playwright.sync_api import Error as PlaywrightError, Page

from clifood.utils import ItemSpec, normalize_text
from clifood.ifood.errors import ItemNotFoundError, MissingCredentialsError, UpstreamError
from clifood.ifood.navigation import ensure_on_home
from clifood.ifood.parsers import (
    MERCHANT_PREFIX,
    extract_home_data,
    extract_merchants_from_page,
    iter_feed_contents,
    matches_exclude_term,
    parse_merchant_action,
    should_exclude_restaurant,
)
from clifood.ifood.session import merge_headers
from clifood.ifood.types import ApiContext, CartItem, MenuItem, Restaurant, SubItem, restaurant_url

logger = structlog.get_logger(__name__)

# ─── CONFIG ────────────────────────────────────────────────────────────────
API_BASE = "https://cw-marketplace.ifood.com.br"
SEARCH_ALIAS = "SEARCH_RESULTS_MERCHANT_TAB_GLOBAL"
DEFAULT_TERM = "a"
REQUEST_TIMEOUT = 30

# Capability declaration the feed endpoints expect. Only merchant/page actions
# are parsed, but the full list is sent as the web app sends it.
DISCOVERY_POST_BODY = {
    "supported-headers": ["OPERATION_HEADER"],
    "supported-cards": [
        "MERCHANT_LIST",
        "CATALOG_ITEM_LIST",
        "CATALOG_ITEM_LIST_V2",
        "CATALOG_ITEM_LIST_V3",
        "FEATURED_MERCHANT_LIST",
        "CATALOG_ITEM_CAROUSEL",
        "CATALOG_ITEM_CAROUSEL_V2",
        "CATALOG_ITEM_CAROUSEL_V3",
        "BIG_BANNER_CAROUSEL",
        "IMAGE_BANNER",
        "MERCHANT_LIST_WITH_ITEMS_CAROUSEL",
        "SMALL_BANNER_CAROUSEL",
        "NEXT_CONTENT",
        "MERCHANT_CAROUSEL",
        "MERCHANT_TILE_CAROUSEL",
        "SIMPLE_MERCHANT_CAROUSEL",
        "INFO_CARD",
        "MERCHANT_LIST_V2",
        "ROUND_IMAGE_CAROUSEL",
        "BANNER_GRID",
        "MEDIUM_IMAGE_BANNER",
        "MEDIUM_BANNER_CAROUSEL",
        "RELATED_SEARCH_CAROUSEL",
        "ADS_BANNER",
    ],
    "supported-actions": [
        "catalog-item",
        "item-details",
        "merchant",
        "page",
        "card-content",
        "last-restaurants",
        "webmiddleware",
        "reorder",
        "search",
        "groceries",
        "home-tab",
    ],
    "feed-feature-name": "",
    "faster-overrides": "",
}

DELIVERY_NOW = {"id": "DEFAULT", "now": True, "deliveryBy": "MERCHANT"}
# ─────────────────────────────────────────────────────────────────────────────

PAGE_FETCH_JS = """
async (args) => {
    const r = await fetch(args.url, {
        method: args.method,
        body: args.body,
        credentials: 'include',
        headers: args.headers,
    });
    const text = await r.text();
    return { ok: r.ok, status: r.status, text };
}
"""


def build_url(path: str, params: Optional[dict] = None) -> str:
    url = f"{API_BASE}{path}"
    if params:
        url = f"{url}?{urlencode(params)}"
    return url


def _decode(status: int, read_json):
    try:
        return read_json()
    except ValueError as e:
        raise UpstreamError(status, f"invalid JSON: {e}") from e


def _fetch_via_page(page: Page, url: str, method: str, headers: dict, body: Optional[str]):
    result = page.evaluate(
        PAGE_FETCH_JS,
        {"url": url, "method": method, "headers": headers, "body": body},
    )
    if not result.get("ok"):
        raise UpstreamError(result.get("status", 0), result.get("text", ""))
    return _decode(result.get("status", 0), lambda: json.loads(result["text"]))


def api_fetch(
    ctx: ApiContext,
    url: str,
    method: str = "GET",
    headers: Optional[dict] = None,
    body: Optional[str] = None,
    page: Optional[Page] = None,
):
    """
    Call the marketplace with the captured headers plus call-specific ones.
    Raises UpstreamError on any non-2xx answer, transport failure or non-JSON body.
    """
    merged = {**ctx.headers, **(headers or {})}
    logger.debug("API request", method=method, url=url, via_page=page is not None)

    if page is not None:
        return _fetch_via_page(page, url, method, merged, body)

    try:
        resp = requests.request(method, url, headers=merged, data=body, timeout=REQUEST_TIMEOUT)
    except requests.RequestException as e:
        logger.warning("API request failed", method=method, url=url, error=str(e))
        raise UpstreamError(0, str(e)) from e
    if not resp.ok:
        logger.warning("API error", method=method, url=url, status=resp.status_code)
        raise UpstreamError(resp.status_code, resp.text)
    return _decode(resp.status_code, resp.json)


def _post_discovery(ctx: ApiContext, url: str, page: Optional[Page] = None):
    return api_fetch(
        ctx,
        url,
        method="POST",
        headers={"content-type": "application/json"},
        body=json.dumps(DISCOVERY_POST_BODY),
        page=page,
    )


def _location_params(ctx: ApiContext) -> dict:
    return {"latitude": str(ctx.latitude), "longitude": str(ctx.longitude)}


def search_restaurants(
    ctx: ApiContext,
    query: str,
    limit: int = 10,
    exclude_terms: Optional[Sequence[str]] = None,
    page: Optional[Page] = None,
) -> List[Restaurant]:
    """
    Search merchants. Excluded restaurants are skipped while walking the
    results, so fewer than `limit` may come back.
    """
    term = query if query and query.strip() else DEFAULT_TERM
    params = {
        "alias": SEARCH_ALIAS,
        **_location_params(ctx),
        "channel": "IFOOD",
        "size": str(max(limit, 20)),
        "term": term,
    }
    data = _post_discovery(ctx, build_url("/v2/cardstack/search/results", params), page=page)

    excludes = list(exclude_terms or [])
    results = []
    seen = set()
    for entry in iter_feed_contents(data):
        if len(results) >= limit:
            break
        if not entry.get("id") or not entry.get("name") or not entry.get("action"):
            continue
        action = str(entry["action"])
        if not action.startswith(MERCHANT_PREFIX):
            continue

        parsed = parse_merchant_action(action)
        merchant_id = parsed["id"] or entry["id"]
        if merchant_id in seen:
            continue
        context_message = entry.get("contextMessage") or {}
        restaurant = Restaurant(
            id=merchant_id,
            slug=parsed["slug"],
            name=str(entry["name"]),
            url=restaurant_url(parsed["slug"], merchant_id),
            info=entry.get("mainCategory") or context_message.get("message"),
        )
        if excludes and should_exclude_restaurant(restaurant, excludes):
            continue
        results.append(restaurant)
        seen.add(merchant_id)

    logger.info("Search finished", term=term, results=len(results))
    return results


def get_category_page(ctx: ApiContext, category_id: str, page: Optional[Page] = None):
    params = {**_location_params(ctx), "channel": "IFOOD"}
    return _post_discovery(ctx, build_url(f"/v1/bm/page/{category_id}", params), page=page)


def get_catalog(ctx: ApiContext, merchant_id: str, page: Optional[Page] = None, url: Optional[str] = None):
    """
    Fetch a merchant catalog.

    With a page + the merchant's public URL the catalog request the web app
    makes on load is intercepted, and its headers (which include access_key /
    secret_key) are merged into ctx. Without a page a direct GET is made, which
    only works once those keys have been captured.
    """
    catalog_path = f"/v1/bm/merchants/{merchant_id}/catalog"
    if page is not None and url:
        with page.expect_response(lambda r: catalog_path in r.url) as response_info:
            page.goto(url, wait_until="domcontentloaded")
        response = response_info.value
        ctx.headers = merge_headers(ctx.headers, response.request.headers)
        return _decode(response.status, response.json)

    if not ctx.headers.get("access_key") or not ctx.headers.get("secret_key"):
        raise MissingCredentialsError(
            "Missing access credentials. Open a merchant page once to initialize headers."
        )
    return api_fetch(ctx, build_url(catalog_path, _location_params(ctx)))


def get_home_feed(ctx: ApiContext, page: Page):
    """Reload /inicio and intercept the home feed response it triggers."""
    ensure_on_home(page)
    with page.expect_response(lambda r: "/v2/bm/home" in r.url) as response_info:
        try:
            page.reload(wait_until="domcontentloaded")
        except PlaywrightError as e:
            logger.debug("Home reload failed, waiting for feed anyway", error=str(e))
    response = response_info.value
    ctx.headers = merge_headers(ctx.headers, response.request.headers)
    return _decode(response.status, response.json)


def _catalog_items(catalog) -> Iterable[tuple]:
    """Yield (menu, item) pairs from data.menu[].itens[]."""
    data = (catalog or {}).get("data") or {}
    for menu in data.get("menu") or []:
        for item in menu.get("itens") or []:
            yield menu, item


def _item_name(item: dict) -> str:
    return item.get("description") or item.get("name") or ""


def extract_menu_items(catalog, query: Optional[str] = None, limit: int = 10) -> List[MenuItem]:
    """
    Flatten a catalog into MenuItems in menu order, optionally filtered by a
    normalized substring of the name. Stops as soon as `limit` are collected.
    """
    items = []
    if limit <= 0:
        return items
    needle = normalize_text(query) if query else None

    for menu, item in _catalog_items(catalog):
        name = _item_name(item)
        if not name:
            continue
        if needle and needle not in normalize_text(name):
            continue
        unit_price = item.get("unitPrice")
        items.append(MenuItem(
            id=item.get("id"),
            name=name,
            price=unit_price if unit_price is not None else item.get("unitMinPrice"),
            price_text=f"R$ {unit_price}" if unit_price else None,
            description=item.get("details"),
            section=menu.get("name"),
        ))
        if len(items) >= limit:
            break
    return items


def build_sub_items(item: dict) -> List[SubItem]:
    """First garnish of every mandatory choice group, at its minimum quantity."""
    sub_items = []
    for choice in item.get("choices") or []:
        minimum = int(choice.get("min") or 0)
        if minimum <= 0:
            continue
        garnishes = choice.get("garnishItens") or []
        if not garnishes or not garnishes[0].get("id"):
            continue
        maximum = choice.get("max") or minimum
        sub_items.append(SubItem(id=garnishes[0]["id"], quantity=min(minimum, int(maximum))))
    return sub_items


def build_cart_items(catalog, requested: Iterable[ItemSpec]) -> List[CartItem]:
    """
    Match each requested item against the catalog: exact normalized name
    first, then the first item whose name contains the request.
    """
    all_items = [item for _, item in _catalog_items(catalog)]
    cart_items = []

    for req in requested:
        wanted = normalize_text(req.name)
        target = next((i for i in all_items if normalize_text(_item_name(i)) == wanted), None)
        if target is None:
            target = next((i for i in all_items if wanted in normalize_text(_item_name(i))), None)
        if not target or not target.get("id"):
            raise ItemNotFoundError(req.name)

        sub_items = build_sub_items(target) if target.get("needChoices") else []
        cart_items.append(CartItem(
            id=target["id"],
            quantity=req.qty,
            observation="",
            sub_items=sub_items or None,
        ))

    return cart_items


def build_cart_payload(ctx: ApiContext, merchant: Restaurant, items: Sequence[CartItem]) -> dict:
    address = ctx.address
    account = ctx.account
    return {
        "merchant": {"id": merchant.id, "name": merchant.name},
        "address": {
            "id": address.id,
            "coordinates": address.coordinates.to_dict(),
            "streetName": address.street_name,
            "streetNumber": address.street_number,
            "neighborhood": address.neighborhood,
            "complement": address.complement or "",
            "state": address.state,
            "city": address.city,
            "zipCode": address.zip_code or 0,
        },
        "items": [item.to_dict() for item in items],
        "delivery": dict(DELIVERY_NOW),
        "account": {
            "id": account.id,
            "name": account.name,
            "email": account.email,
            "phone": account.phone.to_dict(),
        },
    }


def create_cart(ctx: ApiContext, merchant: Restaurant, items: Sequence[CartItem], page: Optional[Page] = None):
    payload = build_cart_payload(ctx, merchant, items)
    logger.info("Creating cart", merchant_id=merchant.id, items=len(items))
    return api_fetch(
        ctx,
        build_url("/v1/carts"),
        method="POST",
        headers={"content-type": "application/json"},
        body=json.dumps(payload),
        page=page,
    )


def extract_cart_id(cart) -> Optional[str]:
    """The cart id shows up at cartResponse.id or cartResponse.cartResponse.id."""
    outer = (cart or {}).get("cartResponse") or {}
    if outer.get("id"):
        return outer["id"]
    inner = outer.get("cartResponse") or {}
    return inner.get("id")


def top_restaurants(
    ctx: ApiContext,
    page: Page,
    limit: int = 10,
    exclude_terms: Sequence[str] = (),
) -> List[Restaurant]:
    """
    Home feed merchants first, then merchants from each category page, then a
    broad search to fill what is left. Dedupe by id across all three.
    """
    excludes = list(exclude_terms)
    results = []
    seen = set()
    if limit <= 0:
        return results

    def add(restaurant: Restaurant) -> bool:
        if not restaurant.id or restaurant.id in seen:
            return False
        if excludes and should_exclude_restaurant(restaurant, excludes):
            return False
        results.append(restaurant)
        seen.add(restaurant.id)
        return True

    home = get_home_feed(ctx, page)
    categories, merchants = extract_home_data(home)

    for merchant in merchants:
        add(merchant)
        if len(results) >= limit:
            return results

    for category in categories:
        if len(results) >= limit:
            break
        if excludes and matches_exclude_term(category.title, excludes):
            logger.debug("Skipping excluded category", title=category.title)
            continue
        page_data = get_category_page(ctx, category.id)
        for merchant in extract_merchants_from_page(page_data):
            add(merchant)
            if len(results) >= limit:
                break

    if len(results) < limit:
        logger.info("Falling back to search", missing=limit - len(results))
        fallback = search_restaurants(ctx, DEFAULT_TERM, max(limit * 2, 20), exclude_terms=excludes or None)
        for merchant in fallback:
            add(merchant)
            if len(results) >= limit:
                break

    return results
