#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
clifood command line.

    clifood open                      # log in / pick an address in the browser
    clifood restaurants -q sushi      # search restaurants
    clifood restaurants --top         # home feed + categories
    clifood items -r "Sushi Y" -q temaki
    clifood order -r <url> -i "Temaki:2" --confirm

Every command opens one browser session, turns it into API credentials and
closes it again whatever happens.
"""
import argparse
import json
import re
import sys

import requests
import structlog
from playwright.sync_api import Error as PlaywrightError

from clifood import __version__
from clifood.browser import open_session
from clifood.config import apply_overrides, config_path, load_config, parse_config_value, save_config
from clifood.logging_setup import configure_logging
from clifood.utils import is_url, parse_item_spec, parse_number
from clifood.ifood.api import (
    build_cart_items,
    create_cart,
    extract_cart_id,
    extract_menu_items,
    get_catalog,
    search_restaurants,
    top_restaurants,
)
from clifood.ifood.errors import CliFoodError, RestaurantNotFoundError
from clifood.ifood.navigation import ensure_on_home, finalize_order, open_cart, open_checkout, open_home
from clifood.ifood.session import get_api_context
from clifood.ifood.types import Restaurant

logger = structlog.get_logger(__name__)

DEFAULT_EXCLUDES = [
    "pizza",
    "hamburg",
    "hamburguer",
    "burger",
    "burguer",
    "lanches",
    "doce",
    "doces",
    "sobremesa",
    "sobremesas",
    "acai",
    "açai",
    "sorvete",
    "sorvetes",
    "bolo",
    "bolos",
]

RESTAURANT_URL_RE = re.compile(r"/delivery/([^/]+/[^/]+|[^/]+)/([0-9a-f-]{36})", re.IGNORECASE)


# ─── OUTPUT ────────────────────────────────────────────────────────────────
def _as_data(value):
    if hasattr(value, "to_dict"):
        return value.to_dict()
    if isinstance(value, list):
        return [_as_data(v) for v in value]
    if isinstance(value, dict):
        return {k: _as_data(v) for k, v in value.items()}
    return value


def format_entry(idx: int, record: dict) -> str:
    name = str(record["name"]) if record.get("name") else "(unnamed)"
    ident = f" [{record['id']}]" if record.get("id") else ""
    url = f" — {record['url']}" if record.get("url") else ""
    info = f" ({record['info']})" if record.get("info") else ""
    if record.get("priceText"):
        price = f" {record['priceText']}"
    elif isinstance(record.get("price"), (int, float)):
        price = f" R$ {record['price']:.2f}"
    else:
        price = ""
    section = f" — {record['section']}" if record.get("section") else ""
    return f"{idx}. {name}{ident}{price}{info}{section}{url}"


def print_output(data, as_json: bool = False):
    data = _as_data(data)
    if as_json:
        print(json.dumps(data, indent=2, ensure_ascii=False))
    elif isinstance(data, list):
        for idx, entry in enumerate(data, 1):
            if isinstance(entry, str):
                print(f"{idx}. {entry}")
            elif isinstance(entry, dict):
                print(format_entry(idx, entry))
    elif isinstance(data, dict):
        print(json.dumps(data, indent=2, ensure_ascii=False))
    else:
        print("" if data is None else data)


# ─── RESTAURANT RESOLUTION ─────────────────────────────────────────────────
def parse_restaurant_url(value: str):
    """https://www.ifood.com.br/delivery/<city>/<slug>/<uuid> -> Restaurant, else None."""
    if not is_url(value):
        return None
    m = RESTAURANT_URL_RE.search(value)
    if not m:
        return None
    slug, merchant_id = m.group(1), m.group(2)
    return Restaurant(id=merchant_id, slug=slug, url=value, name=slug)


def resolve_restaurant(ctx, query: str, page=None, prefer_name_match: bool = False) -> Restaurant:
    restaurant = parse_restaurant_url(query)
    if restaurant is None:
        results = search_restaurants(ctx, query, 10, page=page)
        if not results or not results[0].id:
            raise RestaurantNotFoundError(query)
        restaurant = results[0]
        if prefer_name_match:
            wanted = query.lower()
            restaurant = next((r for r in results if wanted in r.name.lower()), results[0])
    if not restaurant.url:
        raise CliFoodError("Restaurant URL missing. Try passing the restaurant URL instead.")
    return restaurant


# ─── COMMANDS ──────────────────────────────────────────────────────────────
def resolve_config(args):
    return apply_overrides(
        load_config(),
        cdp_url=args.cdp_url,
        profile_dir=args.profile_dir,
        headless=args.headless,
        slow_mo=args.slow_mo,
        timeout=args.timeout,
    )


def cmd_config(args):
    if args.action == "show":
        print(f"Config path: {config_path()}")
        print(json.dumps(load_config().to_file_dict(), indent=2))
        return
    if args.action == "set":
        if not args.key or args.value is None:
            raise CliFoodError("Usage: clifood config set <key> <value>")
        nxt = save_config(parse_config_value(args.key, args.value))
        print(json.dumps(nxt.to_file_dict(), indent=2))
        return
    raise CliFoodError(f"Unknown config action: {args.action}")


def cmd_open(args):
    with open_session(resolve_config(args)) as session:
        open_home(session.page)
        if args.wait:
            print("🔐 Browser opened. Log in / set your address, then press ENTER to close.")
            input()


def cmd_restaurants(args):
    excludes = list(args.exclude) + (DEFAULT_EXCLUDES if args.exclude_defaults else [])
    limit = parse_number(args.limit, 10)
    with open_session(resolve_config(args)) as session:
        ensure_on_home(session.page)
        ctx = get_api_context(session.page)
        if args.top:
            restaurants = top_restaurants(ctx, session.page, limit, excludes)
        else:
            restaurants = search_restaurants(ctx, args.query, limit, exclude_terms=excludes or None)
        print_output(restaurants, args.json)


def cmd_items(args):
    limit = parse_number(args.limit, 10)
    with open_session(resolve_config(args)) as session:
        ensure_on_home(session.page)
        ctx = get_api_context(session.page)
        merchant = resolve_restaurant(ctx, args.restaurant, page=session.page)
        catalog = get_catalog(ctx, merchant.id, page=session.page, url=merchant.url)
        print_output(extract_menu_items(catalog, args.query, limit), args.json)


def cmd_order(args):
    items = [parse_item_spec(spec) for spec in args.item]
    if not items:
        raise CliFoodError("At least one --item is required.")

    with open_session(resolve_config(args)) as session:
        ensure_on_home(session.page)
        ctx = get_api_context(session.page)
        restaurant = resolve_restaurant(ctx, args.restaurant, prefer_name_match=True)
        catalog = get_catalog(ctx, restaurant.id, page=session.page, url=restaurant.url)
        cart_items = build_cart_items(catalog, items)
        cart = create_cart(ctx, restaurant, cart_items)

        open_cart(session.page)
        open_checkout(session.page)
        if args.confirm:
            finalize_order(session.page)
        elif not args.json:
            print("🛒 Cart ready at checkout. Re-run with --confirm to place the order.")

        print_output({
            "restaurant": restaurant,
            "items": [i.to_dict() for i in items],
            "confirmed": bool(args.confirm),
            "cartId": extract_cart_id(cart),
            "checkoutUrl": session.page.url,
        }, args.json)


# ─── PARSER ────────────────────────────────────────────────────────────────
def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="clifood", description="CLI automation for iFood using Playwright")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--cdp-url", help="Connect to an existing Chrome DevTools endpoint")
    parser.add_argument("--profile-dir", help="User data directory for persistent profile")
    parser.add_argument("--headless", action=argparse.BooleanOptionalAction, default=None,
                        help="Run browser in headless mode (--no-headless to force a window)")
    parser.add_argument("--slow-mo", help="Slow down Playwright actions (ms)")
    parser.add_argument("--timeout", help="Default timeout for Playwright actions (ms)")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("config", help="View or update CLI config")
    p.add_argument("action", nargs="?", default="show", help="show or set")
    p.add_argument("key", nargs="?", help="config key to update")
    p.add_argument("value", nargs="?", help="value to set")
    p.set_defaults(func=cmd_config)

    p = sub.add_parser("open", help="Open iFood in the browser (use to login or set address)")
    p.add_argument("--no-wait", dest="wait", action="store_false", help="Do not wait for Enter before exiting")
    p.set_defaults(func=cmd_open)

    p = sub.add_parser("restaurants", help="Search restaurants")
    p.add_argument("-q", "--query", default="a", help="Search query")
    p.add_argument("-l", "--limit", default="10", help="Limit results")
    p.add_argument("--exclude", action="append", default=[], metavar="TERM",
                   help="Exclude category/name containing term (repeatable)")
    p.add_argument("--exclude-defaults", action="store_true", help="Exclude pizza, hamburger, sweets")
    p.add_argument("--top", action="store_true", help="Return top restaurants (uses discovery feed)")
    p.add_argument("--json", action="store_true", help="Output JSON")
    p.set_defaults(func=cmd_restaurants)

    p = sub.add_parser("items", help="Search items in a restaurant")
    p.add_argument("-r", "--restaurant", required=True, help="Restaurant name or URL")
    p.add_argument("-q", "--query", help="Item query")
    p.add_argument("-l", "--limit", default="10", help="Limit results")
    p.add_argument("--json", action="store_true", help="Output JSON")
    p.set_defaults(func=cmd_items)

    p = sub.add_parser("order", help="Place an order (requires --confirm to submit)")
    p.add_argument("-r", "--restaurant", required=True, help="Restaurant name or URL")
    p.add_argument("-i", "--item", action="append", default=[], metavar="ITEM_SPEC",
                   help="Item name with optional quantity (e.g. 'Pizza:2')")
    p.add_argument("--confirm", action="store_true", help="Submit the order on the final screen")
    p.add_argument("--json", action="store_true", help="Output JSON")
    p.set_defaults(func=cmd_order)

    return parser


def main(argv=None) -> int:
    configure_logging()
    args = build_parser().parse_args(argv)
    try:
        args.func(args)
    except (CliFoodError, PlaywrightError, requests.RequestException) as e:
        logger.debug("Command failed", command=args.command, exc_info=True)
        print(str(e), file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
