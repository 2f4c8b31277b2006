# -*- coding: utf-8 -*-
"""
Turn a logged-in iFood browser tab into credentials for direct API calls.

1) Read account + delivery address from the Next.js redux store in the page.
2) Reload a page that talks to the marketplace API and grab the headers of the
   first authorized request it sends (bearer token, device/session ids, px cookie...).
3) Keep only the allow-listed headers; later responses may refresh them.
"""
from typing import Dict, Optional

import structlog
from playwright.sync_api import Page, TimeoutError as PlaywrightTimeoutError

from clifood.ifood.errors import AddressMissingError, HeaderCaptureTimeoutError, NotLoggedInError
from clifood.ifood.types import AccountInfo, AddressInfo, ApiContext, Coordinates, HOST, Phone

logger = structlog.get_logger(__name__)

# ─── CONFIG ────────────────────────────────────────────────────────────────
MARKETPLACE_HOST = "cw-marketplace.ifood.com.br"
CAPTURE_URL = f"{HOST}/restaurantes"
CAPTURE_TIMEOUT_MS = 15_000

REQUIRED_HEADER_KEYS = (
    "authorization",
    "x-ifood-device-id",
    "x-ifood-session-id",
    "x-ifood-user-id",
    "x-client-application-key",
    "x-device-model",
    "x-px-cookies",
    "browser",
    "country",
    "test_merchants",
    "experiment_details",
    "experiment_variant",
    "app_version",
    "platform",
    "account_id",
    "access_key",
    "secret_key",
    "accept-language",
    "user-agent",
)

FIXED_HEADERS = {
    "accept": "application/json, text/plain, */*",
    "origin": HOST,
    "referer": f"{HOST}/",
}
# ─────────────────────────────────────────────────────────────────────────────


def pick_headers(observed: Optional[Dict[str, str]]) -> Dict[str, str]:
    """Fixed accept/origin/referer plus the allow-listed headers that have a value."""
    lowered = {str(k).lower(): v for k, v in (observed or {}).items()}
    picked = dict(FIXED_HEADERS)
    for key in REQUIRED_HEADER_KEYS:
        value = lowered.get(key)
        if value:
            picked[key] = value
    return picked


def merge_headers(base: Dict[str, str], observed: Optional[Dict[str, str]]) -> Dict[str, str]:
    """Return a new header dict; values seen last win because tokens rotate."""
    return {**base, **pick_headers(observed)}


def is_authorized_request(request) -> bool:
    if MARKETPLACE_HOST not in request.url:
        return False
    headers = request.headers
    return bool(headers.get("authorization") and headers.get("x-ifood-session-id"))


def capture_headers(page: Page, timeout_ms: int = CAPTURE_TIMEOUT_MS) -> Dict[str, str]:
    """
    Navigate to the restaurant list (or reload it) while waiting for the first
    authorized marketplace request; return that request's headers.
    """
    logger.debug("Waiting for authorized request", host=MARKETPLACE_HOST, timeout_ms=timeout_ms)
    try:
        with page.expect_request(is_authorized_request, timeout=timeout_ms) as request_info:
            if "/restaurantes" not in page.url:
                page.goto(CAPTURE_URL, wait_until="domcontentloaded")
            else:
                try:
                    page.reload(wait_until="domcontentloaded")
                except PlaywrightTimeoutError:
                    logger.debug("Reload timed out, still waiting for request")
        request = request_info.value
    except PlaywrightTimeoutError as e:
        raise HeaderCaptureTimeoutError(timeout_ms) from e

    headers = dict(request.headers)
    logger.info("Captured API headers", keys=sorted(k for k in headers if k in REQUIRED_HEADER_KEYS))
    return headers


def read_redux_state(page: Page):
    return page.evaluate(
        "() => { const store = window.__NEXT_REDUX_STORE__; return store ? store.getState() : null; }"
    )


def _coalesce(*values, default=None):
    """First value that is not None (JS `??` chain)."""
    for v in values:
        if v is not None:
            return v
    return default


def _location(address: dict) -> dict:
    return address.get("location") or {}


def extract_address(state) -> Optional[AddressInfo]:
    """
    Build the delivery address from redux state. Field names changed over
    time, so each one falls back through the known variants.
    Returns None when no usable address (id + coordinates) is set.
    """
    address = (state or {}).get("address")
    if not isinstance(address, dict):
        return None
    coords = address.get("coords") or {}
    if not address.get("addressId") or not coords.get("latitude") or not coords.get("longitude"):
        return None
    loc = _location(address)
    return AddressInfo(
        id=address["addressId"],
        street_name=_coalesce(address.get("street"), loc.get("address"), default=""),
        street_number=_coalesce(address.get("streetNumber"), default=""),
        neighborhood=_coalesce(address.get("district"), loc.get("district"), default=""),
        complement=_coalesce(address.get("compl"), default=""),
        reference=_coalesce(address.get("reference"), default=""),
        state=_coalesce(address.get("state"), loc.get("state"), default=""),
        city=_coalesce(address.get("city"), loc.get("city"), default=""),
        country=_coalesce(address.get("country"), loc.get("country"), default="BR"),
        zip_code=_coalesce(address.get("zipCode"), loc.get("zipCode"), default=0),
        coordinates=Coordinates(latitude=coords["latitude"], longitude=coords["longitude"]),
    )


def extract_account(state) -> Optional[AccountInfo]:
    account = (state or {}).get("account")
    if not isinstance(account, dict):
        return None
    phone = account.get("phone")
    if not account.get("uuid") or not account.get("name") or not account.get("email"):
        return None
    if not isinstance(phone, dict) or not phone:
        return None
    return AccountInfo(
        id=account["uuid"],
        name=account["name"],
        email=account["email"],
        phone=Phone(
            country_code=_coalesce(phone.get("country_code"), phone.get("countryCode"), default=55),
            area_code=_coalesce(phone.get("area_code"), phone.get("areaCode"), default=0),
            number=_coalesce(phone.get("number"), phone.get("full_number"), default=""),
        ),
    )


def get_api_context(page: Page, timeout_ms: int = CAPTURE_TIMEOUT_MS) -> ApiContext:
    state = read_redux_state(page)
    if not state or not state.get("address") or not state.get("account"):
        raise NotLoggedInError(
            "Unable to read account/address from iFood session. Open iFood in browser first."
        )

    address = extract_address(state)
    if address is None:
        raise AddressMissingError("Delivery address is missing. Set your address in iFood first.")

    account = extract_account(state)
    if account is None:
        raise NotLoggedInError("Account info missing. Make sure you are logged in to iFood.")

    headers = pick_headers(capture_headers(page, timeout_ms))
    return ApiContext(
        headers=headers,
        address=address,
        account=account,
        latitude=address.coordinates.latitude,
        longitude=address.coordinates.longitude,
    )
