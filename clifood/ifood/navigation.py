# -*- coding: utf-8 -*-
import re

from playwright.sync_api import Page

from clifood.ifood.errors import CheckoutError
from clifood.ifood.types import HOST

HOME_URL = f"{HOST}/inicio"
CART_URL = f"{HOST}/carrinho"
CHECKOUT_URL = f"{HOST}/checkout"

FINALIZE_BUTTON_RE = re.compile(
    r"fazer pedido|confirmar pedido|finalizar pedido|finalizar compra", re.IGNORECASE
)


def _goto(page: Page, url: str):
    page.goto(url, wait_until="domcontentloaded")
    page.wait_for_load_state("domcontentloaded")


def open_home(page: Page):
    _goto(page, HOME_URL)


def open_cart(page: Page):
    _goto(page, CART_URL)


def open_checkout(page: Page):
    _goto(page, CHECKOUT_URL)


def ensure_on_home(page: Page):
    """Go to /inicio unless already there, then give the app a second to hydrate."""
    if "/inicio" not in page.url:
        page.goto(HOME_URL)
        page.wait_for_load_state("domcontentloaded")
        page.wait_for_timeout(1000)


def finalize_order(page: Page):
    button = page.get_by_role("button", name=FINALIZE_BUTTON_RE).first
    if not button.is_visible():
        raise CheckoutError("Final confirmation button not found.")
    button.click()
    page.wait_for_load_state("domcontentloaded")
