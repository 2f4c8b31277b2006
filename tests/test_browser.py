"""
Tests for browser session lifecycle and page navigation helpers.
Playwright itself is replaced by mocks.
"""

from __future__ import annotations

import re
from unittest.mock import MagicMock, patch

import pytest

from clifood import browser
from clifood.config import CliFoodConfig
from clifood.ifood.errors import CheckoutError
from clifood.ifood.navigation import FINALIZE_BUTTON_RE, ensure_on_home, finalize_order


def _playwright_mock():
    sync_pw = MagicMock()
    p = sync_pw.return_value.__enter__.return_value
    return sync_pw, p


def test_persistent_profile_session_closes_on_error(tmp_path) -> None:
    sync_pw, p = _playwright_mock()
    context = p.chromium.launch_persistent_context.return_value
    context.pages = []
    config = CliFoodConfig(profile_dir=str(tmp_path / "profile"), headless=True, slow_mo=5, timeout_ms=1234)

    with patch.object(browser, "sync_playwright", sync_pw):
        with pytest.raises(RuntimeError):
            with browser.open_session(config) as session:
                assert session.remote is False
                assert session.page is context.new_page.return_value
                raise RuntimeError("boom")

    kwargs = p.chromium.launch_persistent_context.call_args.kwargs
    assert kwargs["user_data_dir"] == str(tmp_path / "profile")
    assert kwargs["headless"] is True
    assert kwargs["slow_mo"] == 5
    assert kwargs["locale"] == "pt-BR"
    assert (tmp_path / "profile").is_dir()
    context.new_page.return_value.set_default_timeout.assert_called_once_with(1234)
    context.close.assert_called_once()


def test_cdp_session_reuses_existing_page(tmp_path) -> None:
    sync_pw, p = _playwright_mock()
    remote = p.chromium.connect_over_cdp.return_value
    context = MagicMock()
    page = MagicMock()
    context.pages = [page]
    remote.contexts = [context]
    config = CliFoodConfig(profile_dir=str(tmp_path), cdp_url="http://127.0.0.1:9222")

    with patch.object(browser, "sync_playwright", sync_pw):
        with browser.open_session(config) as session:
            assert session.remote is True
            assert session.page is page

    p.chromium.connect_over_cdp.assert_called_once_with("http://127.0.0.1:9222")
    page.close.assert_called_once_with(run_before_unload=True)
    remote.close.assert_called_once()
    p.chromium.launch_persistent_context.assert_not_called()


def test_finalize_button_pattern() -> None:
    assert FINALIZE_BUTTON_RE.search("Fazer pedido")
    assert FINALIZE_BUTTON_RE.search("FINALIZAR COMPRA")
    assert not FINALIZE_BUTTON_RE.search("Adicionar item")


def test_finalize_order_clicks_visible_button() -> None:
    page = MagicMock()
    button = page.get_by_role.return_value.first
    button.is_visible.return_value = True
    finalize_order(page)
    role, = page.get_by_role.call_args.args
    assert role == "button"
    assert isinstance(page.get_by_role.call_args.kwargs["name"], re.Pattern)
    button.click.assert_called_once()


def test_finalize_order_without_button() -> None:
    page = MagicMock()
    page.get_by_role.return_value.first.is_visible.return_value = False
    with pytest.raises(CheckoutError, match="Final confirmation button not found."):
        finalize_order(page)


def test_ensure_on_home(fake_page_cls) -> None:
    page = fake_page_cls(url="https://www.ifood.com.br/inicio")
    ensure_on_home(page)
    assert page.visited == []

    page = fake_page_cls(url="about:blank")
    ensure_on_home(page)
    assert page.visited == ["https://www.ifood.com.br/inicio"]
