#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Playwright browser sessions for clifood.

Either attach to a Chrome you already run (--cdp-url, e.g. started with
--remote-debugging-port=9222) or launch Chromium on a persistent profile
directory so the iFood login survives between runs. The session is always
closed when the `with` block exits, errors included.
"""
from contextlib import contextmanager
from dataclasses import dataclass

import structlog
from playwright.sync_api import BrowserContext, Error as PlaywrightError, Page, sync_playwright

from clifood.config import CliFoodConfig
from clifood.utils import ensure_dir

logger = structlog.get_logger(__name__)

VIEWPORT = {"width": 1280, "height": 800}


@dataclass
class BrowserSession:
    page: Page
    context: BrowserContext
    remote: bool


@contextmanager
def open_session(config: CliFoodConfig):
    with sync_playwright() as p:
        if config.cdp_url:
            logger.info("Connecting over CDP", cdp_url=config.cdp_url)
            browser = p.chromium.connect_over_cdp(config.cdp_url)
            context = (
                browser.contexts[0]
                if browser.contexts
                else browser.new_context(locale=config.locale, viewport=VIEWPORT)
            )
            page = context.pages[0] if context.pages else context.new_page()
            page.set_default_timeout(config.timeout_ms)
            try:
                yield BrowserSession(page=page, context=context, remote=True)
            finally:
                try:
                    page.close(run_before_unload=True)
                except PlaywrightError as e:
                    logger.debug("Page already closed", error=str(e))
                browser.close()
            return

        ensure_dir(config.profile_dir)
        logger.info("Launching persistent profile", profile_dir=config.profile_dir, headless=config.headless)
        context = p.chromium.launch_persistent_context(
            user_data_dir=config.profile_dir,
            headless=config.headless,
            slow_mo=config.slow_mo,
            locale=config.locale,
            viewport=VIEWPORT,
        )
        page = context.pages[0] if context.pages else context.new_page()
        page.set_default_timeout(config.timeout_ms)
        try:
            yield BrowserSession(page=page, context=context, remote=False)
        finally:
            context.close()
