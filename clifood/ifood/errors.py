# -*- coding: utf-8 -*-
"""
Errors raised by the iFood client. Every one of them is fatal for the
current command: the CLI prints the message and exits non-zero.
"""


class CliFoodError(Exception):
    """Base class for every error the CLI reports to the user."""
    pass


class SessionError(CliFoodError):
    """The browser session can't be turned into API credentials."""
    pass


class NotLoggedInError(SessionError):
    """Raised when iFood has no logged-in account in the browser profile."""
    pass


class AddressMissingError(SessionError):
    """Raised when the account has no delivery address selected."""
    pass


class HeaderCaptureTimeoutError(SessionError):
    """No authorized marketplace request was observed in time."""

    def __init__(self, timeout_ms: int):
        super().__init__(
            f"Timed out after {timeout_ms}ms waiting for an authorized iFood API request. "
            "Open iFood in the browser and make sure you are logged in."
        )
        self.timeout_ms = timeout_ms


class MissingCredentialsError(SessionError):
    pass


class NotFoundError(CliFoodError):
    pass


class RestaurantNotFoundError(NotFoundError):
    def __init__(self, query: str):
        super().__init__(f"No restaurants found for query: {query}")
        self.query = query


class ItemNotFoundError(NotFoundError):
    def __init__(self, name: str):
        super().__init__(f"Item not found in catalog: {name}")
        self.name = name


class UpstreamError(CliFoodError):
    """Non-2xx answer from the marketplace API."""

    def __init__(self, status: int, body: str = ""):
        snippet = (body or "")[:200]
        super().__init__(f"iFood API error {status}: {snippet}")
        self.status = status
        self.body = snippet


class CheckoutError(CliFoodError):
    pass
