"""clifood: order from iFood through an authenticated Playwright session."""

__version__ = "0.1.0"
