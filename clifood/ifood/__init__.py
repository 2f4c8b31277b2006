# -*- coding: utf-8 -*-
"""
iFood web platform client: session bridge, feed parsers and API calls.
"""
from clifood.ifood.errors import CliFoodError
from clifood.ifood.session import get_api_context
from clifood.ifood.types import ApiContext, MenuItem, Restaurant

__all__ = ["ApiContext", "CliFoodError", "MenuItem", "Restaurant", "get_api_context"]
