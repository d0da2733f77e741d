"""Pytest configuration and fixtures for the InControl client tests."""

from __future__ import annotations

import json
import logging
from typing import Any, Optional
from unittest.mock import MagicMock

import pytest
import requests

from incontrol.ic_client import InControlClient


def make_response(
    status_code: int = 200,
    json_body: Any = None,
    text: Optional[str] = None,
    url: str = "https://api.ic.peplink.com/rest",
) -> requests.Response:
    """Build a real requests.Response so raise_for_status()/json() behave normally."""
    resp = requests.Response()
    resp.status_code = status_code
    if json_body is not None:
        resp._content = json.dumps(json_body).encode("utf-8")
    else:
        resp._content = (text or "").encode("utf-8")
    resp.encoding = "utf-8"
    resp.url = url
    return resp


def prepared_url(call: Any) -> str:
    """Rebuild the exact wire URL for a recorded session.request() call."""
    method, url = call.args[0], call.args[1]
    return requests.Request(method, url, params=call.kwargs.get("params")).prepare().url


@pytest.fixture
def client() -> InControlClient:
    """Client with its HTTP session stubbed out."""
    c = InControlClient()
    c.session.request = MagicMock(name="request")
    return c


@pytest.fixture
def restore_root_logger():
    """Undo configure_logging() side effects on the root logger."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield root
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)
