"""
Pytest configuration and fixtures.
"""

from contextlib import contextmanager

import pytest
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError

from clifood.ifood.session import pick_headers
from clifood.ifood.types import AccountInfo, AddressInfo, ApiContext, Coordinates, Phone


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    """Point ~ at a temp dir and drop any IFOOD_* variables from the real env."""
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.setenv("USERPROFILE", str(tmp_path))
    for key in ("IFOOD_CDP_URL", "IFOOD_PROFILE_DIR", "IFOOD_HEADLESS", "IFOOD_SLOW_MO",
                "IFOOD_LOCALE", "IFOOD_TIMEOUT_MS"):
        monkeypatch.delenv(key, raising=False)
    yield tmp_path


class FakeRequest:
    def __init__(self, url, headers=None):
        self.url = url
        self.headers = headers or {}


class FakeResponse:
    def __init__(self, url, payload, request_headers=None):
        self.url = url
        self.status = 200
        self.request = FakeRequest(url, request_headers)
        self._payload = payload

    def json(self):
        return self._payload


class _EventInfo:
    value = None


class FakePage:
    """
    Just enough of playwright's sync Page for the session bridge and API
    client: navigation is recorded, expect_request/expect_response resolve
    against pre-seeded traffic and time out when nothing matches.
    """

    def __init__(self, url="https://www.ifood.com.br/inicio", state=None,
                 requests=(), responses=(), fetch_result=None):
        self.url = url
        self.state = state
        self.requests = list(requests)
        self.responses = list(responses)
        self.fetch_result = fetch_result
        self.visited = []
        self.reloads = 0
        self.evaluate_calls = []

    def evaluate(self, script, arg=None):
        self.evaluate_calls.append((script, arg))
        if arg is None:
            return self.state
        return self.fetch_result

    def goto(self, url, wait_until=None):
        self.visited.append(url)
        self.url = url

    def reload(self, wait_until=None):
        self.reloads += 1

    def wait_for_load_state(self, state=None):
        pass

    def wait_for_timeout(self, ms):
        pass

    @contextmanager
    def _expect(self, pool, predicate, timeout):
        info = _EventInfo()
        yield info
        for event in pool:
            if predicate(event):
                info.value = event
                return
        raise PlaywrightTimeoutError(f"Timeout {timeout}ms exceeded while waiting for event")

    def expect_request(self, predicate, timeout=None):
        return self._expect(self.requests, predicate, timeout)

    def expect_response(self, predicate, timeout=None):
        return self._expect(self.responses, predicate, timeout)


@pytest.fixture
def fake_page_cls():
    return FakePage


@pytest.fixture
def fake_request_cls():
    return FakeRequest


@pytest.fixture
def fake_response_cls():
    return FakeResponse


@pytest.fixture
def api_context():
    coords = Coordinates(latitude=-23.55, longitude=-46.63)
    return ApiContext(
        headers=pick_headers({
            "authorization": "Bearer token-1",
            "x-ifood-session-id": "session-1",
            "x-ifood-device-id": "device-1",
        }),
        address=AddressInfo(
            id="addr-1",
            street_name="Rua Augusta",
            street_number="100",
            neighborhood="Consolação",
            state="SP",
            city="São Paulo",
            country="BR",
            zip_code="01305000",
            coordinates=coords,
        ),
        account=AccountInfo(
            id="acc-1",
            name="Maria",
            email="maria@example.com",
            phone=Phone(country_code=55, area_code=11, number="999999999"),
        ),
        latitude=coords.latitude,
        longitude=coords.longitude,
    )


def _merchant(name, merchant_id, slug, **extra):
    entry = {"name": name, "action": f"merchant?identifier={merchant_id}&slug={slug}"}
    entry.update(extra)
    return entry


def feed(*contents):
    return {"sections": [{"cards": [{"data": {"contents": list(contents)}}]}]}


@pytest.fixture
def merchant_entry():
    return _merchant


@pytest.fixture
def make_feed():
    return feed


@pytest.fixture
def sample_catalog():
    return {
        "data": {
            "menu": [
                {
                    "name": "Pratos",
                    "itens": [
                        {"id": "item-1", "description": "Feijoada", "unitPrice": 42.5, "details": "Completa"},
                        {"id": "item-2", "description": "Feijoada Light", "unitMinPrice": 30},
                        {
                            "id": "item-3",
                            "description": "Prato Feito",
                            "unitPrice": 25,
                            "needChoices": True,
                            "choices": [
                                {"min": 1, "max": 1, "garnishItens": [{"id": "g-arroz"}, {"id": "g-feijao"}]},
                                {"min": 0, "max": 3, "garnishItens": [{"id": "g-extra"}]},
                                {"min": 2, "max": None, "garnishItens": [{"id": "g-salada"}]},
                            ],
                        },
                    ],
                },
                {
                    "name": "Bebidas",
                    "itens": [
                        {"id": "item-4", "description": "Guaraná Antártica", "unitPrice": 6},
                        {"id": "item-5", "name": "Água"},
                        {"id": "item-6"},
                    ],
                },
            ]
        }
    }
