import json
from typing import Callable, Dict, List, Union

import httpx
import pytest
import pytest_asyncio

RELAYS = "http://relays.test"
SENSORS = "http://sensors.test"
RULES = "http://rules.test"

Route = Union[dict, Callable[[httpx.Request], httpx.Response]]


class FakeUpstream:
    """Routes requests by URL (without query string) to canned JSON or callables."""

    def __init__(self):
        self.routes: Dict[str, Route] = {}
        self.posted: List[dict] = []
        self.requests: List[httpx.Request] = []

    def set(self, url: str, route: Route) -> None:
        self.routes[url] = route

    def fail(self, url: str, status_code: int = 500) -> None:
        self.routes[url] = lambda request: httpx.Response(status_code, text="boom")

    def unreachable(self, url: str) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        self.routes[url] = handler

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        url = str(request.url.copy_with(query=None))

        if request.method == "POST" and url == f"{RELAYS}/relay":
            body = json.loads(request.content)
            route = self.routes.get(url)
            if callable(route):
                response = route(request)
                if response.status_code < 300:
                    self.posted.append(body)
                return response
            self.posted.append(body)
            return httpx.Response(200, json={"ok": True})

        route = self.routes.get(url)
        if route is None:
            return httpx.Response(404, text="not found")
        if callable(route):
            return route(request)
        return httpx.Response(200, json=route)


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest_asyncio.fixture
async def http_client(upstream):
    client = httpx.AsyncClient(transport=httpx.MockTransport(upstream.handle), timeout=1.0)
    yield client
    await client.aclose()


def rule_payload(pin=4, dec="A", relay_id=7, temperature=22.5, enable=True) -> dict:
    return {"pin": pin, "dec": dec, "relay_id": relay_id, "temperature": temperature, "enable": enable}


def sensor_payload(pin=4, dec="A", temperature=20.0, humidity=40.0) -> dict:
    return {
        "pin": pin,
        "dec": dec,
        "temperature": temperature,
        "humidity": humidity,
        "create_at": "2024-01-01T10:00:00Z",
        "update_at": "2024-01-01T10:00:05Z",
    }
