"""
Pytest configuration and HTTP test doubles for the boat dashboard tests.
"""
import os
import sys
from typing import Any, Dict, List, Optional, Tuple

# Modules live at the repository root
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest
import requests

from airvantage import AirVantageClient, AirVantageConfig, AuthSession
from display import DisplayBoard
from local_device import LocalDeviceClient


class FakeResponse:
    def __init__(self, status_code: int = 200, payload: Any = None, text: Optional[str] = None):
        self.status_code = status_code
        self._payload = payload
        self._text = text

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 400

    def json(self) -> Any:
        if self._text is not None:
            raise ValueError(f"not JSON: {self._text!r}")
        return self._payload

    def raise_for_status(self) -> None:
        if not self.ok:
            raise requests.HTTPError(f"HTTP {self.status_code}")


class FakeSession:
    """Stands in for requests.Session: routes by URL substring, records every call."""

    def __init__(self, routes: Optional[Dict[str, Any]] = None):
        self.routes: Dict[str, Any] = dict(routes or {})
        self.calls: List[Tuple[str, Dict[str, Any]]] = []
        self.closed = False

    def get(self, url: str, params: Optional[Dict[str, Any]] = None, **kwargs: Any) -> FakeResponse:
        self.calls.append((url, dict(params or {})))
        for fragment, result in self.routes.items():
            if fragment in url:
                if isinstance(result, Exception):
                    raise result
                return result
        raise requests.ConnectionError(f"no route to {url}")

    def count(self, fragment: str) -> int:
        return sum(1 for url, _ in self.calls if fragment in url)

    def close(self) -> None:
        self.closed = True


class FakeCredentials:
    def __init__(self, creds=None, error: Optional[Exception] = None, log: Optional[list] = None):
        self.creds = creds
        self.error = error
        self.loads = 0
        self.log = log

    def load(self):
        self.loads += 1
        if self.log is not None:
            self.log.append("credentials")
        if self.error is not None:
            raise self.error
        return self.creds


LOCAL_PAYLOAD = {
    "boat.bmv.voltage": 12.64,
    "boat.bmv.current": -3.2,
    "boat.bmv.consumed_energy": -12.5,
    "boat.bmv.state_of_charge": 87.3,
    "boat.bmv.time_to_go": 2880,
    "boat.mppt.power_panels": 61.7,
    "boat.mppt.voltage_panels": 35.48,
    "boat.mppt.current_battery": 4.5,
    "boat.mppt.voltage_battery": 12.7,
    "_LATITUDE": 43.2951,
    "_LONGITUDE": 5.3625,
}

CLOUD_PAYLOAD = {
    "boat.bmv.voltage": [{"value": 12.5, "timestamp": 1500000000000}, {"value": 12.4, "timestamp": 1499999990000}],
    "boat.bmv.current": [{"value": 2.0, "timestamp": 1500000000000}],
    "boat.mppt.current_battery": [{"value": 5.0, "timestamp": 1500000001000}],
    "boat.mppt.voltage_battery": [{"value": 12.0, "timestamp": 1500000001000}],
    "_LATITUDE": [{"value": 43.1, "timestamp": 1500000002000}],
}


@pytest.fixture
def av_config() -> AirVantageConfig:
    return AirVantageConfig(system="sys-1234", server="eu.airvantage.net", client_id="cid", client_secret="csecret")


@pytest.fixture
def board() -> DisplayBoard:
    return DisplayBoard()


@pytest.fixture
def auth() -> AuthSession:
    return AuthSession()


def make_local(routes_or_session) -> LocalDeviceClient:
    session = routes_or_session if isinstance(routes_or_session, FakeSession) else FakeSession(routes_or_session)
    return LocalDeviceClient("http://boat.local:9001/data.json", session=session)


def make_cloud(config: AirVantageConfig, session: FakeSession) -> AirVantageClient:
    return AirVantageClient(config, session=session)
