#!/usr/bin/env python3
from __future__ import annotations

import json
import logging
import os
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import requests

from config import Settings, parse_env_lines
from errors import AuthError, CredentialsLoadError, DataFetchError, NetworkError, PreconditionError

logger = logging.getLogger("airvantage")

# Its sample timestamp stands for "when the boat uploaded this data set".
REFERENCE_PATH = "boat.bmv.voltage"


@dataclass(frozen=True)
class AirVantageConfig:
    system: str
    server: str = "eu.airvantage.net"
    client_id: str = ""
    client_secret: str = ""

    @classmethod
    def from_settings(cls, settings: Settings) -> "AirVantageConfig":
        return cls(
            system=settings.av_system,
            server=settings.av_server,
            client_id=settings.av_client_id,
            client_secret=settings.av_client_secret,
        )

    @property
    def base_url(self) -> str:
        return f"https://{self.server}"


@dataclass(frozen=True)
class Credentials:
    login: str
    password: str

    def __repr__(self) -> str:
        return f"Credentials(login={self.login!r}, password='***')"


class FileCredentialsProvider:
    """Load the AirVantage login/password from a local file.

    Accepted formats, JSON:

        {"login": "mail@company.com", "password": "s3kr3t"}

    or KEY=VALUE lines (`export` prefix and quotes allowed):

        login=mail@company.com
        password='s3kr3t'
    """

    def __init__(self, path: str):
        self.path = os.path.expanduser(str(path))

    def load(self) -> Credentials:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                text = f.read()
        except OSError as e:
            raise CredentialsLoadError(f"cannot read {self.path}: {e}") from e

        fields = self._parse(text)
        login = str(fields.get("login") or "").strip()
        password = str(fields.get("password") or "")
        if not login or not password:
            raise CredentialsLoadError(f"{self.path}: 'login' and 'password' are both required")
        return Credentials(login=login, password=password)

    def _parse(self, text: str) -> Dict[str, Any]:
        s = text.strip()
        if s.startswith("{"):
            try:
                data = json.loads(s)
            except ValueError as e:
                raise CredentialsLoadError(f"{self.path}: invalid JSON: {e}") from e
            if not isinstance(data, dict):
                raise CredentialsLoadError(f"{self.path}: expected a JSON object")
            return data

        return {k.lower(): v for k, v in parse_env_lines(s.splitlines()).items()}


class AuthSession:
    """The AirVantage access token for the life of the process.

    Written once by the authentication step, then reused; there is no
    expiry handling.
    """

    def __init__(self) -> None:
        self._token: Optional[str] = None

    def has_token(self) -> bool:
        return self._token is not None

    def get_token(self) -> str:
        if self._token is None:
            raise PreconditionError("no AirVantage access token yet")
        return self._token

    def set_token(self, token: str) -> None:
        if not token:
            raise ValueError("empty access token")
        self._token = str(token)


class AirVantageClient:
    def __init__(
        self,
        config: AirVantageConfig,
        session: Optional[requests.Session] = None,
        timeout_sec: float = 12.0,
        verify_ssl: bool = True,
    ):
        self.config = config
        self.timeout_sec = float(timeout_sec)
        self.verify_ssl = bool(verify_ssl)
        self._session = session or requests.Session()

    def _get(self, path: str, params: Dict[str, Any]) -> requests.Response:
        url = f"{self.config.base_url}/{path.lstrip('/')}"
        try:
            return self._session.get(url, params=params, timeout=self.timeout_sec, verify=self.verify_ssl)
        except requests.RequestException as e:
            raise NetworkError(f"AirVantage {path}: {e}") from e

    def request_token(self, credentials: Credentials) -> str:
        """Password grant; returns the access token."""
        if not self.config.client_id or not self.config.client_secret:
            raise AuthError("AV_CLIENT_ID / AV_CLIENT_SECRET not set")

        r = self._get(
            "api/oauth/token",
            params={
                "grant_type": "password",
                "username": credentials.login,
                "password": credentials.password,
                "client_id": self.config.client_id,
                "client_secret": self.config.client_secret,
            },
        )
        if not r.ok:
            raise AuthError(f"token request rejected: HTTP {r.status_code}")
        try:
            data = r.json()
        except ValueError as e:
            raise AuthError(f"token response is not JSON: {e}") from e

        token = data.get("access_token") if isinstance(data, dict) else None
        if not token:
            raise AuthError("token response has no access_token")
        return str(token)

    def get_latest_data(self, token: str) -> Dict[str, List[Dict[str, Any]]]:
        """Latest samples per path, most recent first."""
        if not self.config.system:
            raise DataFetchError("AV_SYSTEM not set")

        r = self._get(f"api/v1/systems/{self.config.system}/data", params={"access_token": token})
        if not r.ok:
            raise DataFetchError(f"data query rejected: HTTP {r.status_code}")
        try:
            data = r.json()
        except ValueError as e:
            raise DataFetchError(f"data response is not JSON: {e}") from e
        if not isinstance(data, dict):
            raise DataFetchError(f"expected a JSON object, got {type(data).__name__}")
        return data

    def close(self) -> None:
        self._session.close()


def _first_sample(samples: Any) -> Optional[Dict[str, Any]]:
    if isinstance(samples, list) and samples and isinstance(samples[0], dict):
        return samples[0]
    return None


def _sample_ts(sample: Optional[Dict[str, Any]]) -> Optional[float]:
    if sample is None:
        return None
    try:
        return float(sample["timestamp"])
    except (KeyError, TypeError, ValueError):
        return None


def unwrap_cloud_record(av_record: Dict[str, Any], server: str, now: Optional[float] = None) -> Dict[str, Any]:
    """Flatten AirVantage path -> [{value, timestamp}, ...] into path -> value.

    `timestamp` (epoch seconds) comes from the battery voltage sample; without
    one, the newest first sample is used, then the current time.
    """
    record: Dict[str, Any] = {}
    newest_ms: Optional[float] = None
    for path, samples in av_record.items():
        first = _first_sample(samples)
        if first is None:
            logger.debug("no samples for %s", path)
            continue
        record[path] = first.get("value")
        ts = _sample_ts(first)
        if ts is not None and (newest_ms is None or ts > newest_ms):
            newest_ms = ts

    ref_ms = _sample_ts(_first_sample(av_record.get(REFERENCE_PATH)))
    if ref_ms is None:
        ref_ms = newest_ms
    if ref_ms is not None:
        record["timestamp"] = ref_ms / 1000.0
    else:
        record["timestamp"] = time.time() if now is None else float(now)

    record["origin"] = server
    return record
