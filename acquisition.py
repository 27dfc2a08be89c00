#!/usr/bin/env python3
from __future__ import annotations

import logging
import threading
import time
from typing import Any, Dict, Optional

from airvantage import AirVantageClient, AuthSession, FileCredentialsProvider, unwrap_cloud_record
from errors import NetworkError, TelemetryError
from local_device import LocalDeviceClient, tag_local_record
from normalizer import DisplayRecord, normalize

logger = logging.getLogger("acquisition")


class AcquisitionController:
    """One refresh cycle: local device first, AirVantage if that fails.

        refresh = fetch_local() or else fetch_via_cloud()
        fetch_via_cloud = ensure_token() then fetch_cloud_data()

    Every outcome lands in `sink`: `fill(record)` on success, `fail(reason)`
    when the cloud path could not deliver either.
    """

    def __init__(
        self,
        local: LocalDeviceClient,
        cloud: Optional[AirVantageClient],
        credentials: Optional[FileCredentialsProvider],
        auth: AuthSession,
        sink: Any,
    ):
        self.local = local
        self.cloud = cloud
        self.credentials = credentials
        self.auth = auth
        self.sink = sink
        self._in_flight = threading.Lock()

    def refresh(self) -> Optional[DisplayRecord]:
        # Overlapping refreshes (button mashing + poller) are skipped, not queued.
        if not self._in_flight.acquire(blocking=False):
            logger.debug("refresh already in flight; skipped")
            return None
        try:
            return self._refresh()
        finally:
            self._in_flight.release()

    def _refresh(self) -> Optional[DisplayRecord]:
        raw = self.fetch_local()
        if raw is None:
            logger.info("No direct access, trying through AirVantage")
            try:
                raw = self.fetch_via_cloud()
            except TelemetryError as e:
                logger.error("refresh failed: %s", e)
                self.sink.fail(str(e))
                return None

        record = normalize(raw)
        self.sink.fill(record)
        logger.info("values update origin=%s", record.get("origin"))
        return record

    def fetch_local(self) -> Optional[Dict[str, Any]]:
        try:
            payload = self.local.get_record()
        except NetworkError as e:
            logger.info("local device unreachable: %s", e)
            return None
        return tag_local_record(payload)

    def fetch_via_cloud(self) -> Dict[str, Any]:
        if self.cloud is None:
            raise NetworkError("local device unreachable and AirVantage fallback is not configured")
        token = self.ensure_token()
        return self.fetch_cloud_data(token)

    def ensure_token(self) -> str:
        if self.auth.has_token():
            return self.auth.get_token()
        if self.cloud is None or self.credentials is None:
            raise NetworkError("AirVantage fallback is not configured")

        logger.info("Retrieve AirVantage credentials")
        creds = self.credentials.load()
        logger.info("Request AirVantage access token")
        self.auth.set_token(self.cloud.request_token(creds))
        return self.auth.get_token()

    def fetch_cloud_data(self, token: str) -> Dict[str, Any]:
        if self.cloud is None:
            raise NetworkError("AirVantage fallback is not configured")
        logger.info("Retrieving latest data from AirVantage")
        av_record = self.cloud.get_latest_data(token)
        return unwrap_cloud_record(av_record, self.cloud.config.server)


class RefreshPoller:
    """Call `controller.refresh()` every `period_sec` on a daemon thread."""

    def __init__(self, controller: AcquisitionController, period_sec: float = 5.0):
        self.controller = controller
        self.period_sec = float(period_sec)

        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def enabled(self) -> bool:
        return self.period_sec > 0

    def start(self) -> None:
        if not self.enabled or self._thread is not None:
            return
        self._thread = threading.Thread(target=self._run, name="refresh-poller", daemon=True)
        self._thread.start()

    def close(self) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=5)
            self._thread = None

    def _run(self) -> None:
        while not self._stop.is_set():
            started = time.time()
            try:
                self.controller.refresh()
            except Exception:
                logger.exception("refresh cycle crashed")

            # Event.wait so close() is responsive.
            remaining = self.period_sec - (time.time() - started)
            self._stop.wait(max(0.1, remaining))
