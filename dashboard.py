#!/usr/bin/env python3
from __future__ import annotations

import html
import logging
import time
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request
from fastapi.responses import HTMLResponse, JSONResponse, Response

from acquisition import AcquisitionController, RefreshPoller
from airvantage import AirVantageClient, AirVantageConfig, AuthSession, FileCredentialsProvider
from config import Settings
from display import PLACEHOLDER, DisplayBoard, render_values
from field_map import FIELD_MAP
from local_device import LocalDeviceClient, local_device_url
from logging_setup import setup_logging
from normalizer import DERIVED_KEYS

logger = logging.getLogger("ui")

BUILD_ID = str(int(time.time()))

# Every key a DisplayRecord can carry, in mapper order.
DISPLAY_KEYS: List[str] = list(dict.fromkeys([m.key for m in FIELD_MAP.values()] + list(DERIVED_KEYS)))


def _q_int(request: Request, *names: str, default: int) -> int:
    qp = request.query_params
    for n in names:
        raw = str(qp.get(n, "")).strip()
        if raw == "":
            continue
        try:
            return int(raw)
        except ValueError:
            return default
    return default


def build_controller(settings: Settings, board: DisplayBoard) -> AcquisitionController:
    local = LocalDeviceClient(
        local_device_url(settings.device_host, settings.device_port, settings.device_path),
        timeout_sec=settings.device_timeout_sec,
    )

    cloud: Optional[AirVantageClient] = None
    credentials: Optional[FileCredentialsProvider] = None
    if settings.cloud_configured:
        cloud = AirVantageClient(
            AirVantageConfig.from_settings(settings),
            timeout_sec=settings.av_timeout_sec,
            verify_ssl=settings.av_verify_ssl,
        )
        credentials = FileCredentialsProvider(settings.av_auth_file)
    else:
        logger.warning("AV_SYSTEM / AV_CLIENT_ID / AV_CLIENT_SECRET missing: AirVantage fallback disabled")

    return AcquisitionController(local, cloud, credentials, AuthSession(), board)


_HTML_TEMPLATE = """<!doctype html>
<html lang="en">
<head>
  <meta charset="utf-8" />
  <meta name="viewport" content="width=device-width, initial-scale=1" />
  <meta http-equiv="Cache-Control" content="no-store" />
  <title>Boat power - Live</title>
  <style>
    body { font-family: system-ui, -apple-system, Segoe UI, Roboto, sans-serif; margin: 0; background: #0b0f14; color: #e6edf3; }
    header { padding: 12px 16px; border-bottom: 1px solid #202938; display: flex; gap: 12px; align-items: baseline; }
    header h1 { font-size: 16px; margin: 0; font-weight: 600; }
    header .status { font-size: 12px; opacity: 0.85; }
    main { padding: 16px; display: grid; gap: 12px; grid-template-columns: 1fr; }
    .grid { display: grid; gap: 12px; grid-template-columns: repeat(auto-fit, minmax(260px, 1fr)); }
    .card { background: #0f1723; border: 1px solid #202938; border-radius: 10px; padding: 12px; }
    .card h2 { font-size: 13px; margin: 0 0 8px; opacity: 0.9; }
    .kv { display: grid; grid-template-columns: 140px 1fr; gap: 4px 10px; font-size: 13px; }
    .kv div:nth-child(odd) { opacity: 0.75; }
    .err { background: rgba(248, 81, 73, 0.08); border: 1px solid rgba(248, 81, 73, 0.55); border-radius: 10px; padding: 12px; }
    .err pre { margin: 0; white-space: pre-wrap; word-break: break-word; }
    .build { margin-left: auto; opacity: 0.55; font-size: 11px; }
    button { background: #1f6feb; color: #fff; border: 0; border-radius: 6px; padding: 4px 10px; cursor: pointer; }
  </style>
</head>
<body data-build="__BUILD__" data-refresh="__UI_REFRESH__">
  <header>
    <h1>Boat power - Live</h1>
    <div class="status" id="status">__STATUS__</div>
    <div class="status"><span class="origin">__origin__</span> @ <span class="timestamp">__timestamp__</span></div>
    <button id="refresh" type="button">Refresh</button>
    <div class="build">build: __BUILD__</div>
  </header>

  <main>
    <div class="err" id="dataError" style="__ERROR_STYLE__">
      <h2>Data unavailable</h2>
      <pre id="dataErrorText">__ERROR__</pre>
    </div>

    <div class="card">
      <div class="kv">
        <div>origin</div><div id="origin">__origin__</div>
        <div>timestamp</div><div id="timestamp">__timestamp__</div>
      </div>
    </div>

    <div class="grid">
      <div class="card">
        <h2>Battery</h2>
        <div class="kv">
          <div>voltage</div><div id="voltage_battery">__voltage_battery__</div>
          <div>current</div><div id="current_battery">__current_battery__</div>
          <div>state of charge</div><div id="state_of_charge">__state_of_charge__</div>
          <div>consumed</div><div id="consumed_energy">__consumed_energy__</div>
          <div>time to go</div><div id="time_to_go">__time_to_go__</div>
          <div>out power</div><div id="out_power_battery">__out_power_battery__</div>
        </div>
      </div>

      <div class="card">
        <h2>Solar</h2>
        <div class="kv">
          <div>panels power</div><div id="power_panels">__power_panels__</div>
          <div>panels voltage</div><div id="voltage_panels">__voltage_panels__</div>
          <div>into battery</div><div id="solar_power_battery">__solar_power_battery__</div>
          <div>mppt current</div><div id="mppt_ibatt">__mppt_ibatt__</div>
          <div>mppt voltage</div><div id="mppt_vbatt">__mppt_vbatt__</div>
        </div>
      </div>

      <div class="card">
        <h2>Position</h2>
        <div class="kv">
          <div>latitude</div><div id="latitude">__latitude__</div>
          <div>longitude</div><div id="longitude">__longitude__</div>
          <div>altitude</div><div id="altitude">__altitude__</div>
        </div>
      </div>
    </div>

    <script src="/app.js?v=__BUILD__"></script>
  </main>
</body>
</html>
"""

_JS_TEMPLATE = """(function() {
  function $(id) { return document.getElementById(id); }

  // Write each value to the element with that id and to every element with that class.
  function fill(record) {
    if (!record) return;
    Object.keys(record).forEach(function(key) {
      var v = record[key];
      var text = (v === null || v === undefined) ? '-' : String(v);
      var el = $(key);
      if (el) el.textContent = text;
      var els = document.getElementsByClassName(key);
      for (var i = 0; i < els.length; i++) els[i].textContent = text;
    });
  }

  function show(snap) {
    fill(snap.record);
    var st = $('status');
    if (st) st.textContent = snap.status;
    var box = $('dataError');
    var pre = $('dataErrorText');
    if (box && pre) {
      box.style.display = snap.error ? 'block' : 'none';
      pre.textContent = snap.error || '';
    }
  }

  function load(url, method) {
    return fetch(url, { method: method || 'GET', cache: 'no-store' })
      .then(function(r) { return r.json(); })
      .then(show)
      .catch(function(e) { var st = $('status'); if (st) st.textContent = 'ui error: ' + e; });
  }

  var btn = $('refresh');
  if (btn) btn.addEventListener('click', function() { load('/api/refresh', 'POST'); });

  var period = parseInt(document.body.getAttribute('data-refresh') || '0', 10);
  if (period > 0) setInterval(function() { load('/api/display'); }, period * 1000);
})();"""


def render_page(snapshot: Dict[str, Any], ui_refresh_sec: int) -> str:
    values = {k: PLACEHOLDER for k in DISPLAY_KEYS}
    values.update(render_values(snapshot.get("record")))

    error = snapshot.get("error")
    html_doc = _HTML_TEMPLATE
    html_doc = html_doc.replace("__BUILD__", BUILD_ID)
    html_doc = html_doc.replace("__UI_REFRESH__", str(int(ui_refresh_sec)))
    html_doc = html_doc.replace("__STATUS__", html.escape(str(snapshot.get("status"))))
    html_doc = html_doc.replace("__ERROR_STYLE__", "" if error else "display:none;")
    html_doc = html_doc.replace("__ERROR__", html.escape(str(error or "")))
    for k, v in values.items():
        html_doc = html_doc.replace(f"__{k}__", html.escape(v))
    return html_doc


def create_app(
    settings: Optional[Settings] = None,
    controller: Optional[AcquisitionController] = None,
    board: Optional[DisplayBoard] = None,
    poller: Optional[RefreshPoller] = None,
) -> FastAPI:
    settings = settings or Settings.from_env()
    board = board or (controller.sink if controller is not None else DisplayBoard())
    controller = controller or build_controller(settings, board)
    poller = poller or RefreshPoller(controller, period_sec=settings.refresh_period_sec)

    app = FastAPI(title="Boat power dashboard")
    app.state.controller = controller
    app.state.board = board
    app.state.poller = poller

    @app.on_event("startup")
    def _start_poller() -> None:
        if poller.enabled:
            logger.info("refresh poller every %.1fs", poller.period_sec)
        poller.start()

    @app.on_event("shutdown")
    def _stop_poller() -> None:
        poller.close()

    @app.get("/api/health")
    def health() -> Dict[str, Any]:
        snap = board.snapshot()
        return {"ok": True, "has_token": controller.auth.has_token(), "status": snap["status"]}

    @app.get("/api/display")
    def display() -> JSONResponse:
        return JSONResponse(content=board.snapshot(), headers={"cache-control": "no-store"})

    @app.post("/api/refresh")
    def refresh() -> JSONResponse:
        controller.refresh()
        return JSONResponse(content=board.snapshot(), headers={"cache-control": "no-store"})

    @app.get("/", response_class=HTMLResponse)
    def index(request: Request) -> HTMLResponse:
        refresh_sec = _q_int(request, "refresh", default=settings.ui_refresh_sec)
        refresh_sec = max(0, min(3600, refresh_sec))
        return HTMLResponse(content=render_page(board.snapshot(), refresh_sec), headers={"cache-control": "no-store"})

    @app.get("/app.js")
    def app_js() -> Response:
        return Response(
            content=_JS_TEMPLATE,
            media_type="application/javascript; charset=utf-8",
            headers={"cache-control": "no-store"},
        )

    return app


if __name__ == "__main__":
    import uvicorn

    _settings = Settings.from_env()
    setup_logging("dashboard", debug_default=_settings.debug)

    logger.info(
        "[start] ui host=%s port=%s device=%s:%s cloud=%s refresh=%ss",
        _settings.ui_host,
        _settings.ui_port,
        _settings.device_host,
        _settings.device_port,
        _settings.av_server if _settings.cloud_configured else "off",
        _settings.refresh_period_sec,
    )

    uvicorn.run(create_app(_settings), host=_settings.ui_host, port=_settings.ui_port, log_level="info", log_config=None)
