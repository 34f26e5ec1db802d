"""Debug GUI server for Spotguide."""

import asyncio
import http.server
import json
import queue
import socketserver
import threading
import time
import webbrowser
from functools import partial
from typing import Callable, Optional

from .config import CONFIG
from .models import Location, valid_coordinates


# HTML template for the debug GUI
DEBUG_GUI_HTML = '''<!DOCTYPE html>
<html>
<head>
    <title>Spotguide Debug GUI</title>
    <meta charset="utf-8" />
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <link rel="stylesheet" href="https://unpkg.com/leaflet@1.9.4/dist/leaflet.css" />
    <script src="https://unpkg.com/leaflet@1.9.4/dist/leaflet.js"></script>
    <style>
        * { margin: 0; padding: 0; box-sizing: border-box; }
        body { font-family: -apple-system, BlinkMacSystemFont, "Segoe UI", Roboto, sans-serif; height: 100vh; display: flex; flex-direction: column; }
        header { background: #1e293b; color: white; padding: 12px 20px; display: flex; justify-content: space-between; align-items: center; }
        header h1 { font-size: 18px; font-weight: 600; }
        .status-badge { background: #22c55e; padding: 4px 12px; border-radius: 12px; font-size: 12px; }
        .status-badge.disconnected { background: #ef4444; }
        .main-content { display: flex; flex: 1; overflow: hidden; }
        #map { flex: 1; min-width: 0; }
        .debug-panel { width: 400px; background: #f8fafc; display: flex; flex-direction: column; border-left: 1px solid #e2e8f0; }
        .panel-section { padding: 16px; border-bottom: 1px solid #e2e8f0; }
        .panel-section h2 { font-size: 12px; text-transform: uppercase; color: #64748b; margin-bottom: 12px; letter-spacing: 0.5px; }
        .state-grid { display: grid; grid-template-columns: 1fr 1fr; gap: 12px; }
        .state-item { background: white; padding: 10px; border-radius: 6px; border: 1px solid #e2e8f0; }
        .state-label { font-size: 11px; color: #64748b; margin-bottom: 4px; }
        .state-value { font-size: 16px; font-weight: 600; color: #1e293b; }
        .state-value.inside { color: #16a34a; }
        .state-value.outside { color: #dc2626; }
        #toggle-updates { margin-top: 12px; width: 100%; padding: 8px; border: none; border-radius: 6px; color: white; background: #ef4444; cursor: pointer; }
        #toggle-updates.paused { background: #22c55e; }
        .logs-section { flex: 1; display: flex; flex-direction: column; min-height: 0; }
        .logs-container { flex: 1; overflow-y: auto; padding: 12px; background: #1e293b; font-family: "SF Mono", Monaco, monospace; font-size: 12px; }
        .log-entry { color: #94a3b8; margin-bottom: 6px; line-height: 1.4; }
        .log-entry .timestamp { color: #64748b; }
        .log-entry .message { color: #e2e8f0; }
        .log-entry .data { color: #38bdf8; }
        .audio-section { background: #fef3c7; padding: 16px; }
        .audio-section h2 { color: #92400e; }
        .audio-text { font-size: 14px; color: #78350f; font-weight: 500; min-height: 20px; }
        .click-hint { position: absolute; bottom: 20px; left: 50%; transform: translateX(-50%); background: rgba(0,0,0,0.8); color: white; padding: 8px 16px; border-radius: 20px; font-size: 13px; z-index: 1000; pointer-events: none; }
        .marker-current { background: #ef4444; border: 3px solid white; border-radius: 50%; width: 16px; height: 16px; box-shadow: 0 2px 6px rgba(0,0,0,0.3); }
    </style>
</head>
<body>
    <header>
        <h1>Spotguide Debug GUI</h1>
        <span id="connection-status" class="status-badge disconnected">Disconnected</span>
    </header>
    <div class="main-content">
        <div id="map">
            <div class="click-hint">Click on map to set GPS location</div>
        </div>
        <div class="debug-panel">
            <div class="panel-section">
                <h2>State</h2>
                <div class="state-grid">
                    <div class="state-item">
                        <div class="state-label">Nearest Spot</div>
                        <div class="state-value" id="nearest-spot">-</div>
                    </div>
                    <div class="state-item">
                        <div class="state-label">Distance</div>
                        <div class="state-value" id="nearest-distance">-</div>
                    </div>
                    <div class="state-item">
                        <div class="state-label">Outcome</div>
                        <div class="state-value" id="outcome">-</div>
                    </div>
                    <div class="state-item">
                        <div class="state-label">Unlocked</div>
                        <div class="state-value" id="unlocked-count">0</div>
                    </div>
                    <div class="state-item">
                        <div class="state-label">GPS Status</div>
                        <div class="state-value" id="gps-status">-</div>
                    </div>
                    <div class="state-item">
                        <div class="state-label">Ticks</div>
                        <div class="state-value" id="tick-count">0</div>
                    </div>
                </div>
                <button id="toggle-updates">Stop updates</button>
            </div>
            <div class="panel-section audio-section">
                <h2>Announcement</h2>
                <div class="audio-text" id="audio-text">-</div>
            </div>
            <div class="panel-section logs-section">
                <h2>Logs</h2>
                <div class="logs-container" id="logs"></div>
            </div>
        </div>
    </div>
    <script>
        // Initialize map
        var map = L.map('map').setView([34.2959, 132.3197], 15);
        L.tileLayer('https://{s}.tile.openstreetmap.org/{z}/{x}/{y}.png', {
            attribution: '&copy; OpenStreetMap contributors'
        }).addTo(map);

        // State
        var ws = null;
        var spotLayer = null;
        var spotCircles = {};
        var currentMarker = null;
        var updatesEnabled = true;
        var fitted = false;

        var currentIcon = L.divIcon({className: 'marker-current', iconSize: [16, 16], iconAnchor: [8, 8]});

        function connect() {
            ws = new WebSocket('ws://localhost:{{WS_PORT}}');

            ws.onopen = function() {
                document.getElementById('connection-status').textContent = 'Connected';
                document.getElementById('connection-status').classList.remove('disconnected');
                addLog('Connected to spotguide');
            };

            ws.onclose = function() {
                document.getElementById('connection-status').textContent = 'Disconnected';
                document.getElementById('connection-status').classList.add('disconnected');
                addLog('Disconnected from spotguide');
                setTimeout(connect, 2000);
            };

            ws.onerror = function(err) {
                addLog('WebSocket error');
            };

            ws.onmessage = function(event) {
                var msg = JSON.parse(event.data);
                handleMessage(msg);
            };
        }

        function handleMessage(msg) {
            switch(msg.type) {
                case 'spots':
                    displaySpots(msg.data.spots);
                    break;
                case 'status':
                    showStatus(msg.data);
                    break;
                case 'unlock':
                    markUnlocked(msg.data);
                    break;
                case 'state':
                    updateState(msg.data);
                    break;
                case 'log':
                    addLog(msg.data.message, msg.data.data);
                    break;
                case 'audio':
                    document.getElementById('audio-text').textContent = msg.data.text;
                    break;
            }
        }

        function spotColor(spot) {
            return spot.unlocked ? '#22c55e' : '#3b82f6';
        }

        function displaySpots(spots) {
            if (spotLayer) {
                map.removeLayer(spotLayer);
            }
            spotLayer = L.layerGroup().addTo(map);
            spotCircles = {};
            var points = [];
            spots.forEach(function(spot) {
                if (spot.lat === null || spot.lon === null) {
                    return;
                }
                var circle = L.circle([spot.lat, spot.lon], {
                    radius: spot.radius_m,
                    color: spotColor(spot),
                    weight: 2,
                    fillOpacity: 0.15
                }).addTo(spotLayer);
                circle.bindPopup('<b>#' + spot.id + ' ' + spot.name + '</b><br>' +
                                 spot.radius_m.toFixed(0) + 'm' +
                                 (spot.unlocked ? '<br><em>Unlocked</em>' : ''));
                spotCircles[spot.id] = circle;
                points.push([spot.lat, spot.lon]);
            });
            if (points.length > 0 && !fitted) {
                map.fitBounds(L.latLngBounds(points), {padding: [50, 50]});
                fitted = true;
            }
            addLog('Spots received: ' + spots.length);
        }

        function markUnlocked(data) {
            var circle = spotCircles[data.spot_id];
            if (circle) {
                circle.setStyle({color: '#22c55e'});
            }
            addLog('Unlocked #' + data.spot_id + ' ' + data.spot_name, {media: data.media_reference});
        }

        function showStatus(data) {
            document.getElementById('nearest-spot').textContent = '#' + data.nearest_spot_id + ' ' + data.nearest_spot_name;
            var dist = document.getElementById('nearest-distance');
            dist.textContent = data.distance_meters.toFixed(1) + ' m';
            var inside = data.radius_meters !== null && data.distance_meters <= data.radius_meters;
            dist.className = 'state-value ' + (inside ? 'inside' : 'outside');
            document.getElementById('outcome').textContent = data.outcome_kind;
        }

        function updateState(state) {
            document.getElementById('unlocked-count').textContent = state.unlocked + ' / ' + state.total;
            document.getElementById('gps-status').textContent = state.gps_status || '-';
            document.getElementById('tick-count').textContent = state.ticks || 0;
            updatesEnabled = state.updates_enabled;
            var button = document.getElementById('toggle-updates');
            button.textContent = updatesEnabled ? 'Stop updates' : 'Start updates';
            button.className = updatesEnabled ? '' : 'paused';

            if (state.location) {
                var pos = [state.location.lat, state.location.lon];
                if (currentMarker) {
                    currentMarker.setLatLng(pos);
                } else {
                    currentMarker = L.marker(pos, {icon: currentIcon}).addTo(map);
                    currentMarker.bindPopup('Current position');
                }
            }
        }

        function addLog(message, data) {
            var logs = document.getElementById('logs');
            var entry = document.createElement('div');
            entry.className = 'log-entry';

            var timestamp = new Date().toLocaleTimeString();
            var html = '<span class="timestamp">[' + timestamp + ']</span> <span class="message">' + message + '</span>';
            if (data) {
                html += ' <span class="data">' + JSON.stringify(data) + '</span>';
            }
            entry.innerHTML = html;

            logs.appendChild(entry);
            logs.scrollTop = logs.scrollHeight;

            while (logs.children.length > 100) {
                logs.removeChild(logs.firstChild);
            }
        }

        function send(type, data) {
            if (ws && ws.readyState === WebSocket.OPEN) {
                ws.send(JSON.stringify({type: type, data: data}));
                return true;
            }
            return false;
        }

        map.on('click', function(e) {
            if (send('location', {lat: e.latlng.lat, lon: e.latlng.lng})) {
                addLog('Clicked location: ' + e.latlng.lat.toFixed(5) + ', ' + e.latlng.lng.toFixed(5));
            }
        });

        document.getElementById('toggle-updates').addEventListener('click', function() {
            send('updates_enabled', {enabled: !updatesEnabled});
        });

        connect();
    </script>
</body>
</html>'''


class DebugServer:
    """HTTP and WebSocket server for debug GUI"""

    def __init__(self, http_port: Optional[int] = None, ws_port: Optional[int] = None):
        self.http_port = http_port or CONFIG["debug_http_port"]
        self.ws_port = ws_port or CONFIG["debug_ws_port"]
        self.location_queue: queue.Queue = queue.Queue()
        self.on_updates_toggled: Optional[Callable[[bool], None]] = None
        self.on_client_connected: Optional[Callable[[], None]] = None
        self.http_thread = None
        self.ws_thread = None
        self.ws_loop = None
        self.connected_clients: set = set()
        self._running = False

    def start(self, open_browser: bool = True):
        """Start HTTP and WebSocket servers in background threads"""
        self._running = True

        self.http_thread = threading.Thread(target=self._run_http_server, daemon=True)
        self.http_thread.start()

        self.ws_thread = threading.Thread(target=self._run_ws_server, daemon=True)
        self.ws_thread.start()

        # Give servers time to start
        time.sleep(0.5)

        url = f"http://localhost:{self.http_port}"
        print(f"Debug GUI available at: {url}")
        if open_browser:
            webbrowser.open(url)

    def _run_http_server(self):
        """Run the HTTP server for serving the GUI"""
        handler = partial(_DebugHTTPHandler, self.ws_port)
        with socketserver.TCPServer(("", self.http_port), handler) as httpd:
            httpd.allow_reuse_address = True
            httpd.timeout = 0.5
            while self._running:
                httpd.handle_request()

    def handle_message(self, message: str):
        """Dispatch one message received from the browser"""
        try:
            data = json.loads(message)
        except json.JSONDecodeError:
            return
        if not isinstance(data, dict):
            return
        payload = data.get("data") or {}
        if data.get("type") == "location":
            try:
                location = Location(
                    lat=float(payload["lat"]),
                    lon=float(payload["lon"]),
                    accuracy=0,
                    timestamp=time.time()
                )
            except (KeyError, TypeError, ValueError):
                return
            if not valid_coordinates(location.lat, location.lon):
                return
            self.location_queue.put(location)
        elif data.get("type") == "updates_enabled" and self.on_updates_toggled:
            self.on_updates_toggled(bool(payload.get("enabled")))

    def _run_ws_server(self):
        """Run the WebSocket server"""
        self.ws_loop = asyncio.new_event_loop()
        asyncio.set_event_loop(self.ws_loop)

        async def handler(websocket):
            self.connected_clients.add(websocket)
            if self.on_client_connected:
                self.on_client_connected()
            try:
                async for message in websocket:
                    self.handle_message(message)
            finally:
                self.connected_clients.discard(websocket)

        async def main():
            try:
                import websockets
                async with websockets.serve(handler, "localhost", self.ws_port):
                    while self._running:
                        await asyncio.sleep(0.1)
            except OSError as e:
                print(f"WebSocket server error: {e}")

        self.ws_loop.run_until_complete(main())

    def _send_message(self, msg_type: str, data: dict):
        """Send a message to all connected WebSocket clients"""
        if not self.connected_clients or not self.ws_loop:
            return

        message = json.dumps({"type": msg_type, "data": data}, ensure_ascii=False, default=str)

        async def send_to_all():
            for client in list(self.connected_clients):
                try:
                    await client.send(message)
                except Exception:
                    self.connected_clients.discard(client)

        try:
            asyncio.run_coroutine_threadsafe(send_to_all(), self.ws_loop)
        except RuntimeError:
            pass  # Loop already closed

    def send_spots(self, spots: list[dict]):
        """Send the spot catalog to browser for display"""
        self._send_message("spots", {"spots": spots})

    def send_status(self, status: dict):
        self._send_message("status", status)

    def send_unlock(self, event: dict):
        self._send_message("unlock", event)

    def send_state(self, state: dict):
        """Send state update to browser"""
        self._send_message("state", state)

    def send_log(self, message: str, data: Optional[dict] = None):
        """Send log message to browser"""
        self._send_message("log", {"message": message, "data": data})

    def send_audio(self, text: str):
        """Send announcement text to browser"""
        self._send_message("audio", {"text": text})

    def stop(self):
        """Stop the servers"""
        self._running = False


class _DebugHTTPHandler(http.server.SimpleHTTPRequestHandler):
    """HTTP handler that serves the debug GUI"""

    def __init__(self, ws_port: int, *args, **kwargs):
        self.ws_port = ws_port
        super().__init__(*args, **kwargs)

    def do_GET(self):
        if self.path == '/' or self.path == '/index.html':
            self.send_response(200)
            self.send_header('Content-type', 'text/html; charset=utf-8')
            self.end_headers()
            html = DEBUG_GUI_HTML.replace('{{WS_PORT}}', str(self.ws_port))
            self.wfile.write(html.encode())
        else:
            self.send_error(404)

    def log_message(self, format, *args):
        pass  # Suppress HTTP log messages


class WebSocketPosition:
    """Position source fed by map clicks in the debug GUI"""

    def __init__(self, debug_server: DebugServer):
        self.server = debug_server
        self.last_location: Optional[Location] = None
        self.updating = False

    def latest_position(self) -> Optional[Location]:
        """Newest clicked location, never blocks"""
        while True:
            try:
                self.last_location = self.server.location_queue.get_nowait()
            except queue.Empty:
                return self.last_location

    def start_updates(self):
        self.updating = True

    def stop_updates(self):
        self.updating = False

    def get_status(self) -> str:
        if self.last_location is None:
            return "Debug GUI (click map to set location)"
        return f"Debug GUI {self.last_location.lat:.5f}, {self.last_location.lon:.5f}"
