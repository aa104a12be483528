"""HTTP endpoint handing out voice channel tokens."""

import json
import logging
import threading
from http import HTTPStatus
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from urllib.parse import parse_qs, urlparse

from trickroom_server.voice import CredentialError, CredentialIssuer

logger = logging.getLogger(__name__)

TOKEN_PATH = "/agora-token"


class VoiceTokenHandler(BaseHTTPRequestHandler):
    """GET /agora-token?channelName=<name>&uid=<int>"""

    server: "VoiceTokenServer"

    def do_GET(self) -> None:
        parsed = urlparse(self.path)
        if parsed.path != TOKEN_PATH:
            self._send_json(HTTPStatus.NOT_FOUND, {"error": "Not found"})
            return

        params = parse_qs(parsed.query)
        channel_name = params.get("channelName", [""])[0]
        try:
            uid = int(params.get("uid", [""])[0])
        except ValueError:
            uid = None

        if not channel_name or uid is None:
            self._send_json(HTTPStatus.BAD_REQUEST, {"error": "channelName and uid are required"})
            return

        try:
            token = self.server.issuer.issue(channel_name, uid)
        except CredentialError as e:
            logger.warning(f"Voice token refused: {e}")
            self._send_json(HTTPStatus.SERVICE_UNAVAILABLE, {"error": str(e)})
            return

        self._send_json(HTTPStatus.OK, {"token": token})

    def _send_json(self, status: HTTPStatus, body: dict) -> None:
        data = json.dumps(body).encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(data)))
        self.send_header("Access-Control-Allow-Origin", "*")
        self.end_headers()
        self.wfile.write(data)

    def log_message(self, format: str, *args) -> None:
        logger.debug("%s - %s", self.address_string(), format % args)


class VoiceTokenServer(ThreadingHTTPServer):
    """Threaded HTTP server bound to a credential issuer."""

    daemon_threads = True

    def __init__(self, address: tuple[str, int], issuer: CredentialIssuer):
        super().__init__(address, VoiceTokenHandler)
        self.issuer = issuer

    def start_background(self) -> threading.Thread:
        """Serve in a daemon thread."""
        thread = threading.Thread(target=self.serve_forever, name="voice-token-http", daemon=True)
        thread.start()
        host, port = self.server_address[:2]
        logger.info(f"Voice token endpoint on http://{host}:{port}{TOKEN_PATH}")
        return thread
