"""
HTTP-style transfer variant.

The sender POSTs the raw file bytes (no multipart wrapper) to ``/upload`` with
the file name in the ``X-File-Name`` header (raw, or percent-encoded when
``X-File-Name-Encoding: percent`` is present); the receiver streams the body to
disk and answers 200, or 500 if anything went wrong. Any other method or path
gets 404.
"""

import logging
import threading
from http import HTTPStatus
from http.server import BaseHTTPRequestHandler, HTTPServer
from pathlib import Path
from urllib.parse import quote, unquote, urlsplit

import requests

from .transfer import SendResult, TransferClient, TransferServer
from ..utils.constants import (ACCEPT_POLL_INTERVAL, APP_PORT, BUFFER_SIZE, CONNECTION_TIMEOUT,
                               FILE_NAME_ENCODING_HEADER, FILE_NAME_HEADER, PERCENT_ENCODING,
                               PROTOCOL_HTTP, UPLOAD_PATH)

logger = logging.getLogger(__name__)

MAX_CHUNK_LINE = 1024 # Longest chunk-size line accepted in a chunked body


class UploadRequestHandler(BaseHTTPRequestHandler):
    """Handles one connection; only POST /upload does anything."""
    server_version = "LanPush/1.0"

    def log_message(self, format, *args): # noqa: A002
        logger.debug("%s - %s", self.address_string(), format % args)

    def _respond(self, status: HTTPStatus):
        self.send_response(status)
        self.send_header("Content-Length", "0")
        self.end_headers()

    def _not_found(self):
        self._respond(HTTPStatus.NOT_FOUND)

    do_GET = _not_found
    do_HEAD = _not_found
    do_PUT = _not_found
    do_DELETE = _not_found
    do_PATCH = _not_found
    do_OPTIONS = _not_found

    def do_POST(self):
        if urlsplit(self.path).path != UPLOAD_PATH:
            self._not_found()
            return

        transfer_server = self.server.transfer_server
        peer = self.client_address[0]
        declared_name = self.headers.get(FILE_NAME_HEADER)
        # Raw unless the sender marked it as percent-encoded
        encoding = self.headers.get(FILE_NAME_ENCODING_HEADER, "").strip().lower()
        if declared_name and encoding == PERCENT_ENCODING:
            declared_name = unquote(declared_name)

        try:
            destination = transfer_server._store_file(declared_name, self._iter_body())
        except Exception as e:
            logger.error("Upload from %s failed: %s", peer, e)
            self.close_connection = True
            try:
                self._respond(HTTPStatus.INTERNAL_SERVER_ERROR)
            except OSError as send_err:
                logger.debug("Could not send 500 to %s: %s", peer, send_err)
            return

        logger.info("Received '%s' from %s (%d bytes).", destination.name, peer, destination.stat().st_size)
        transfer_server.notifier.notify(destination.name)
        self._respond(HTTPStatus.OK)

    # --- Body readers ---
    def _iter_body(self):
        """Yields the request body in bounded chunks (Content-Length or chunked)."""
        if "chunked" in self.headers.get("Transfer-Encoding", "").lower():
            yield from self._iter_chunked()
            return

        length = int(self.headers.get("Content-Length") or 0)
        if length < 0:
            raise ValueError(f"Invalid Content-Length: {length}")
        yield from self._iter_exact(length)

    def _iter_exact(self, length: int):
        remaining = length
        while remaining > 0:
            chunk = self.rfile.read(min(BUFFER_SIZE, remaining))
            if not chunk:
                raise ConnectionAbortedError(f"Client disconnected with {remaining} bytes outstanding.")
            remaining -= len(chunk)
            yield chunk

    def _read_line(self) -> bytes:
        line = self.rfile.readline(MAX_CHUNK_LINE)
        if not line:
            raise ConnectionAbortedError("Client disconnected inside a chunked body.")
        return line

    def _iter_chunked(self):
        while True:
            size_field = self._read_line().split(b";", 1)[0].strip()
            try:
                size = int(size_field, 16)
            except ValueError:
                raise ValueError(f"Invalid chunk size: {size_field!r}") from None
            if size == 0:
                # Skip trailers up to the blank line
                while self._read_line() not in (b"\r\n", b"\n"):
                    pass
                return
            yield from self._iter_exact(size)
            self._read_line() # CRLF closing the chunk


class UploadHTTPServer(HTTPServer):
    """HTTPServer that hands each connection to the owner's supervised handler threads."""

    def __init__(self, server_address, transfer_server):
        self.transfer_server = transfer_server
        super().__init__(server_address, UploadRequestHandler)

    def process_request(self, request, client_address):
        self.transfer_server._spawn_handler(
            self._process_request_thread, request, client_address,
            name=f"HttpHandler-{client_address[0]}:{client_address[1]}")

    def _process_request_thread(self, request, client_address):
        try:
            self.finish_request(request, client_address)
        except Exception:
            self.handle_error(request, client_address)
        finally:
            self.shutdown_request(request)

    def handle_error(self, request, client_address):
        logger.exception("Error handling HTTP connection from %s", client_address[0])


# --- Receiver ---
class HttpTransferServer(TransferServer):
    """Receives files sent with POST /upload."""
    protocol_name = PROTOCOL_HTTP

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._httpd: UploadHTTPServer | None = None

    def _open_listener(self):
        self._httpd = UploadHTTPServer((self.host, self.requested_port), self)
        self.port = self._httpd.server_address[1]

    def _accept_loop(self):
        httpd = self._httpd
        if httpd is None:
            return
        try:
            httpd.serve_forever(poll_interval=ACCEPT_POLL_INTERVAL)
        except (OSError, ValueError) as e:
            if self._cancel_event.is_set():
                logger.debug("HTTP listener closed: %s", e)
            else:
                logger.exception("HTTP accept loop stopped unexpectedly")

    def _close_listener(self):
        httpd, self._httpd = self._httpd, None
        if httpd is None:
            return
        thread = self._accept_thread
        if thread is not None and thread.is_alive() and thread is not threading.current_thread():
            httpd.shutdown()
        httpd.server_close()


# --- Sender ---
class HttpTransferClient(TransferClient):
    """Uploads one file per request to a peer's /upload endpoint."""
    protocol_name = PROTOCOL_HTTP

    def __init__(self, port: int = APP_PORT, timeout=(CONNECTION_TIMEOUT, None)):
        super().__init__(port)
        self.timeout = timeout # (connect, read); no read timeout, large files take long

    def upload_url(self, target_address: str) -> str:
        return f"http://{target_address}:{self.port}{UPLOAD_PATH}"

    def _send(self, target_address: str, file_path: Path) -> SendResult:
        # Percent-encoded so names outside Latin-1 survive the header
        headers = {
            FILE_NAME_HEADER: quote(file_path.name, safe=""),
            FILE_NAME_ENCODING_HEADER: PERCENT_ENCODING,
        }
        with open(file_path, 'rb') as f:
            response = requests.post(self.upload_url(target_address), data=f,
                                     headers=headers, timeout=self.timeout)
        if response.ok:
            return SendResult.ok()
        return SendResult.failed(f"Error: {response.reason}")
