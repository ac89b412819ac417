"""
Raw-stream transfer variant.

One TCP connection carries one file:
[int64 LE name length][UTF-8 name][int64 LE payload length][payload]
Not wire-compatible with the HTTP variant; both ends must use the same one.
"""

import logging
import socket
from dataclasses import dataclass
from pathlib import Path

from .protocol import create_frame_header, parse_frame_header
from .transfer import SendResult, TransferClient, TransferServer
from ..utils.constants import (ACCEPT_POLL_INTERVAL, APP_PORT, BUFFER_SIZE,
                               CONNECTION_TIMEOUT, PROTOCOL_STREAM)

logger = logging.getLogger(__name__)

LISTEN_BACKLOG = 16


@dataclass
class IncomingTransfer:
    """State of one inbound frame, owned by its handler thread."""
    file_name: str
    declared_length: int
    bytes_written: int = 0

    def iter_payload(self, sock: socket.socket):
        """Yields exactly declared_length bytes from the socket in bounded chunks."""
        while self.bytes_written < self.declared_length:
            read_size = min(BUFFER_SIZE, self.declared_length - self.bytes_written)
            chunk = sock.recv(read_size)
            if not chunk:
                raise ConnectionAbortedError(
                    f"Connection closed mid-file ({self.bytes_written}/{self.declared_length} bytes).")
            self.bytes_written += len(chunk)
            yield chunk


# --- Receiver ---
class StreamTransferServer(TransferServer):
    """Receives length-prefixed frames, one file per connection."""
    protocol_name = PROTOCOL_STREAM

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._server_socket: socket.socket | None = None

    def _open_listener(self):
        server_socket = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            server_socket.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            server_socket.bind((self.host, self.requested_port))
            server_socket.listen(LISTEN_BACKLOG)
            # Timeout for accept() so the loop can check the cancel event
            server_socket.settimeout(ACCEPT_POLL_INTERVAL)
        except OSError:
            server_socket.close()
            raise
        self._server_socket = server_socket
        self.port = server_socket.getsockname()[1]

    def _accept_loop(self):
        server_socket = self._server_socket
        cancel_event = self._cancel_event
        if server_socket is None:
            return
        while not cancel_event.is_set():
            try:
                client_socket, address = server_socket.accept()
            except socket.timeout:
                continue
            except OSError as e:
                if cancel_event.is_set():
                    # Listener closed by stop()
                    logger.debug("Stream listener closed: %s", e)
                else:
                    logger.error("Stream accept loop failed: %s", e)
                break
            self._spawn_handler(self._handle_connection, client_socket, address,
                                name=f"StreamHandler-{address[0]}:{address[1]}")

    def _close_listener(self):
        server_socket, self._server_socket = self._server_socket, None
        if server_socket is not None:
            server_socket.close()

    def _handle_connection(self, client_socket: socket.socket, address: tuple):
        """Receives one frame and stores it; errors only affect this connection."""
        addr_str = f"{address[0]}:{address[1]}"
        logger.debug("Incoming stream connection from %s", addr_str)
        # Accepted sockets inherit the listener timeout on some platforms.
        client_socket.settimeout(None)
        try:
            with client_socket:
                file_name, payload_length = parse_frame_header(client_socket)
                transfer = IncomingTransfer(file_name=file_name, declared_length=payload_length)
                destination = self._store_file(transfer.file_name, transfer.iter_payload(client_socket))
        except Exception as e:
            logger.error("Receive from %s failed: %s", addr_str, e)
            return

        logger.info("Received '%s' from %s (%d bytes).", destination.name, addr_str, transfer.bytes_written)
        self.notifier.notify(destination.name)


# --- Sender ---
class StreamTransferClient(TransferClient):
    """Sends one file per connection using the length-prefixed frame."""
    protocol_name = PROTOCOL_STREAM

    def __init__(self, port: int = APP_PORT, connect_timeout: float = CONNECTION_TIMEOUT):
        super().__init__(port)
        self.connect_timeout = connect_timeout

    def _send(self, target_address: str, file_path: Path) -> SendResult:
        payload_size = file_path.stat().st_size
        header = create_frame_header(file_path.name, payload_size)

        with socket.create_connection((target_address, self.port), timeout=self.connect_timeout) as sock:
            sock.settimeout(None)
            sock.sendall(header)
            bytes_sent = 0
            with open(file_path, 'rb') as f:
                while bytes_sent < payload_size:
                    chunk = f.read(min(BUFFER_SIZE, payload_size - bytes_sent))
                    if not chunk:
                        break
                    sock.sendall(chunk)
                    bytes_sent += len(chunk)
            if bytes_sent != payload_size:
                return SendResult.failed(
                    f"Error: file changed while sending ({bytes_sent}/{payload_size} bytes).")
            sock.shutdown(socket.SHUT_WR)
        return SendResult.ok()
