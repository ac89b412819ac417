"""Shared fixtures for the receiver tests: a temp save directory and a server on a free loopback port."""

import socket
import tempfile
import threading
import unittest
from pathlib import Path

from lanpush.network.events import FileReceivedNotifier
from lanpush.network.factory import create_client, create_server
from lanpush.utils.save_path import SavePathResolver

WAIT_TIMEOUT = 10.0


def free_port() -> int:
    """A port nothing is listening on (bound then released)."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


class ReceiverTestCase(unittest.TestCase):
    protocol = None

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.base = Path(self._tmp.name)
        self.save_dir = self.base / "ReceivedFiles"
        self.source_dir = self.base / "outgoing"
        self.source_dir.mkdir()

        self.received = []
        self._received_cond = threading.Condition()
        self.notifier = FileReceivedNotifier()
        self.notifier.subscribe(self._on_received)

        self.server = create_server(self.protocol, SavePathResolver(default_directory=self.save_dir),
                                    notifier=self.notifier, host="127.0.0.1", port=0)
        self.server.start()
        self.client = create_client(self.protocol, port=self.server.port)

    def tearDown(self):
        self.server.close()
        self._tmp.cleanup()

    def _on_received(self, file_name):
        with self._received_cond:
            self.received.append(file_name)
            self._received_cond.notify_all()

    def wait_for_received(self, count: int):
        with self._received_cond:
            ok = self._received_cond.wait_for(lambda: len(self.received) >= count, timeout=WAIT_TIMEOUT)
        self.assertTrue(ok, f"expected {count} received file(s), got {self.received}")

    def make_file(self, name: str, content: bytes) -> Path:
        path = self.source_dir / name
        path.write_bytes(content)
        return path

    def saved_names(self) -> list[str]:
        if not self.save_dir.exists():
            return []
        return sorted(p.name for p in self.save_dir.iterdir())
