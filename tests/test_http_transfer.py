"""
Integration tests for the HTTP receiver and sender in lanpush/network/http_transfer.py

Each test runs a real receiver on a free loopback port.
"""

import os
import socket
import threading
import unittest
import uuid

import requests

from helpers import ReceiverTestCase, free_port
from lanpush.network.errors import ServerStartError
from lanpush.network.http_transfer import HttpTransferClient, HttpTransferServer
from lanpush.network.transfer import ServerState
from lanpush.utils.save_path import SavePathResolver


class TestHttpTransfer(ReceiverTestCase):
    protocol = "http"

    def url(self, path="/upload"):
        return f"http://127.0.0.1:{self.server.port}{path}"

    def test_send_round_trip(self):
        content = os.urandom(300 * 1024)
        result = self.client.send("127.0.0.1", self.make_file("photo.jpg", content))
        self.assertTrue(result.success, result.message)
        self.assertEqual(result.message, "Success")
        self.assertEqual((self.save_dir / "photo.jpg").read_bytes(), content)
        self.wait_for_received(1)
        self.assertEqual(self.received, ["photo.jpg"])

    def test_empty_file(self):
        result = self.client.send("127.0.0.1", self.make_file("empty.txt", b""))
        self.assertTrue(result.success, result.message)
        self.assertEqual((self.save_dir / "empty.txt").read_bytes(), b"")

    def test_non_ascii_file_name(self):
        result = self.client.send("127.0.0.1", self.make_file("résumé 日本.txt", b"cv"))
        self.assertTrue(result.success, result.message)
        self.assertEqual(self.saved_names(), ["résumé 日本.txt"])

    def test_same_name_overwrites(self):
        path = self.make_file("a.txt", b"first")
        self.client.send("127.0.0.1", path)
        path.write_bytes(b"second")
        self.client.send("127.0.0.1", path)
        self.assertEqual((self.save_dir / "a.txt").read_bytes(), b"second")
        self.assertEqual(self.saved_names(), ["a.txt"])

    def test_path_traversal_is_confined(self):
        response = requests.post(self.url(), data=b"pwned", headers={"X-File-Name": "../../evil.txt"}, timeout=10)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.saved_names(), ["evil.txt"])
        self.assertFalse((self.base / "evil.txt").exists())

    def test_raw_name_header_is_kept_verbatim(self):
        response = requests.post(self.url(), data=b"raw", headers={"X-File-Name": "sale%41%2e50.txt"}, timeout=10)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.saved_names(), ["sale%41%2e50.txt"])
        self.assertEqual(self.received, ["sale%41%2e50.txt"])

    def test_percent_encoded_name_when_marked(self):
        response = requests.post(self.url(), data=b"enc",
                                 headers={"X-File-Name": "na%C3%AFve%20file.txt", "X-File-Name-Encoding": "percent"},
                                 timeout=10)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.saved_names(), ["naïve file.txt"])

    def test_drive_relative_name_is_confined(self):
        response = requests.post(self.url(), data=b"x", headers={"X-File-Name": "C:evil.txt"}, timeout=10)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.saved_names(), ["evil.txt"])

    def test_storage_failure_returns_500_and_server_survives(self):
        # A regular file where the save directory should be
        self.save_dir.write_bytes(b"")
        response = requests.post(self.url(), headers={"X-File-Name": "doomed.txt"}, timeout=10)
        self.assertEqual(response.status_code, 500)
        self.assertEqual(self.received, [])
        self.assertTrue(self.server.is_running)
        self.assertEqual(requests.get(self.url(), timeout=10).status_code, 404)

    def test_body_dropped_mid_transfer_leaves_nothing(self):
        request = (b"POST /upload HTTP/1.1\r\nHost: 127.0.0.1\r\nX-File-Name: partial.bin\r\n"
                   b"Content-Length: 100000\r\n\r\n" + b"x" * 1000)
        with socket.create_connection(("127.0.0.1", self.server.port), timeout=10) as sock:
            sock.sendall(request)
        result = self.client.send("127.0.0.1", self.make_file("marker.txt", b"ok"))
        self.assertTrue(result.success, result.message)
        self.assertTrue(self.server.wait_for_handlers(10))
        self.assertEqual(self.saved_names(), ["marker.txt"])
        self.assertEqual(self.received, ["marker.txt"])

    def test_missing_name_header_generates_name(self):
        response = requests.post(self.url(), data=b"abc", timeout=10)
        self.assertEqual(response.status_code, 200)
        names = self.saved_names()
        self.assertEqual(len(names), 1)
        name = names[0]
        self.assertTrue(name.startswith("received_") and name.endswith(".dat"), name)
        uuid.UUID(name[len("received_"):-len(".dat")])
        self.assertEqual((self.save_dir / name).read_bytes(), b"abc")

    def test_chunked_body(self):
        response = requests.post(self.url(), data=iter([b"ab", b"cd", b"ef" * 5000]),
                                 headers={"X-File-Name": "chunked.bin"}, timeout=10)
        self.assertEqual(response.status_code, 200)
        self.assertEqual((self.save_dir / "chunked.bin").read_bytes(), b"abcd" + b"ef" * 5000)

    def test_other_methods_and_paths_get_404(self):
        self.assertEqual(requests.get(self.url(), timeout=10).status_code, 404)
        self.assertEqual(requests.put(self.url(), timeout=10).status_code, 404)
        self.assertEqual(requests.post(self.url("/elsewhere"), headers={"X-File-Name": "x.txt"}, timeout=10).status_code, 404)
        self.assertEqual(self.saved_names(), [])
        self.assertEqual(self.received, [])

    def test_concurrent_sends(self):
        files = {f"file{i}.bin": os.urandom(64 * 1024 + i) for i in range(6)}
        paths = [self.make_file(name, data) for name, data in files.items()]
        results = []
        lock = threading.Lock()

        def send(path):
            result = HttpTransferClient(port=self.server.port).send("127.0.0.1", path)
            with lock:
                results.append(result)

        threads = [threading.Thread(target=send, args=(p,)) for p in paths]
        for t in threads:
            t.start()
        for t in threads:
            t.join(10)

        self.assertTrue(all(r.success for r in results), results)
        self.wait_for_received(len(files))
        for name, data in files.items():
            self.assertEqual((self.save_dir / name).read_bytes(), data)
        self.assertEqual(sorted(self.received), sorted(files))

    def test_stop_and_restart(self):
        first_cancel = self.server.cancel_event
        self.server.stop()
        self.server.stop() # idempotent
        self.assertEqual(self.server.state, ServerState.STOPPED)
        self.assertTrue(first_cancel.is_set())

        self.server.start()
        self.assertTrue(self.server.is_running)
        self.assertIsNot(self.server.cancel_event, first_cancel)
        self.server.start() # no-op while running

        client = HttpTransferClient(port=self.server.port)
        result = client.send("127.0.0.1", self.make_file("again.txt", b"hi"))
        self.assertTrue(result.success, result.message)

    def test_stopped_server_refuses_connections(self):
        port = self.server.port
        self.server.stop()
        result = HttpTransferClient(port=port).send("127.0.0.1", self.make_file("late.txt", b"x"))
        self.assertFalse(result.success)
        self.assertTrue(result.message.startswith("Connection error:"), result.message)


class TestHttpClientFailures(unittest.TestCase):

    def test_empty_address(self):
        result = HttpTransferClient().send("  ", __file__)
        self.assertFalse(result.success)
        self.assertEqual(result.message, "Target address is empty.")

    def test_missing_file(self):
        result = HttpTransferClient().send("127.0.0.1", "/definitely/not/here.bin")
        self.assertFalse(result.success)
        self.assertEqual(result.message, "File not found.")

    def test_connection_refused(self):
        result = HttpTransferClient(port=free_port()).send("127.0.0.1", __file__)
        self.assertFalse(result)
        self.assertTrue(result.message.startswith("Connection error:"), result.message)

    def test_upload_url(self):
        self.assertEqual(HttpTransferClient().upload_url("192.168.1.7"), "http://192.168.1.7:8080/upload")


class TestHttpServerStart(unittest.TestCase):

    def test_port_in_use_raises(self):
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as blocker:
            blocker.bind(("127.0.0.1", 0))
            blocker.listen(1)
            port = blocker.getsockname()[1]
            server = HttpTransferServer(SavePathResolver(default_directory="unused"), host="127.0.0.1", port=port)
            with self.assertRaises(ServerStartError):
                server.start()
            self.assertEqual(server.state, ServerState.STOPPED)

    def test_context_manager(self):
        with HttpTransferServer(SavePathResolver(default_directory="unused"), host="127.0.0.1", port=0) as server:
            self.assertTrue(server.is_running)
            self.assertNotEqual(server.port, 0)
        self.assertFalse(server.is_running)


if __name__ == '__main__':
    unittest.main()
