import socket
import struct
import unittest

from lanpush.network.errors import FrameError
from lanpush.network.protocol import (LENGTH_SIZE, create_frame_header, pack_length,
                                      parse_frame_header, read_exact)


class TestFrameHeader(unittest.TestCase):

    def setUp(self):
        self.sender, self.receiver = socket.socketpair()

    def tearDown(self):
        self.sender.close()
        self.receiver.close()

    def test_header_layout(self):
        header = create_frame_header("ab.txt", 300)
        self.assertEqual(LENGTH_SIZE, 8)
        self.assertEqual(header, struct.pack("<q", 6) + b"ab.txt" + struct.pack("<q", 300))

    def test_parse_header_and_leave_payload(self):
        self.sender.sendall(create_frame_header("naïve.bin", 3) + b"xyz")
        self.assertEqual(parse_frame_header(self.receiver), ("naïve.bin", 3))
        self.assertEqual(read_exact(self.receiver, 3), b"xyz")

    def test_empty_name_and_payload(self):
        self.sender.sendall(create_frame_header("", 0))
        self.assertEqual(parse_frame_header(self.receiver), ("", 0))

    def test_negative_name_length_rejected(self):
        self.sender.sendall(pack_length(-1))
        with self.assertRaises(FrameError):
            parse_frame_header(self.receiver)

    def test_oversized_name_length_rejected(self):
        self.sender.sendall(pack_length(1 << 40))
        with self.assertRaises(FrameError):
            parse_frame_header(self.receiver)

    def test_invalid_utf8_rejected(self):
        self.sender.sendall(pack_length(2) + b"\xff\xfe" + pack_length(0))
        with self.assertRaises(FrameError):
            parse_frame_header(self.receiver)

    def test_negative_payload_length_rejected(self):
        self.sender.sendall(pack_length(1) + b"a" + pack_length(-5))
        with self.assertRaises(FrameError):
            parse_frame_header(self.receiver)

    def test_truncated_header_raises_connection_aborted(self):
        self.sender.sendall(pack_length(10) + b"abc")
        self.sender.shutdown(socket.SHUT_WR)
        with self.assertRaises(ConnectionAbortedError):
            parse_frame_header(self.receiver)

    def test_create_rejects_bad_values(self):
        with self.assertRaises(FrameError):
            create_frame_header("x" * 5000, 1)
        with self.assertRaises(FrameError):
            create_frame_header("x", -1)


if __name__ == '__main__':
    unittest.main()
