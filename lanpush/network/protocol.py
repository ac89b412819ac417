import socket
import struct

from .errors import FrameError
from ..utils.constants import FILE_NAME_ENCODING, LENGTH_FORMAT, MAX_FILE_NAME_BYTES

# --- Constants ---
LENGTH_SIZE = struct.calcsize(LENGTH_FORMAT) # 8 bytes


# --- Frame Creation ---

def pack_length(value: int) -> bytes:
    return struct.pack(LENGTH_FORMAT, value)


def unpack_length(data: bytes) -> int:
    return struct.unpack(LENGTH_FORMAT, data)[0]


def create_frame_header(file_name: str, payload_size: int) -> bytes:
    """
    Builds everything that precedes the payload:
    [int64 LE name length][UTF-8 name][int64 LE payload length]
    """
    name_bytes = file_name.encode(FILE_NAME_ENCODING)
    if len(name_bytes) > MAX_FILE_NAME_BYTES:
        raise FrameError(f"File name is {len(name_bytes)} bytes, limit is {MAX_FILE_NAME_BYTES}.")
    if payload_size < 0:
        raise FrameError(f"Invalid payload size: {payload_size}")
    return pack_length(len(name_bytes)) + name_bytes + pack_length(payload_size)


# --- Frame Parsing ---

def read_exact(sock: socket.socket, num_bytes: int) -> bytes:
    """
    Reads exactly num_bytes from the socket.

    Raises ConnectionAbortedError if the peer closes the connection first.
    """
    if num_bytes <= 0:
        return b''
    buffer = bytearray(num_bytes)
    view = memoryview(buffer)
    received = 0
    while received < num_bytes:
        count = sock.recv_into(view[received:], num_bytes - received)
        if count == 0:
            raise ConnectionAbortedError(
                f"Connection closed while reading {num_bytes} bytes (received {received}).")
        received += count
    return bytes(buffer)


def parse_frame_header(sock: socket.socket) -> tuple[str, int]:
    """Reads the name and payload length of one frame. Returns (file_name, payload_length)."""
    name_length = unpack_length(read_exact(sock, LENGTH_SIZE))
    if not 0 <= name_length <= MAX_FILE_NAME_BYTES:
        raise FrameError(f"Declared file name length {name_length} is out of range.")

    name_bytes = read_exact(sock, name_length)
    try:
        file_name = name_bytes.decode(FILE_NAME_ENCODING)
    except UnicodeDecodeError as e:
        raise FrameError(f"File name is not valid {FILE_NAME_ENCODING}: {e}") from e

    payload_length = unpack_length(read_exact(sock, LENGTH_SIZE))
    if payload_length < 0:
        raise FrameError(f"Declared payload length {payload_length} is negative.")
    return file_name, payload_length
