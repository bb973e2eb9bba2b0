"""Send a file to a machine over TCP, optionally preceded by a load header."""
from __future__ import annotations

import math
import os
import re
import socket
import sys
from functools import partial
from typing import BinaryIO

DEFAULT_START = 32768
UPLOAD_PORT = 2000
MAX_FILE_SIZE = 65536
CHUNK_SIZE = 1024
BWTEST_FILE = "BWTest.bin"

_NUMBER = re.compile(r"\s*[+-]?\d+\s*")


class UploadError(Exception):
    """The upload could not be carried out."""


def parse_start_address(text: str) -> int:
    """Parse a decimal start address in the range 0..65535."""
    if not _NUMBER.fullmatch(text):
        raise UploadError(f"invalid start address: {text!r}")
    value = int(text)
    if not 0 <= value <= 0xFFFF:
        raise UploadError("Start address must be < 65535")
    return value


def build_header(start: int, size: int) -> bytes:
    """Little-endian start address and size; a size of 65536 wraps to zero."""
    if not 0 <= start <= 0xFFFF:
        raise UploadError("Start address must be < 65535")
    if not 1 <= size <= MAX_FILE_SIZE:
        raise UploadError("File size is out of range")
    return bytes((start & 0xFF, (start >> 8) & 0xFF, size & 0xFF, (size >> 8) & 0xFF))


def _resolve(host: str) -> str:
    try:
        return socket.gethostbyname(host)
    except OSError as exc:
        raise UploadError(f"gethostbyname: {exc}") from exc


def _open(path: str) -> BinaryIO:
    try:
        return open(path, "rb")
    except OSError as exc:
        raise UploadError(f"fopen: {exc}") from exc


def _send_stream(stream: BinaryIO, address: str, port: int, header: bytes = b"") -> int:
    sent = 0
    try:
        with socket.create_connection((address, port)) as sock:
            if header:
                sock.sendall(header)
            for chunk in iter(partial(stream.read, CHUNK_SIZE), b""):
                sock.sendall(chunk)
                sent += len(chunk)
            sock.shutdown(socket.SHUT_RDWR)
    except OSError as exc:
        raise UploadError(f"transfer failed: {exc}") from exc
    return sent


def upload(host: str, path: str, start: int = DEFAULT_START, port: int = UPLOAD_PORT) -> int:
    """Send the header and file contents; return the number of file bytes sent."""
    address = _resolve(host)
    with _open(path) as stream:
        size = os.fstat(stream.fileno()).st_size
        header = build_header(start, size)
        return _send_stream(stream, address, port, header)


def stream_file(host: str, path: str = BWTEST_FILE, port: int = UPLOAD_PORT) -> int:
    """Send a file's raw contents with no header; return the bytes sent."""
    address = _resolve(host)
    with _open(path) as stream:
        return _send_stream(stream, address, port)


def main(argv=None) -> int:
    args = sys.argv[1:] if argv is None else list(argv)
    if not 2 <= len(args) <= 3:
        print("Usage: ethup <host> <file> [startaddr]")
        return 255
    host, path = args[0], args[1]
    try:
        start = parse_start_address(args[2]) if len(args) == 3 else DEFAULT_START
        print("Connecting...")
        sent = upload(host, path, start)
    except UploadError as exc:
        print(exc, file=sys.stderr)
        return 255
    print("Sending " + "." * math.ceil(sent / CHUNK_SIZE))
    return 0


def bwtest_main(argv=None) -> int:
    args = sys.argv[1:] if argv is None else list(argv)
    if not args:
        print("Need a host as the arg")
        return 255
    try:
        print("Connecting...")
        stream_file(args[0])
    except UploadError as exc:
        print(exc, file=sys.stderr)
        return 255
    return 0