"""A line-oriented client connection to the messenger server."""

from __future__ import annotations

import socket
import ssl
from typing import Optional

from parlour.protocol import encode_command

_CHUNK = 65536


class Connection:
    """Sends command lines and collects whatever the server has sent so far."""

    def __init__(self, sock: socket.socket) -> None:
        self._sock = sock

    @classmethod
    def open(cls, host: str, port: int, use_tls: bool = True) -> "Connection":
        """Connect directly (no proxy) to the server.

        With ``use_tls`` the link is encrypted; the server's certificate is
        not checked, so a self-signed one is accepted.
        """
        raw = socket.create_connection((host, port))
        if not use_tls:
            return cls(raw)
        context = ssl.create_default_context()
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE
        try:
            wrapped = context.wrap_socket(raw, server_hostname=host)
        except (OSError, ssl.SSLError):
            raw.close()
            raise
        return cls(wrapped)

    def send_line(self, line: str) -> None:
        """Send one command, newline-terminated and UTF-8 encoded."""
        self._sock.sendall(encode_command(line))

    def receive(self) -> bytes:
        """Return every byte available right now, or ``b""`` if there is none.

        Raises :class:`ConnectionError` once the server has closed the link.
        """
        chunks: list[bytes] = []
        closed = False
        self._sock.setblocking(False)
        try:
            while True:
                try:
                    chunk: Optional[bytes] = self._sock.recv(_CHUNK)
                except (BlockingIOError, ssl.SSLWantReadError):
                    break
                if not chunk:
                    closed = True
                    break
                chunks.append(chunk)
        finally:
            if self._sock.fileno() != -1:
                self._sock.setblocking(True)
        if closed and not chunks:
            raise ConnectionError("connection closed by server")
        return b"".join(chunks)

    def close(self) -> None:
        self._sock.close()

    def __enter__(self) -> "Connection":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()