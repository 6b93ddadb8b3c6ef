"""Reading the client's connection settings from a simple ``key=value`` file."""

from __future__ import annotations

from dataclasses import dataclass
from os import PathLike
from pathlib import Path
from typing import Union

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 12345


@dataclass(frozen=True)
class ServerAddress:
    """Where the client connects to."""

    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT


def _to_int(text: str) -> int:
    try:
        return int(text)
    except ValueError:
        return 0


def load_config(path: Union[str, PathLike]) -> ServerAddress:
    """Read ``host=`` and ``port=`` lines; missing values keep their defaults.

    A file that cannot be read yields the defaults. A port that is not a
    number becomes ``0``.
    """
    host, port = DEFAULT_HOST, DEFAULT_PORT
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError:
        return ServerAddress(host, port)

    for raw in text.splitlines():
        line = raw.strip()
        if line.startswith("host="):
            host = line[len("host="):].strip()
        elif line.startswith("port="):
            port = _to_int(line[len("port="):])
    return ServerAddress(host, port)