"""The line-based wire protocol spoken between the client and the server."""

from __future__ import annotations

import html
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class EntryKind(Enum):
    MESSAGE = "message"
    EVENT = "event"


@dataclass
class ChatEntry:
    """One line of chat history: a user's message or a system event."""

    kind: EntryKind
    date: str
    text: str
    author: str = ""
    msg_id: Optional[int] = None


@dataclass(frozen=True)
class ChatInfo:
    """A chat as shown in the chat list."""

    chat_id: int
    is_group: bool
    name: str
    members: tuple[str, ...] = field(default_factory=tuple)
    display: str = ""


class CredentialsError(ValueError):
    """Username or password cannot be sent to the server."""


_MSG_RE = re.compile(r"\[([^\]]+)\]\s+([^:]+):\s+(.+)\s+\(id=(\d+)\)")
_EVENT_RE = re.compile(r"\[([^\]]+)\]\s+\*\s+(.+)")

_GROUP_PREFIX = "👥: "
_PRIVATE_PREFIX = "👤: "
_DATE_SPAN = "<span style='font-size:small;color:#666;'>[{}]</span> "


def validate_credentials(username: str, password: str) -> None:
    """Raise :class:`CredentialsError` if the login form is unusable."""
    if not username or not password:
        raise CredentialsError("Введите имя пользователя и пароль")
    if " " in username:
        raise CredentialsError("Имя пользователя не должно содержать пробелы")


def encode_command(command: str) -> bytes:
    """Encode one command as a UTF-8, newline-terminated line."""
    return command.encode("utf-8") + b"\n"


def _int(text: str) -> int:
    try:
        return int(text)
    except ValueError as exc:
        raise ValueError(f"not a number: {text!r}") from exc


def _fields(line: str, count: int) -> list[str]:
    parts = line.split(" ")
    if len(parts) < count:
        raise ValueError(f"malformed line: {line!r}")
    return parts


def parse_chats(line: str, my_username: str) -> list[ChatInfo]:
    """Parse ``CHATS cid:is_group:name:member1,member2;...``."""
    chats = []
    for chunk in filter(None, line[len("CHATS "):].split(";")):
        parts = chunk.split(":")
        if len(parts) < 4:
            raise ValueError(f"malformed chat record: {chunk!r}")
        is_group = parts[1] == "1"
        name = parts[2].replace("_", " ")
        members = tuple(parts[3].split(","))
        if is_group:
            display = _GROUP_PREFIX + name
        else:
            other = next((m for m in members if m != my_username), None)
            display = _PRIVATE_PREFIX + other if other is not None else ""
        chats.append(ChatInfo(_int(parts[0]), is_group, name, members, display))
    return chats


def parse_new_chat(line: str, my_username: str) -> ChatInfo:
    """Parse ``NEW_CHAT cid is_group name_or_members``."""
    parts = _fields(line, 4)
    is_group = parts[2] == "1"
    name = parts[3].replace("_", " ")
    if is_group:
        return ChatInfo(_int(parts[1]), True, name, (), _GROUP_PREFIX + name)
    members = tuple(name.split(","))
    if members[0] == my_username:
        if len(members) < 2:
            raise ValueError(f"malformed member list: {name!r}")
        other = members[1]
    else:
        other = members[0]
    return ChatInfo(_int(parts[1]), False, name, members, _PRIVATE_PREFIX + other)


def parse_history(line: str) -> list[ChatEntry]:
    """Parse ``HISTORY`` chunks; unrecognised chunks are skipped."""
    entries = []
    for chunk in filter(None, line[len("HISTORY "):].split(";")):
        if match := _MSG_RE.search(chunk):
            date, author, text, msg_id = match.groups()
            entries.append(
                ChatEntry(EntryKind.MESSAGE, date, text, author, int(msg_id))
            )
        elif match := _EVENT_RE.search(chunk):
            date, text = match.groups()
            entries.append(ChatEntry(EntryKind.EVENT, date, text))
    return entries


def parse_new_message(line: str) -> tuple[int, ChatEntry]:
    """Parse ``NEW_MESSAGE cid msg_id YYYY-MM-DD HH:MM from content...``."""
    parts = _fields(line[len("NEW_MESSAGE "):], 5)
    entry = ChatEntry(
        EntryKind.MESSAGE,
        f"{parts[2]} {parts[3]}",
        " ".join(parts[5:]),
        parts[4],
        _int(parts[1]),
    )
    return _int(parts[0]), entry


def parse_user_left(line: str) -> tuple[int, ChatEntry]:
    """Parse ``USER_LEFT cid username YYYY-MM-DD HH:MM`` into an event."""
    parts = _fields(line, 5)
    entry = ChatEntry(
        EntryKind.EVENT, f"{parts[3]} {parts[4]}", f"{parts[2]} покинул(а) чат"
    )
    return _int(parts[1]), entry


def parse_msg_deleted(line: str) -> tuple[int, int]:
    """Parse ``MSG_DELETED cid msg_id``."""
    parts = _fields(line, 3)
    return _int(parts[1]), _int(parts[2])


def _escape(text: str) -> str:
    return html.escape(text, quote=False).replace('"', "&quot;")


def format_entry_html(entry: ChatEntry) -> str:
    """Render an entry as one HTML line of the chat view."""
    prefix = _DATE_SPAN.format(entry.date)
    if entry.kind is EntryKind.MESSAGE:
        return f"{prefix}<b>{_escape(entry.author)}:</b> {_escape(entry.text)}"
    return f"{prefix}<i style='color:rgba(0,0,0,0.6);'>{_escape(entry.text)}</i>"