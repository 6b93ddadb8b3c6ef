"""Client-side session state driven by server lines."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Optional

from parlour.protocol import (
    ChatEntry,
    ChatInfo,
    EntryKind,
    parse_chats,
    parse_history,
    parse_msg_deleted,
    parse_new_chat,
    parse_new_message,
    parse_user_left,
    validate_credentials,
)

_ERROR_TITLE = "Ошибка"
_KNOWN_ERRORS = {
    "ERROR USER_EXISTS": "Такой пользователь уже существует!",
    "ERROR NOT_CORRECT": "Неверное имя пользователя или пароль!",
    "ERROR NO_RIGHTS": "Вы можете удалять только собственные сообщения!",
}


@dataclass
class SessionListener:
    """Receives what the session wants shown and keeps it as plain view state.

    Front ends override the methods to drive real widgets; used as is, the
    listener is a headless view that records what would be on screen.
    """

    warnings: list[tuple[str, str]] = field(default_factory=list)
    notices: list[tuple[str, str]] = field(default_factory=list)
    username: str = ""
    chats: list[ChatInfo] = field(default_factory=list)
    shown_entries: list[ChatEntry] = field(default_factory=list)

    def warning(self, title: str, text: str) -> None:
        """A problem the user should see."""
        self.warnings.append((title, text))

    def information(self, title: str, text: str) -> None:
        """A notice the user should see."""
        self.notices.append((title, text))

    def logged_in(self, username: str) -> None:
        """Login succeeded; the chat page should be shown."""
        self.username = username

    def chats_changed(self, chats: list[ChatInfo]) -> None:
        """The chat list now holds ``chats``."""
        self.chats = list(chats)

    def chat_redrawn(self, entries: list[ChatEntry]) -> None:
        """The chat view should show exactly ``entries``."""
        self.shown_entries = list(entries)

    def entry_appended(self, entry: ChatEntry) -> None:
        """One entry was added to the open chat."""
        self.shown_entries.append(entry)


def _qt_int(text: str) -> int:
    try:
        return int(text)
    except ValueError:
        return 0


class ClientSession:
    """Tracks login, chats and cached history; ``send`` takes one command line."""

    def __init__(
        self,
        send: Callable[[str], None],
        listener: Optional[SessionListener] = None,
    ) -> None:
        self._send = send
        self.listener = listener if listener is not None else SessionListener()
        self.user_id: Optional[int] = None
        self.username = ""
        self.current_chat_id: Optional[int] = None
        self.chats: list[ChatInfo] = []
        self._cache: dict[int, list[ChatEntry]] = {}
        self._buffer = b""
        self._credentials: Optional[tuple[str, str]] = None
        self._pending_peer_name = ""
        self._pending_group_name = ""
        self._pending_group_names: list[str] = []
        self._pending_group_ids: list[int] = []
        self._creating_group = False
        self._expecting_user_id = False

    # User actions ----------------------------------------------------------

    def register(self, username: str, password: str) -> None:
        validate_credentials(username, password)
        self._credentials = (username, password)
        self._send(f"REGISTER {username} {password}")

    def login(self, username: str, password: str) -> None:
        validate_credentials(username, password)
        self._credentials = (username, password)
        self.username = username
        self._send(f"LOGIN {username} {password}")

    def logout(self) -> None:
        self.user_id = None
        self.current_chat_id = None
        self.chats = []
        self._cache.clear()
        self._credentials = None
        self.listener.chats_changed([])
        self.listener.chat_redrawn([])

    def select_chat(self, chat_id: int) -> None:
        """Open a chat, from the cache if its history is known."""
        self.current_chat_id = chat_id
        if chat_id in self._cache:
            self._redraw()
        else:
            self._send(f"HISTORY {chat_id}")

    def send_message(
        self, text: str, now: Optional[datetime] = None
    ) -> Optional[ChatEntry]:
        """Show and send a message to the open chat; nothing happens if none is open."""
        if self.current_chat_id is None:
            return None
        message = text.strip()
        if not message:
            return None
        stamp = (now or datetime.now()).strftime("%Y-%m-%d %H:%M")
        entry = ChatEntry(EntryKind.MESSAGE, stamp, message, self.username)
        self._cache.setdefault(self.current_chat_id, []).append(entry)
        self.listener.entry_appended(entry)
        self._send(f"SEND {self.current_chat_id} {message}")
        return entry

    def start_private_chat(self, name: str) -> None:
        if not name:
            return
        self._pending_peer_name = name
        self._creating_group = False
        self._expecting_user_id = True
        self._send(f"GET_USER_ID {name}")

    def start_group(self, group_name: str, members: str) -> None:
        """Begin creating a group from space-separated member names."""
        if not group_name:
            return
        names = [name for name in members.split(" ") if name]
        if not names:
            raise ValueError("a group needs at least one member")
        self._pending_group_name = group_name.replace(" ", "_")
        self._pending_group_names = names
        self._pending_group_ids = []
        self._creating_group = True
        self._expecting_user_id = True
        self._send(f"GET_USER_ID {names[0]}")

    def leave_chat(self, chat_id: int) -> None:
        """Leave a group chat and drop it from the list."""
        chat = next((c for c in self.chats if c.chat_id == chat_id), None)
        if chat is None or not chat.is_group:
            raise ValueError(f"chat {chat_id} is not a group in the list")
        self._send(f"LEAVE_CHAT {chat_id}")
        self.chats = [c for c in self.chats if c.chat_id != chat_id]
        self.listener.chats_changed(list(self.chats))
        self.listener.chat_redrawn([])

    def delete_for_me(self, index: int) -> None:
        self._send(f"DELETE {self._msg_id_at(index)}")

    def delete_for_all(self, index: int) -> None:
        self._send(f"DELETE_GLOBAL {self._msg_id_at(index)}")

    def entries(self, chat_id: int) -> list[ChatEntry]:
        """Cached history of a chat."""
        return list(self._cache.get(chat_id, []))

    def _msg_id_at(self, index: int) -> int:
        if self.current_chat_id is None:
            raise LookupError("no chat is open")
        entry = self._cache.get(self.current_chat_id, [])[index]
        if entry.msg_id is None:
            raise ValueError("this entry has no message id")
        return entry.msg_id

    def _redraw(self) -> None:
        self.listener.chat_redrawn(self.entries(self.current_chat_id))

    # Server input ----------------------------------------------------------

    def feed(self, data: bytes) -> None:
        """Accept raw bytes from the server and handle every complete line."""
        self._buffer += data
        *lines, self._buffer = self._buffer.split(b"\n")
        for raw in lines:
            if raw:
                self.handle_line(raw.decode("utf-8", errors="replace"))

    def handle_line(self, line: str) -> None:
        """React to one line from the server."""
        if line.startswith("USER_ID"):
            self._on_user_id(line)
        elif line.startswith("ERROR CHAT_EXISTS"):
            self.listener.warning(
                _ERROR_TITLE, "Личный чат с данным пользователем уже существует"
            )
        elif line.startswith("OK LOGIN"):
            parts = line.split(" ")
            self.user_id = _qt_int(parts[2]) if len(parts) > 2 else 0
            self.listener.logged_in(self.username)
            self._send("LIST_CHATS")
        elif line.startswith("OK REG"):
            self.listener.information(
                "Успешная регистрация!", "Теперь заходим в аккаунт..."
            )
            if self._credentials is not None:
                self.login(*self._credentials)
        elif line.startswith("OK SENT"):
            self._on_sent(line)
        elif line.startswith("NEW_CHAT"):
            self.chats.append(parse_new_chat(line, self.username))
            self.listener.chats_changed(list(self.chats))
        elif line.startswith("NEW_MESSAGE"):
            chat_id, entry = parse_new_message(line)
            self._cache.setdefault(chat_id, []).append(entry)
            if chat_id == self.current_chat_id:
                self.listener.entry_appended(entry)
        elif line.startswith("CHATS"):
            self.chats = parse_chats(line, self.username)
            self.listener.chats_changed(list(self.chats))
            if self.chats:
                self.select_chat(self.chats[0].chat_id)
        elif line.startswith("HISTORY"):
            entries = parse_history(line)
            if self.current_chat_id is not None:
                self._cache[self.current_chat_id] = entries
            self.listener.chat_redrawn(list(entries))
        elif line.startswith("USER_LEFT"):
            chat_id, entry = parse_user_left(line)
            self._cache.setdefault(chat_id, []).append(entry)
            if chat_id == self.current_chat_id:
                self._redraw()
        elif line.startswith("MSG_DELETED"):
            chat_id, msg_id = parse_msg_deleted(line)
            history = self._cache.setdefault(chat_id, [])
            for position, entry in enumerate(history):
                if entry.msg_id == msg_id:
                    del history[position]
                    break
            if chat_id == self.current_chat_id:
                self._redraw()
        elif line in _KNOWN_ERRORS:
            self.listener.warning(_ERROR_TITLE, _KNOWN_ERRORS[line])
        elif line.startswith("ERROR"):
            self.listener.warning(_ERROR_TITLE, line)

    def _on_user_id(self, line: str) -> None:
        self._expecting_user_id = False
        parts = line.split(" ")
        uid = _qt_int(parts[1]) if len(parts) > 1 else 0
        if uid <= 0:
            if self._creating_group:
                missing = self._pending_group_names[len(self._pending_group_ids)]
                self._creating_group = False
            else:
                missing = self._pending_peer_name
            self.listener.warning(
                _ERROR_TITLE, f'Пользователь "{missing}" не найден!'
            )
            return
        if not self._creating_group:
            self._send(f"CREATE_CHAT 0 {uid}")
            return
        self._pending_group_ids.append(uid)
        found = len(self._pending_group_ids)
        if found < len(self._pending_group_names):
            self._expecting_user_id = True
            self._send(f"GET_USER_ID {self._pending_group_names[found]}")
        else:
            ids = " ".join(str(i) for i in self._pending_group_ids)
            self._send(f"CREATE_CHAT 1 {self._pending_group_name} {ids}")
            self._creating_group = False

    def _on_sent(self, line: str) -> None:
        try:
            msg_id = int(line[len("OK SENT "):])
        except ValueError:
            return
        history = self._cache.get(self.current_chat_id, [])
        for entry in reversed(history):
            if entry.msg_id is None and entry.author == self.username:
                entry.msg_id = msg_id
                break