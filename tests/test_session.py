from datetime import datetime

import pytest

from parlour.protocol import CredentialsError, EntryKind
from parlour.session import ClientSession, SessionListener


class Recorder(SessionListener):
    def __init__(self):
        self.events = []

    def warning(self, title, text):
        self.events.append(("warning", title, text))

    def information(self, title, text):
        self.events.append(("information", title, text))

    def logged_in(self, username):
        self.events.append(("logged_in", username))

    def chats_changed(self, chats):
        self.events.append(("chats", chats))

    def chat_redrawn(self, entries):
        self.events.append(("redrawn", entries))

    def entry_appended(self, entry):
        self.events.append(("appended", entry))


@pytest.fixture
def setup():
    sent = []
    recorder = Recorder()
    return ClientSession(sent.append, recorder), sent, recorder


def _logged_in_with_chat(session, sent):
    password = "password"
    session.login("alice", password)
    session.handle_line("OK LOGIN 5")
    session.handle_line("CHATS 1:0::alice,bob;2:1:my_group:alice,bob;")
    session.handle_line("HISTORY [2024-01-02 10:00] bob: hi (id=3);")
    sent.clear()


def test_login_sends_credentials(setup):
    session, sent, _ = setup
    password = "password"
    session.login("alice", password)
    assert sent == [f"LOGIN alice {password}"]


def test_login_rejects_spaces(setup):
    session, sent, _ = setup
    password = "password"
    with pytest.raises(CredentialsError):
        session.login("a b", password)
    assert sent == []


def test_ok_login_requests_chats(setup):
    session, sent, recorder = setup
    password = "password"
    session.login("alice", password)
    session.handle_line("OK LOGIN 5")
    assert session.user_id == 5
    assert ("logged_in", "alice") in recorder.events
    assert sent[-1] == "LIST_CHATS"


def test_registration_logs_in(setup):
    session, sent, recorder = setup
    password = "password"
    session.register("alice", password)
    session.handle_line("OK REG")
    assert sent == [f"REGISTER alice {password}", f"LOGIN alice {password}"]
    assert recorder.events[0][0] == "information"


def test_chats_select_first_and_history_is_cached(setup):
    session, sent, recorder = setup
    session.username = "alice"
    session.handle_line("CHATS 1:0::alice,bob;")
    assert sent == ["HISTORY 1"]
    session.handle_line("HISTORY [2024-01-02 10:00] bob: hi (id=3);")
    assert [e.text for e in session.entries(1)] == ["hi"]
    sent.clear()
    session.select_chat(1)
    assert sent == []
    assert recorder.events[-1][1][0].msg_id == 3


def test_send_message_and_ack(setup):
    session, sent, recorder = setup
    _logged_in_with_chat(session, sent)
    entry = session.send_message("  hello  ", datetime(2024, 1, 2, 10, 0))
    assert entry.date == "2024-01-02 10:00"
    assert sent == ["SEND 1 hello"]
    assert recorder.events[-1] == ("appended", entry)
    session.handle_line("OK SENT 42")
    assert session.entries(1)[-1].msg_id == 42
    session.delete_for_me(1)
    session.delete_for_all(1)
    assert sent[-2:] == ["DELETE 42", "DELETE_GLOBAL 42"]


def test_send_without_chat_does_nothing(setup):
    session, sent, _ = setup
    assert session.send_message("hi") is None
    assert sent == []


def test_delete_unacknowledged_message_raises(setup):
    session, sent, _ = setup
    _logged_in_with_chat(session, sent)
    session.send_message("pending")
    with pytest.raises(ValueError):
        session.delete_for_all(1)


def test_new_message_only_appended_for_open_chat(setup):
    session, sent, recorder = setup
    _logged_in_with_chat(session, sent)
    session.handle_line("NEW_MESSAGE 2 8 2024-01-02 10:01 bob in group")
    assert recorder.events[-1][0] != "appended"
    assert session.entries(2)[0].text == "in group"
    session.handle_line("NEW_MESSAGE 1 9 2024-01-02 10:02 bob hey you")
    assert recorder.events[-1][0] == "appended"
    assert recorder.events[-1][1].msg_id == 9


def test_msg_deleted_and_user_left(setup):
    session, sent, recorder = setup
    _logged_in_with_chat(session, sent)
    session.handle_line("MSG_DELETED 1 3")
    assert session.entries(1) == []
    assert recorder.events[-1] == ("redrawn", [])
    session.handle_line("USER_LEFT 1 bob 2024-01-02 10:05")
    assert session.entries(1)[0].kind is EntryKind.EVENT
    assert recorder.events[-1][1][0].text == "bob покинул(а) чат"


def test_private_chat_creation(setup):
    session, sent, _ = setup
    session.start_private_chat("bob")
    session.handle_line("USER_ID 7")
    assert sent == ["GET_USER_ID bob", "CREATE_CHAT 0 7"]


def test_private_chat_unknown_user(setup):
    session, sent, recorder = setup
    session.start_private_chat("bob")
    session.handle_line("USER_ID 0")
    assert recorder.events == [("warning", "Ошибка", 'Пользователь "bob" не найден!')]
    assert sent == ["GET_USER_ID bob"]


def test_group_creation(setup):
    session, sent, _ = setup
    session.start_group("my team", "bob  carol")
    session.handle_line("USER_ID 7")
    session.handle_line("USER_ID 8")
    assert sent == [
        "GET_USER_ID bob",
        "GET_USER_ID carol",
        "CREATE_CHAT 1 my_team 7 8",
    ]


def test_group_without_members_raises(setup):
    session, _, _ = setup
    with pytest.raises(ValueError):
        session.start_group("team", "   ")


def test_new_chat_is_listed(setup):
    session, _, recorder = setup
    session.username = "alice"
    session.handle_line("NEW_CHAT 4 1 team_x")
    assert [c.chat_id for c in session.chats] == [4]
    assert recorder.events[-1][1][0].display == "👥: team x"


def test_errors_are_reported(setup):
    session, _, recorder = setup
    session.handle_line("ERROR USER_EXISTS")
    session.handle_line("ERROR SOMETHING_ELSE")
    assert recorder.events == [
        ("warning", "Ошибка", "Такой пользователь уже существует!"),
        ("warning", "Ошибка", "ERROR SOMETHING_ELSE"),
    ]


def test_feed_joins_partial_lines(setup):
    session, _, _ = setup
    session.feed(b"OK LOG")
    assert session.user_id is None
    session.feed(b"IN 5\nOK")
    assert session.user_id == 5


def test_leave_chat(setup):
    session, sent, recorder = setup
    _logged_in_with_chat(session, sent)
    with pytest.raises(ValueError):
        session.leave_chat(1)
    session.leave_chat(2)
    assert sent == ["LEAVE_CHAT 2"]
    assert [c.chat_id for c in session.chats] == [1]
    assert recorder.events[-1] == ("redrawn", [])


def test_logout_resets_state(setup):
    session, sent, recorder = setup
    _logged_in_with_chat(session, sent)
    session.logout()
    assert session.user_id is None
    assert session.current_chat_id is None
    assert session.chats == []
    assert session.entries(1) == []
    assert recorder.events[-2:] == [("chats", []), ("redrawn", [])]