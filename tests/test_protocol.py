import pytest

from parlour.protocol import (
    ChatEntry,
    ChatInfo,
    CredentialsError,
    EntryKind,
    encode_command,
    format_entry_html,
    parse_chats,
    parse_history,
    parse_msg_deleted,
    parse_new_chat,
    parse_new_message,
    parse_user_left,
    validate_credentials,
)


def test_encode_command_appends_newline():
    assert encode_command("LIST_CHATS") == b"LIST_CHATS\n"


def test_encode_command_is_utf8():
    assert encode_command("SEND 1 привет").decode("utf-8") == "SEND 1 привет\n"


@pytest.mark.parametrize("username", ["", "a b"])
def test_validate_credentials_rejects(username):
    password = "password"
    with pytest.raises(CredentialsError):
        validate_credentials(username, password)


def test_validate_credentials_requires_password():
    with pytest.raises(CredentialsError, match="Введите"):
        validate_credentials("alice", "")


def test_parse_chats():
    chats = parse_chats(
        "CHATS 1:0::alice,bob;2:1:my_group:alice,bob,carol;", "alice"
    )
    assert chats == [
        ChatInfo(1, False, "", ("alice", "bob"), "👤: bob"),
        ChatInfo(2, True, "my group", ("alice", "bob", "carol"), "👥: my group"),
    ]


def test_parse_chats_empty():
    assert parse_chats("CHATS ", "alice") == []


def test_parse_new_chat_private_picks_other_member():
    chat = parse_new_chat("NEW_CHAT 3 0 bob,alice", "bob")
    assert chat.chat_id == 3
    assert not chat.is_group
    assert chat.display == "👤: alice"


def test_parse_new_chat_group():
    chat = parse_new_chat("NEW_CHAT 4 1 team_x", "bob")
    assert chat == ChatInfo(4, True, "team x", (), "👥: team x")


def test_parse_history():
    line = (
        "HISTORY [2024-01-02 10:00] alice: hi there (id=7);"
        "[2024-01-02 10:05] * bob покинул(а) чат;garbage;"
    )
    assert parse_history(line) == [
        ChatEntry(EntryKind.MESSAGE, "2024-01-02 10:00", "hi there", "alice", 7),
        ChatEntry(EntryKind.EVENT, "2024-01-02 10:05", "bob покинул(а) чат"),
    ]


def test_parse_new_message_keeps_spaces_in_content():
    cid, entry = parse_new_message(
        "NEW_MESSAGE 2 9 2024-01-02 10:00 alice hello big world"
    )
    assert cid == 2
    assert entry == ChatEntry(
        EntryKind.MESSAGE, "2024-01-02 10:00", "hello big world", "alice", 9
    )


def test_parse_user_left():
    cid, entry = parse_user_left("USER_LEFT 2 bob 2024-01-02 10:05")
    assert cid == 2
    assert entry.kind is EntryKind.EVENT
    assert entry.text == "bob покинул(а) чат"
    assert entry.date == "2024-01-02 10:05"


def test_parse_msg_deleted():
    assert parse_msg_deleted("MSG_DELETED 2 9") == (2, 9)


@pytest.mark.parametrize("line", ["MSG_DELETED x 1", "MSG_DELETED 2"])
def test_parse_msg_deleted_malformed(line):
    with pytest.raises(ValueError):
        parse_msg_deleted(line)


def test_format_message_html():
    entry = ChatEntry(EntryKind.MESSAGE, "d", "t", "a", 1)
    assert format_entry_html(entry) == (
        "<span style='font-size:small;color:#666;'>[d]</span> <b>a:</b> t"
    )


def test_format_escapes_markup():
    entry = ChatEntry(EntryKind.MESSAGE, "d", '<script>"x"', "<b>")
    rendered = format_entry_html(entry)
    assert "<script>" not in rendered
    assert "&lt;script&gt;&quot;x&quot;" in rendered
    assert "&lt;b&gt;:" in rendered


def test_format_event_html():
    entry = ChatEntry(EntryKind.EVENT, "d", "left")
    assert format_entry_html(entry).endswith(
        "<i style='color:rgba(0,0,0,0.6);'>left</i>"
    )