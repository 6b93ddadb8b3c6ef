# parlour

parlour is a small messenger client with the pieces around it. It supports
private chats between two users and named group chats. You can delete a
message for yourself or for everyone, and you can leave a group. The package
contains:

- `parlour.gui`: a desktop client built on Tkinter, started with the `parlour`
  command;
- `parlour.protocol`: the line-based text protocol the client uses to talk to
  a chat server;
- `parlour.session`: the client's state, driven by lines from the server and
  independent of any GUI;
- `parlour.connection`: a line-oriented TCP connection, with or without TLS;
- `parlour.config`: reading the server address from a settings file;
- `parlour.database`: an SQLite store for users, chats, messages and chat
  events.

Only the standard library is used. Tkinter must be available to run the
desktop client.

## Installing

```
pip install .
```

To run the test suite, install the test extra:

```
pip install ".[test]"
pytest
```

## Running the client

```
parlour [--config PATH] [--no-tls]
```

- `--config PATH` names the settings file. The default is `config.ini` in the
  directory of the running script.
- `--no-tls` connects without encryption. Without this flag the connection
  uses TLS, and the server's certificate is not checked, so a self-signed
  certificate is accepted.

The settings file holds plain `key=value` lines:

```
host=chat.example.com
port=12345
```

Lines other than `host=` and `port=` are ignored. A value that is missing
keeps its default: `127.0.0.1` and port `12345`. If the file cannot be read,
both defaults are used. A port that is not a number becomes `0`.
`parlour.config.load_config(path)` reads the file and returns a
`ServerAddress(host, port)`.

If the client cannot connect, it prints the error and exits with status 1.
Otherwise it opens on a login/registration page. After login it shows your
chats on the left and the selected conversation on the right. Buttons start a
new private chat or a new group, where members are given as space-separated
names. Right-click a message to delete it for yourself or for everyone.
Right-click a group in the list to leave it. If the connection fails while the
window is open, the client shows the error and quits.

## The protocol

Each command is one UTF-8 line ending in `\n`. `parlour.protocol.encode_command`
turns a command into the bytes to send. The client sends:

```
REGISTER <user> <password>
LOGIN <user> <password>
LIST_CHATS
HISTORY <chat_id>
SEND <chat_id> <text>
GET_USER_ID <user>
CREATE_CHAT 0 <peer_id>
CREATE_CHAT 1 <group_name> <id> <id> ...
LEAVE_CHAT <chat_id>
DELETE <msg_id>
DELETE_GLOBAL <msg_id>
```

The client understands these lines from the server: `USER_ID <id>`,
`OK LOGIN <id>`, `OK REG`, `OK SENT <msg_id>`, `CHATS ...`, `NEW_CHAT ...`,
`HISTORY ...`, `NEW_MESSAGE ...`, `USER_LEFT ...`, `MSG_DELETED ...` and
`ERROR ...`.

`parlour.protocol` has a parser for each structured reply: `parse_chats`,
`parse_new_chat`, `parse_history`, `parse_new_message`, `parse_user_left` and
`parse_msg_deleted`. The parsers return `ChatInfo` and `ChatEntry` values, and
a `ChatEntry` has an `EntryKind` of `MESSAGE` or `EVENT`. A malformed line
raises `ValueError`. `parse_history` skips chunks it does not recognise.
`format_entry_html` renders one entry as an HTML line.
`validate_credentials` raises `CredentialsError` if the username or password
is empty or the username contains a space.

## Driving a session without the GUI

`parlour.session.ClientSession(send, listener=None)` holds the client's state:
who is logged in, the open chat, the chat list, a cache of each chat's
history, and any group being put together. `send` is a callable that takes
one command line.

Things to show go to the listener. The default `SessionListener` displays
nothing. It records what would be on screen in its `warnings`, `notices`,
`username`, `chats` and `shown_entries` attributes. To drive a real view,
subclass it and override `warning`, `information`, `logged_in`,
`chats_changed`, `chat_redrawn` and `entry_appended`.

Server data goes in through `feed` (raw bytes, buffered until a newline) or
`handle_line` (one line).

```python
from parlour.session import ClientSession

sent = []
session = ClientSession(sent.append)
password = "password"
session.login("alice", password)
session.feed(b"OK LOGIN 1\nCHATS 7:0::alice,bob;\n")

print(sent)                      # ['LOGIN alice password', 'LIST_CHATS', 'HISTORY 7']
print(session.listener.chats)    # one private chat, displayed as "👤: bob"
```

User actions are `register`, `login`, `logout`, `select_chat`,
`send_message`, `start_private_chat`, `start_group`, `leave_chat`,
`delete_for_me` and `delete_for_all`. `entries(chat_id)` returns a chat's
cached history.

## Connection

`parlour.connection.Connection.open(host, port, use_tls=True)` connects
directly to the server. `send_line` sends one command. `receive` returns
whatever bytes are available at the moment, or `b""` if there are none, and
raises `ConnectionError` once the server has closed the link. A connection can
be used as a context manager.

## Storage

`parlour.database.Database(path)` stores users, chats, chat membership,
messages, per-user deletions and chat events in an SQLite file, creating the
tables if needed. A single instance can be shared between threads. Lookups
return `None` when nothing matches. Changes return `True` or `False`.
`Database` works as a context manager:

```python
from parlour.database import Database

with Database("chat.db") as db:
    password_hash = "password"
    db.register_user("alice", password_hash)
    db.register_user("bob", password_hash)
    alice = db.user_id_by_name("alice")
    bob = db.user_id_by_name("bob")

    chat = db.create_chat(False, "")
    db.add_user_to_chat(chat, alice)
    db.add_user_to_chat(chat, bob)

    db.store_message(chat, alice, "hello")
    print(db.chat_history(chat, bob))   # [(1, 'YYYY-MM-DD HH:MM', 'alice', 'hello')]
```

Other methods:

- `authenticate_user`, `username`, `find_private_chat` and `is_user_in_chat`
  for lookups;
- `list_user_chats`, `chat_members`, `message_sender` and
  `chat_id_by_message` for listing and querying;
- `delete_message_for_user` and `delete_message_global` for deleting
  messages;
- `remove_user_from_chat`, which also records a `LEFT` event, and
  `chat_events` for reading events;
- `delete_everything` to clear all tables.

## What parlour does not do

parlour contains no chat server. The desktop client needs a server that speaks
the protocol above, and this package does not provide one. `Database` is
only a storage layer and no network service uses it. It also does not hash
passwords: `register_user` and `authenticate_user` store and compare exactly
the string they are given.