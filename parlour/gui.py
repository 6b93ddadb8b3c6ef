"""Desktop window for the messenger client."""

from __future__ import annotations

import argparse
import sys
import tkinter as tk
from pathlib import Path
from tkinter import messagebox, simpledialog
from typing import Optional, Sequence

from parlour.config import load_config
from parlour.connection import Connection
from parlour.protocol import ChatEntry, ChatInfo, CredentialsError, EntryKind
from parlour.session import ClientSession, SessionListener

_POLL_MS = 50
_TITLE = "Мой Мессенджер"
_ERROR_TITLE = "Ошибка"
_CONNECT_ERROR_TITLE = "Ошибка подключения"
_CONFIG_NAME = "config.ini"
_MASK_CHAR = "*"


class _Listener(SessionListener):
    def __init__(self, window: "MainWindow") -> None:
        self._window = window

    def warning(self, title: str, text: str) -> None:
        messagebox.showwarning(title, text, parent=self._window.root)

    def information(self, title: str, text: str) -> None:
        messagebox.showinfo(title, text, parent=self._window.root)

    def logged_in(self, username: str) -> None:
        self._window._show_chats(username)

    def chats_changed(self, chats: list[ChatInfo]) -> None:
        self._window._fill_chats(chats)

    def chat_redrawn(self, entries: list[ChatEntry]) -> None:
        self._window._redraw(entries)

    def entry_appended(self, entry: ChatEntry) -> None:
        self._window._append(entry)


class MainWindow:
    """Login page and chat page over one server connection."""

    def __init__(self, root: tk.Misc, connection: Connection) -> None:
        self.root = root
        self.connection = connection
        self._failed = False
        self.session = ClientSession(self._send, _Listener(self))
        root.title(_TITLE)
        self._login_page = self._build_login()
        self._chats_page = self._build_chats()
        self._show(self._login_page)

    # Network ---------------------------------------------------------------

    def poll(self) -> None:
        """Handle what the server sent and schedule the next check."""
        if self._failed:
            return
        try:
            data = self.connection.receive()
        except OSError as exc:
            self._fail(exc)
            return
        if data:
            try:
                self.session.feed(data)
            except ValueError as exc:
                messagebox.showwarning(_ERROR_TITLE, str(exc), parent=self.root)
        self.root.after(_POLL_MS, self.poll)

    def _send(self, line: str) -> None:
        try:
            self.connection.send_line(line)
        except OSError as exc:
            self._fail(exc)

    def _fail(self, exc: OSError) -> None:
        if self._failed:
            return
        self._failed = True
        messagebox.showerror(
            _CONNECT_ERROR_TITLE, str(exc) or type(exc).__name__, parent=self.root
        )
        self.root.quit()

    # Layout ----------------------------------------------------------------

    def _build_login(self) -> tk.Frame:
        page = tk.Frame(self.root)
        tk.Label(
            page, text="Вход / Регистрация", font=("TkDefaultFont", 14, "bold")
        ).pack(pady=(40, 20))
        tk.Label(page, text="Имя пользователя").pack(anchor="w", padx=40)
        self._username = tk.Entry(page)
        self._username.pack(fill="x", padx=40)
        tk.Label(page, text="Пароль").pack(anchor="w", padx=40)
        self._hidden_entry = tk.Entry(page, show=_MASK_CHAR)
        self._hidden_entry.pack(fill="x", padx=40)
        buttons = tk.Frame(page)
        buttons.pack(pady=20)
        tk.Button(buttons, text="Войти", command=self._on_login).pack(side="left")
        tk.Button(
            buttons, text="Зарегистрироваться", command=self._on_register
        ).pack(side="left")
        return page

    def _build_chats(self) -> tk.Frame:
        page = tk.Frame(self.root)

        top = tk.Frame(page)
        top.pack(fill="x")
        tk.Button(top, text="Новый личный чат", command=self._new_chat).pack(
            side="left"
        )
        tk.Button(top, text="Новая группа", command=self._new_group).pack(
            side="left"
        )
        user_box = tk.Frame(top)
        user_box.pack(side="right")
        self._user_label = tk.Label(user_box, text="")
        self._user_label.pack()
        tk.Button(
            user_box, text="Выйти из профиля", command=self._confirm_logout
        ).pack()

        body = tk.Frame(page)
        body.pack(fill="both", expand=True)
        body.columnconfigure(0, weight=1)
        body.columnconfigure(1, weight=2)
        body.rowconfigure(0, weight=1)

        self._chat_list = tk.Listbox(body, exportselection=False)
        self._chat_list.grid(row=0, column=0, sticky="nsew")
        self._chat_list.bind("<<ListboxSelect>>", self._on_chat_selected)
        self._chat_list.bind("<Button-3>", self._chat_list_menu)

        right = tk.Frame(body)
        right.grid(row=0, column=1, sticky="nsew")
        self._chat_view = tk.Text(right, state="disabled", wrap="word")
        self._chat_view.pack(fill="both", expand=True)
        self._chat_view.tag_configure(
            "date", foreground="#666666", font=("TkDefaultFont", 8)
        )
        self._chat_view.tag_configure("author", font=("TkDefaultFont", 10, "bold"))
        self._chat_view.tag_configure(
            "event", foreground="#666666", font=("TkDefaultFont", 10, "italic")
        )
        self._chat_view.bind("<Button-3>", self._chat_view_menu)

        row = tk.Frame(right)
        row.pack(fill="x")
        self._message = tk.Entry(row)
        self._message.pack(side="left", fill="x", expand=True)
        self._message.bind("<Return>", lambda _event: self._on_send())
        tk.Button(row, text="Отправить", command=self._on_send).pack(side="right")
        return page

    def _show(self, page: tk.Frame) -> None:
        for other in (self._login_page, self._chats_page):
            other.pack_forget()
        page.pack(fill="both", expand=True)

    def _show_chats(self, username: str) -> None:
        self._user_label.config(text=f"Пользователь: {username}")
        self._show(self._chats_page)

    # Chat view -------------------------------------------------------------

    def _render(self, entry: ChatEntry) -> None:
        view = self._chat_view
        view.insert("end", f"[{entry.date}] ", "date")
        if entry.kind is EntryKind.MESSAGE:
            view.insert("end", f"{entry.author}:", "author")
            view.insert("end", f" {entry.text}\n")
        else:
            view.insert("end", f"{entry.text}\n", "event")

    def _redraw(self, entries: list[ChatEntry]) -> None:
        self._chat_view.config(state="normal")
        self._chat_view.delete("1.0", "end")
        for entry in entries:
            self._render(entry)
        self._chat_view.config(state="disabled")

    def _append(self, entry: ChatEntry) -> None:
        self._chat_view.config(state="normal")
        self._render(entry)
        self._chat_view.config(state="disabled")
        self._chat_view.see("end")

    def _fill_chats(self, chats: list[ChatInfo]) -> None:
        self._chat_list.delete(0, "end")
        for position, chat in enumerate(chats):
            self._chat_list.insert("end", chat.display)
            if chat.chat_id == self.session.current_chat_id:
                self._chat_list.selection_set(position)

    # Actions ---------------------------------------------------------------

    def _credentials(self) -> tuple[str, str]:
        return self._username.get(), self._hidden_entry.get()

    def _on_login(self) -> None:
        try:
            self.session.login(*self._credentials())
        except CredentialsError as exc:
            messagebox.showwarning(_ERROR_TITLE, str(exc), parent=self.root)

    def _on_register(self) -> None:
        try:
            self.session.register(*self._credentials())
        except CredentialsError as exc:
            messagebox.showwarning(_ERROR_TITLE, str(exc), parent=self.root)

    def _confirm_logout(self) -> None:
        if messagebox.askyesno(
            "Подтвердите выход",
            "Вы уверены, что хотите выйти из профиля?",
            parent=self.root,
        ):
            self.session.logout()
            self._username.delete(0, "end")
            self._hidden_entry.delete(0, "end")
            self._show(self._login_page)

    def _on_chat_selected(self, _event=None) -> None:
        selection = self._chat_list.curselection()
        if not selection or selection[0] >= len(self.session.chats):
            return
        self.session.select_chat(self.session.chats[selection[0]].chat_id)

    def _on_send(self) -> None:
        if self.session.send_message(self._message.get()) is not None:
            self._message.delete(0, "end")

    def _new_chat(self) -> None:
        name = simpledialog.askstring(
            "Новый чат", "Введите имя пользователя:", parent=self.root
        )
        if name:
            self.session.start_private_chat(name)

    def _new_group(self) -> None:
        group_name = simpledialog.askstring(
            "Новая группа", "Название группы:", parent=self.root
        )
        if not group_name:
            return
        members = simpledialog.askstring(
            "Новая группа",
            "Введите имена пользователей (через пробел):",
            parent=self.root,
        )
        if members is None:
            return
        try:
            self.session.start_group(group_name, members)
        except ValueError as exc:
            messagebox.showwarning(_ERROR_TITLE, str(exc), parent=self.root)

    def _chat_list_menu(self, event) -> None:
        position = self._chat_list.nearest(event.y)
        if not 0 <= position < len(self.session.chats):
            return
        chat = self.session.chats[position]
        if not chat.is_group:
            return
        menu = tk.Menu(self.root, tearoff=0)
        menu.add_command(
            label="Покинуть группу", command=lambda: self._leave(chat.chat_id)
        )
        menu.tk_popup(event.x_root, event.y_root)

    def _leave(self, chat_id: int) -> None:
        if messagebox.askyesno(
            "Покинуть группу",
            "Вы действительно хотите покинуть эту группу?",
            parent=self.root,
        ):
            try:
                self.session.leave_chat(chat_id)
            except ValueError as exc:
                messagebox.showwarning(_ERROR_TITLE, str(exc), parent=self.root)

    def _chat_view_menu(self, event) -> None:
        chat_id = self.session.current_chat_id
        if chat_id is None:
            return
        line = int(self._chat_view.index(f"@{event.x},{event.y}").split(".")[0])
        index = line - 1
        if not 0 <= index < len(self.session.entries(chat_id)):
            return
        menu = tk.Menu(self.root, tearoff=0)
        menu.add_command(
            label="Удалить для себя", command=lambda: self._delete(index, False)
        )
        menu.add_command(
            label="Удалить для всех", command=lambda: self._delete(index, True)
        )
        menu.tk_popup(event.x_root, event.y_root)

    def _delete(self, index: int, everyone: bool) -> None:
        if everyone:
            confirmed = messagebox.askyesno(
                "Удалить сообщение у всех",
                "Вы уверены, что хотите удалить это сообщение у всех участников?",
                parent=self.root,
            )
        else:
            confirmed = messagebox.askyesno(
                "Удалить сообщение",
                "Вы уверены, что хотите удалить это сообщение у себя?",
                parent=self.root,
            )
        if not confirmed:
            return
        try:
            if everyone:
                self.session.delete_for_all(index)
            else:
                self.session.delete_for_me(index)
        except (LookupError, ValueError) as exc:
            messagebox.showwarning(_ERROR_TITLE, str(exc), parent=self.root)


def _default_config_path() -> Path:
    return Path(sys.argv[0]).resolve().parent / _CONFIG_NAME


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """Parse the command line of the client."""
    parser = argparse.ArgumentParser(prog="parlour", description="Messenger client")
    parser.add_argument(
        "--config",
        type=Path,
        default=_default_config_path(),
        help="file with host= and port= lines",
    )
    parser.add_argument(
        "--no-tls",
        action="store_true",
        help="connect without encryption",
    )
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Connect to the configured server and run the window."""
    args = parse_args(argv)
    address = load_config(args.config)
    try:
        connection = Connection.open(address.host, address.port, not args.no_tls)
    except OSError as exc:
        print(f"{_CONNECT_ERROR_TITLE}: {exc}", file=sys.stderr)
        return 1
    with connection:
        root = tk.Tk()
        window = MainWindow(root, connection)
        window.poll()
        root.mainloop()
    return 0


if __name__ == "__main__":
    sys.exit(main())