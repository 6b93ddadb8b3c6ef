"""A small messenger: Tkinter client, line protocol, session state, connection and SQLite chat storage."""

__version__ = "0.1.0"