"""NoteRelay: stable note identifiers and relay-server sync."""

__version__ = "0.3.0"
