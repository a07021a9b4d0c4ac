"""Tikkle: mirror Tickspot tasks into Toggl and sync tracked time back."""

__version__ = "1.0.0"

# Tags mirrored clients and every synced Tickspot entry
MARKER = "@Tikkle"
