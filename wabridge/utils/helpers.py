"""Helper functions for wabridge."""

from pathlib import Path


def get_data_path() -> Path:
    """Get the wabridge data directory (~/.wabridge)."""
    return Path.home() / ".wabridge"


def normalize_sender_id(raw: str) -> str:
    """
    Reduce a transport address to the bare sender identity.

    ``+49123@c.us`` and ``49123:7@s.whatsapp.net`` style addresses lose their
    network suffix, device suffix and leading ``+``.
    """
    value = str(raw or "").strip()
    if "@" in value:
        value = value.split("@", 1)[0]
    if ":" in value:
        value = value.split(":", 1)[0]
    return value.strip().lstrip("+").strip()


def parse_csv_values(raw: str) -> list[str]:
    """Split a comma-separated list of sender identities."""
    items: list[str] = []
    for piece in (raw or "").split(","):
        value = normalize_sender_id(piece)
        if value:
            items.append(value)
    return items
