import re
from pathlib import PurePath
from urllib.parse import quote

_UNSAFE = re.compile(r"[^a-z0-9]", re.IGNORECASE)


def sanitize_title(title: str) -> str:
    """Replace every non-alphanumeric character with '_' and lower-case the rest."""
    return _UNSAFE.sub("_", title).lower()


def download_name(title: str, stored_name: str) -> str:
    """Attachment filename built from the title, keeping the stored extension."""
    return f"{sanitize_title(title)}{PurePath(stored_name).suffix}"


def content_disposition(disposition: str, filename: str) -> str:
    """Build a Content-Disposition value, adding filename* for non-ASCII names."""
    quoted = quote(filename)
    if quoted != filename:
        return f"{disposition}; filename*=utf-8''{quoted}"
    escaped = filename.replace("\\", "\\\\").replace('"', '\\"')
    return f'{disposition}; filename="{escaped}"'
