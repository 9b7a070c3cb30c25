import html
from typing import Optional

import bleach


def strip_markup(value: Optional[str]) -> Optional[str]:
    """Drop HTML tags from user or catalog text, keeping the readable characters."""
    if value is None:
        return None
    cleaned = bleach.clean(value, tags=[], attributes={}, strip=True)
    return html.unescape(cleaned).strip()


def escape_like(value: str, escape: str = "\\") -> str:
    """Escape LIKE wildcards so a search term matches literally."""
    return (
        value.replace(escape, escape + escape)
        .replace("%", escape + "%")
        .replace("_", escape + "_")
    )
