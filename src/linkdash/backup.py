"""Dashboard backup: JSON export/import and Netscape bookmark export.

The JSON backup is the full snapshot in wire form and can be fed back
through ``Dashboard.import_data``. The HTML export follows the Netscape
bookmark format that every browser imports, one folder per category.
"""

from __future__ import annotations

import html
import json
import logging
from datetime import date
from pathlib import Path
from typing import Any, Optional

from .errors import ImportFormatError
from .models import LocalSnapshot

logger = logging.getLogger("linkdash.backup")

_BOOKMARK_HEADER = """<!DOCTYPE NETSCAPE-Bookmark-file-1>
<!-- This is an automatically generated file.
     It will be read and overwritten.
     DO NOT EDIT! -->
<META HTTP-EQUIV="Content-Type" CONTENT="text/html; charset=UTF-8">
<TITLE>LinkDash Bookmarks</TITLE>
<H1>Bookmarks</H1>
<DL><p>
"""


def default_filename(kind: str, today: Optional[date] = None) -> str:
    """``linkdash-backup-YYYY-MM-DD.json`` or ``linkdash-bookmarks-YYYY-MM-DD.html``."""
    day = (today or date.today()).isoformat()
    if kind == "html":
        return f"linkdash-bookmarks-{day}.html"
    return f"linkdash-backup-{day}.json"


def export_json(snapshot: LocalSnapshot, path: Path) -> Path:
    """Write the full snapshot as indented JSON."""
    path = Path(path)
    path.write_text(json.dumps(snapshot.to_wire(), indent=2), encoding="utf-8")
    logger.info("Exported JSON backup to %s", path)
    return path


def render_html(snapshot: LocalSnapshot) -> str:
    """Render categories and links as a Netscape bookmark file."""
    parts = [_BOOKMARK_HEADER]
    for cat in snapshot.categories:
        parts.append(f"    <DT><H3>{html.escape(cat.name)}</H3>\n    <DL><p>\n")
        for link in cat.urls:
            href = html.escape(link.url, quote=True)
            title = html.escape(link.title or link.url)
            parts.append(f'        <DT><A HREF="{href}">{title}</A>\n')
        parts.append("    </DL><p>\n")
    parts.append("</DL><p>")
    return "".join(parts)


def export_html(snapshot: LocalSnapshot, path: Path) -> Path:
    path = Path(path)
    path.write_text(render_html(snapshot), encoding="utf-8")
    logger.info("Exported bookmarks to %s", path)
    return path


def load_json(path: Path) -> Any:
    """Read a JSON backup file.

    Raises:
        ImportFormatError: If the file is not valid JSON.
    """
    try:
        return json.loads(Path(path).read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ImportFormatError(f"Backup is not valid JSON: {exc}") from exc
