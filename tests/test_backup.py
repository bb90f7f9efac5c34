"""Tests for dashboard backup export and import."""

from __future__ import annotations

from datetime import date
from pathlib import Path

import pytest

from linkdash.backup import default_filename, export_html, export_json, load_json, render_html
from linkdash.dashboard import Dashboard
from linkdash.errors import ImportFormatError
from linkdash.storage import DurableStore


@pytest.fixture
def filled(dashboard: Dashboard) -> Dashboard:
    cat = dashboard.add_category("Work & Play")
    dashboard.add_link(cat.id, "https://example.com/?a=1&b=2", title="Example <site>")
    dashboard.add_link(cat.id, "https://plain.org")
    return dashboard


class TestJsonBackup:
    """Tests for JSON export/import."""

    def test_roundtrip_through_import(self, filled: Dashboard, tmp_path: Path) -> None:
        path = export_json(filled.snapshot, tmp_path / "backup.json")

        other = Dashboard(DurableStore(tmp_path / "other"))
        other.import_data(load_json(path))
        assert other.snapshot.to_wire() == filled.snapshot.to_wire()

    def test_invalid_json(self, tmp_path: Path) -> None:
        path = tmp_path / "broken.json"
        path.write_text("{nope")
        with pytest.raises(ImportFormatError):
            load_json(path)


class TestHtmlExport:
    """Tests for Netscape bookmark export."""

    def test_structure(self, filled: Dashboard) -> None:
        html = render_html(filled.snapshot)
        assert html.startswith("<!DOCTYPE NETSCAPE-Bookmark-file-1>")
        assert "<H3>Work &amp; Play</H3>" in html
        assert 'HREF="https://example.com/?a=1&amp;b=2"' in html
        assert ">Example &lt;site&gt;</A>" in html
        assert ">https://plain.org</A>" in html
        assert html.endswith("</DL><p>")

    def test_writes_file(self, filled: Dashboard, tmp_path: Path) -> None:
        path = export_html(filled.snapshot, tmp_path / "bookmarks.html")
        assert "Work &amp; Play" in path.read_text()


def test_default_filenames() -> None:
    day = date(2026, 3, 1)
    assert default_filename("json", day) == "linkdash-backup-2026-03-01.json"
    assert default_filename("html", day) == "linkdash-bookmarks-2026-03-01.html"
