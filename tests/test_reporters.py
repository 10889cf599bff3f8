"""
Tests for report building and rendering
"""

import json
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from rich.console import Console

from core.controller import IdentifierController
from core.leak_forcer import GOOGLE_KEEP, LeakForceSession
from core.reporters import build_report, render_console, write_json
from services.leak_state_machine import LeakForceStatus


def recording_console() -> Console:
    return Console(record=True, width=120, color_system=None)


class TestBuildReport:
    """Controller snapshot to LeakReport"""

    def test_matches_per_database(self):
        names = ["Keep-1", "offline.settings.1", "random-db"]
        controller = IdentifierController()
        controller.on_inventory(names)

        report = build_report(controller, "https://example.com/", names)

        assert report.identifiers == ["1"]
        assert report.database_count == 3
        assert {(m.database, m.source) for m in report.matches} == {
            ("Keep-1", "keep.google.com"),
            ("offline.settings.1", "calendar.google.com"),
        }
        assert report.view_state == "identifiers_found"
        assert report.forced_session is None

    def test_forced_session_summary(self):
        controller = IdentifierController()
        controller.on_initial_forced_result([])
        session = LeakForceSession(target=GOOGLE_KEEP, status=LeakForceStatus.TIMED_OUT,
                                   probes=37, session_opened=True, started_at=0.0, finished_at=3.0)

        report = build_report(controller, "https://example.com/", forced_session=session)

        assert report.forced_leak_failed is True
        assert report.view_state == "not_logged_in"
        assert report.forced_session.status == "timed_out"
        assert report.forced_session.probes == 37
        assert report.forced_session.elapsed_ms == 3000
        assert report.forced_session.identifiers == []

    def test_forced_session_identifiers_in_summary(self):
        controller = IdentifierController()
        controller.on_initial_forced_result(["42"])
        session = LeakForceSession(target=GOOGLE_KEEP, status=LeakForceStatus.FOUND, probes=1,
                                   identifiers={"42"}, started_at=0.0, finished_at=0.08)

        summary = build_report(controller, "https://example.com/", forced_session=session).forced_session

        assert summary.target == "google_keep"
        assert summary.status == "found"
        assert summary.identifiers == ["42"]


class TestRenderConsole:
    """Console view branches"""

    def test_identifiers_found(self):
        controller = IdentifierController()
        controller.on_inventory(["Keep-1", "Keep-2"])
        console = recording_console()

        render_console(build_report(controller, "https://example.com/", ["Keep-1", "Keep-2"]), console)

        text = console.export_text()
        assert "Your unique Google User IDs:" in text
        assert "Leaked Identifiers" in text
        assert "keep.google.com" in text
        assert "What is this?" in text

    def test_single_identifier_is_singular(self):
        controller = IdentifierController()
        controller.on_inventory(["Keep-1"])
        console = recording_console()

        render_console(build_report(controller, "https://example.com/", ["Keep-1"]), console)

        assert "Your unique Google User ID:" in console.export_text()

    def test_forced_only_identifier(self):
        controller = IdentifierController()
        controller.on_initial_forced_result(["42"])
        console = recording_console()

        render_console(build_report(controller, "https://example.com/"), console)

        assert "forced leak" in console.export_text()

    def test_not_logged_in(self):
        controller = IdentifierController()
        controller.on_initial_forced_result([])
        console = recording_console()

        render_console(build_report(controller, "https://example.com/"), console)

        assert "not logged in" in console.export_text()

    def test_not_tested(self):
        console = recording_console()
        render_console(build_report(IdentifierController(), "https://example.com/"), console)
        assert "--force" in console.export_text()

    def test_loading(self):
        controller = IdentifierController()
        controller.set_loading(True)
        console = recording_console()

        render_console(build_report(controller, "https://example.com/"), console)

        assert "Looking for Google User IDs" in console.export_text()


class TestWriteJson:
    """JSON serialization"""

    def test_payload_without_path(self):
        controller = IdentifierController()
        controller.on_inventory(["Keep-5"])
        payload = write_json(build_report(controller, "https://example.com/", ["Keep-5"]))

        data = json.loads(payload)
        assert data['identifiers'] == ["5"]
        assert data['host_url'] == "https://example.com/"
        assert 'generated_at' in data

    def test_written_to_nested_path(self, tmp_path):
        path = tmp_path / "out" / "report.json"
        payload = write_json(build_report(IdentifierController(), "https://example.com/"), str(path))
        assert path.read_text(encoding="utf-8") == payload
