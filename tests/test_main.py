"""
Tests for the service entry point: polling loop and health endpoint
"""
import asyncio
from datetime import datetime
from unittest.mock import AsyncMock, MagicMock, patch
from zoneinfo import ZoneInfo

import pytest
from fastapi.testclient import TestClient

from autoreply import main
from autoreply.models import CycleReport, CycleStatus
from factories import make_settings


@pytest.fixture
def client():
    """Test client without running the lifespan (no polling task)"""
    return TestClient(main.app)


class TestPollMailbox:
    """Sequential polling loop"""

    def test_runs_cycle_then_sleeps(self):
        processor = MagicMock()
        sleep = AsyncMock(side_effect=asyncio.CancelledError)

        with patch("autoreply.main.asyncio.sleep", sleep):
            with pytest.raises(asyncio.CancelledError):
                asyncio.run(main.poll_mailbox(processor, 45))

        processor.run_cycle.assert_called_once_with()
        sleep.assert_awaited_once_with(45)

    def test_cycle_error_does_not_stop_loop(self):
        """A failed cycle is logged and the next one still runs"""
        processor = MagicMock()
        processor.run_cycle.side_effect = [RuntimeError("boom"), None]
        sleep = AsyncMock(side_effect=[None, asyncio.CancelledError])

        with patch("autoreply.main.asyncio.sleep", sleep):
            with pytest.raises(asyncio.CancelledError):
                asyncio.run(main.poll_mailbox(processor, 60))

        assert processor.run_cycle.call_count == 2


class TestHealthCheck:
    """Health endpoint"""

    def test_before_startup(self, client):
        with patch("autoreply.main.settings", None):
            response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "starting"

    def test_reports_last_cycle(self, client):
        processor = MagicMock()
        processor.last_report = CycleReport(
            started_at=datetime(2024, 5, 1, 22, 0, tzinfo=ZoneInfo("Asia/Jakarta")),
            status=CycleStatus.COMPLETED,
            fetched=3,
            replied=2,
            skipped=1,
        )

        with patch("autoreply.main.settings", make_settings(debug_mode=True)), patch(
            "autoreply.main.processor", processor
        ):
            response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["mode"] == "DEBUG"
        assert data["active_now"] is True
        assert data["check_interval"] == 30
        assert data["last_cycle"]["replied"] == 2
        assert data["last_cycle"]["status"] == "completed"

    def test_active_now_outside_window(self, client):
        """Health reports the window state without logging the debug bypass marker"""
        settings = make_settings(hour_start=17, hour_end=8)
        processor = MagicMock(last_report=None)

        with patch("autoreply.main.settings", settings), patch("autoreply.main.processor", processor), patch(
            "autoreply.main.now_in_timezone", return_value=datetime(2024, 5, 1, 9, 0, tzinfo=ZoneInfo("Asia/Jakarta"))
        ):
            response = client.get("/health")

        assert response.json()["active_now"] is False
