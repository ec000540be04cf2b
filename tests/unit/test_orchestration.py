"""
Unit tests for exercise_pdf_service/orchestration.py

The browser must go back to the pool on every exit path: success,
render failure, and timeout.
"""

import asyncio
import json
import logging

import pytest

from exercise_pdf_service.errors import CreationError, RenderError
from exercise_pdf_service.models import RenderRequest
from exercise_pdf_service.orchestration import RenderJob, RenderOrchestrator, RenderResult
from exercise_pdf_service.pool import BrowserPool
from exercise_pdf_service.queue import RenderQueue
from helpers.fake_engines import FAKE_PDF, FakeLauncher


def _job(**overrides) -> RenderJob:
    data = {
        "patientName": "Jane Doe",
        "date": "2025-03-05",
        "exercises": [{"id": 1, "title": "Bridge", "description": "Lift hips"}],
    }
    data.update(overrides)
    return RenderJob(request=RenderRequest(**data), request_id="req-1")


class TestRenderOrchestrator:
    """Tests for a single render job."""

    @pytest.mark.asyncio
    async def test_success_returns_pdf_and_filename(self):
        launcher = FakeLauncher()
        pool = BrowserPool(launcher)
        orchestrator = RenderOrchestrator(pool)

        result = await orchestrator(_job())

        assert isinstance(result, RenderResult)
        assert result.pdf == FAKE_PDF
        assert result.filename == "exercise_plan_jane_doe_March_5,_2025.pdf"
        assert result.duration_ms >= 0

    @pytest.mark.asyncio
    async def test_success_releases_browser(self):
        pool = BrowserPool(FakeLauncher())
        orchestrator = RenderOrchestrator(pool)

        await orchestrator(_job())

        assert pool.checked_out_count == 0
        assert pool.idle_count == 1

    @pytest.mark.asyncio
    async def test_markup_reaches_renderer(self):
        launcher = FakeLauncher()
        orchestrator = RenderOrchestrator(BrowserPool(launcher))

        await orchestrator(_job(patientNotes="Twice a day"))

        markup = launcher.created[0].last_markup
        assert markup.startswith("<!DOCTYPE html>")
        assert "Jane Doe" in markup
        assert "Twice a day" in markup
        assert "Bridge" in markup

    @pytest.mark.asyncio
    async def test_custom_markup_builder(self):
        launcher = FakeLauncher()
        orchestrator = RenderOrchestrator(
            BrowserPool(launcher),
            markup_builder=lambda request: f"<p>{request.subject_name}</p>",
        )

        await orchestrator(_job())

        assert launcher.created[0].last_markup == "<p>Jane Doe</p>"

    @pytest.mark.asyncio
    async def test_render_failure_raises_and_releases(self):
        pool = BrowserPool(FakeLauncher(render_failures=1))
        orchestrator = RenderOrchestrator(pool)

        with pytest.raises(RenderError, match="Rendering failed: Target page crashed"):
            await orchestrator(_job())

        assert pool.checked_out_count == 0
        assert pool.idle_count == 1

    @pytest.mark.asyncio
    async def test_timeout_raises_and_releases(self):
        pool = BrowserPool(FakeLauncher(render_delay=1.0))
        orchestrator = RenderOrchestrator(pool, render_timeout=0.05)

        with pytest.raises(RenderError, match="timed out after 0.05s"):
            await orchestrator(_job())

        assert pool.checked_out_count == 0
        assert pool.idle_count == 1

    @pytest.mark.asyncio
    async def test_creation_failure_propagates(self):
        pool = BrowserPool(FakeLauncher(fail_times=1))
        orchestrator = RenderOrchestrator(pool)

        with pytest.raises(CreationError):
            await orchestrator(_job())

        assert pool.checked_out_count == 0

    @pytest.mark.asyncio
    async def test_failure_logs_structured_line(self, caplog):
        orchestrator = RenderOrchestrator(BrowserPool(FakeLauncher(render_failures=1)))

        with caplog.at_level(logging.ERROR, logger="exercise_pdf_service.orchestration"):
            with pytest.raises(RenderError):
                await orchestrator(_job())

        records = [r for r in caplog.records if r.name == "exercise_pdf_service.orchestration"]
        payload = json.loads(records[-1].getMessage())
        assert payload["event"] == "pdf_generation_error"
        assert payload["error_type"] == "RenderError"
        assert payload["patient"] == "Jane Doe"
        assert payload["reqId"] == "req-1"


class TestOrchestratorInQueue:
    """The orchestrator as the queue's processing routine."""

    @pytest.mark.asyncio
    async def test_one_failing_job_does_not_affect_others(self):
        launcher = FakeLauncher(render_failures=1)
        pool = BrowserPool(launcher, max_idle=2)
        queue = RenderQueue(RenderOrchestrator(pool), concurrency=1)

        futures = [queue.submit(_job()) for _ in range(3)]
        results = await asyncio.gather(*futures, return_exceptions=True)

        assert isinstance(results[0], RenderError)
        assert results[1].pdf == FAKE_PDF
        assert results[2].pdf == FAKE_PDF
        assert launcher.calls == 1
        assert pool.checked_out_count == 0

    @pytest.mark.asyncio
    async def test_concurrent_jobs_use_separate_browsers(self):
        launcher = FakeLauncher(render_delay=0.01)
        pool = BrowserPool(launcher, max_idle=2)
        queue = RenderQueue(RenderOrchestrator(pool), concurrency=2)

        await asyncio.gather(*(queue.submit(_job()) for _ in range(6)))

        # Never more browsers than concurrent renders
        assert 1 <= launcher.calls <= 2
        assert launcher.max_in_flight == 1
        assert pool.checked_out_count == 0
        assert pool.idle_count == launcher.calls
