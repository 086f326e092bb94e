"""Tests for the session-expiry scheduler job.

The scheduler is built but never started; the job coroutine is run directly.
"""

import asyncio
import logging
from datetime import timedelta

import pytest

from html_pdf_converter.scheduler import build_scheduler
from html_pdf_converter.services.sessions import SessionStore


@pytest.fixture
def store(engine, tmp_path):
    # Negative TTL: every session counts as idle
    return SessionStore(engine=engine, work_dir=tmp_path / "sessions", wait_secs=0, ttl_secs=-1)


class TestExpireSessionsJob:
    def test_registered_on_interval(self, store):
        job = build_scheduler(store, interval_minutes=7).get_job("expire_sessions")
        assert job is not None
        assert job.trigger.interval == timedelta(minutes=7)

    def test_job_sweeps_idle_sessions(self, store):
        session = store.get_or_create(None)
        session.work_dir.mkdir(parents=True, exist_ok=True)
        job = build_scheduler(store).get_job("expire_sessions")

        asyncio.run(job.func())

        assert len(store) == 0
        assert not session.work_dir.exists()

    def test_job_logs_sweep_failure(self, store, monkeypatch, caplog):
        def broken_sweep(now=None):
            raise OSError("disk gone")

        monkeypatch.setattr(store, "sweep", broken_sweep)
        job = build_scheduler(store).get_job("expire_sessions")

        with caplog.at_level(logging.ERROR, logger="html_pdf_converter.scheduler"):
            asyncio.run(job.func())

        assert "Session cleanup failed: disk gone" in caplog.text
