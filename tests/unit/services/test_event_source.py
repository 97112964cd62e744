import asyncio

import pytest
from reporter.services.event_source import consume_events


class FakeSource:
    def __init__(self, batches, shutdown: asyncio.Event, fail_first=False):
        self.batches = list(batches)
        self.shutdown = shutdown
        self.fail_first = fail_first
        self.commits = 0
        self.closed = False

    def poll_once(self):
        if self.fail_first:
            self.fail_first = False
            raise RuntimeError("broker unavailable")
        if not self.batches:
            self.shutdown.set()
            return 0
        return self.batches.pop(0)

    def commit(self):
        self.commits += 1

    def close(self):
        self.closed = True


@pytest.fixture(autouse=True)
def fast_poll(monkeypatch):
    from reporter.core import config as cfg

    monkeypatch.setattr(cfg.settings, "reporter_poll_interval_seconds", 0.001)


@pytest.mark.asyncio
async def test_polls_commits_and_closes_on_shutdown():
    shutdown = asyncio.Event()
    source = FakeSource([3, 0, 2], shutdown)

    await asyncio.wait_for(consume_events(source, shutdown), timeout=2)

    assert source.batches == []
    assert source.commits == 4
    assert source.closed


@pytest.mark.asyncio
async def test_errors_are_logged_and_polling_resumes(monkeypatch, caplog):
    import reporter.services.event_source as module

    real_sleep = asyncio.sleep

    async def short_sleep(seconds):
        await real_sleep(0)

    monkeypatch.setattr(module.asyncio, "sleep", short_sleep)
    shutdown = asyncio.Event()
    source = FakeSource([1], shutdown, fail_first=True)

    await asyncio.wait_for(consume_events(source, shutdown), timeout=2)

    assert any(r.getMessage() == "event_source_error" for r in caplog.records)
    assert source.batches == []
    assert source.closed


@pytest.mark.asyncio
async def test_stops_immediately_when_already_shut_down():
    shutdown = asyncio.Event()
    shutdown.set()
    source = FakeSource([1], shutdown)

    await consume_events(source, shutdown)

    assert source.batches == [1]
    assert source.closed
