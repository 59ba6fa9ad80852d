import asyncio
import logging
import time
from types import SimpleNamespace

from votedapp.client.polling import BlockWatcher, Poller


class StaticWatcher:
    def __init__(self, moved: bool):
        self.moved = moved
        self.checks = 0

    def has_new_blocks(self) -> bool:
        self.checks += 1
        return self.moved


async def test_results_are_applied_each_interval():
    results = []
    counter = iter(range(1000))
    poller = Poller(lambda: next(counter), 0.01, results.append)

    poller.start()
    assert poller.running
    await asyncio.sleep(0.08)
    await poller.stop()

    assert not poller.running
    assert len(results) >= 2


async def test_coroutine_fetch_is_awaited():
    results = []

    async def fetch():
        return "price"

    poller = Poller(fetch, 0.01, results.append)
    poller.start()
    await asyncio.sleep(0.03)
    await poller.stop()

    assert results and set(results) == {"price"}


async def test_late_result_is_discarded_after_stop():
    results = []
    release = asyncio.Event()

    async def slow_fetch():
        await release.wait()
        return 42

    poller = Poller(slow_fetch, 10, results.append)
    poller.start()
    await asyncio.sleep(0.01)
    await poller.stop()
    release.set()
    await asyncio.sleep(0.01)

    assert results == []


async def test_fetch_errors_go_to_on_error():
    errors = []

    def fetch():
        raise RuntimeError("rpc down")

    poller = Poller(fetch, 0.01, lambda result: None, on_error=errors.append)
    poller.start()
    await asyncio.sleep(0.03)
    await poller.stop()

    assert errors
    assert isinstance(errors[0], RuntimeError)


async def test_idle_chain_skips_fetches_after_first():
    calls = []
    watcher = StaticWatcher(moved=False)
    poller = Poller(lambda: calls.append(1), 0.01, lambda result: None, watcher=watcher)

    poller.start()
    await asyncio.sleep(0.05)
    await poller.stop()

    assert len(calls) == 1
    assert watcher.checks >= 1


async def test_moving_chain_fetches_every_tick():
    calls = []
    poller = Poller(lambda: calls.append(1), 0.01, lambda result: None, watcher=StaticWatcher(moved=True))

    poller.start()
    await asyncio.sleep(0.05)
    await poller.stop()

    assert len(calls) >= 2


class SlowWatcher:
    """Blocks like a synchronous eth_getFilterChanges round trip."""

    def has_new_blocks(self) -> bool:
        time.sleep(0.3)
        return True


async def test_block_checks_do_not_block_the_loop():
    poller = Poller(lambda: None, 0.01, lambda result: None, watcher=SlowWatcher())
    poller.start()
    await asyncio.sleep(0)

    started = time.monotonic()
    await asyncio.sleep(0.01)
    elapsed = time.monotonic() - started
    await poller.stop()

    assert elapsed < 0.1


async def test_restart_drops_reads_from_previous_run():
    results = []
    release = asyncio.Event()
    calls = []

    async def fetch():
        calls.append(1)
        if len(calls) == 1:
            await release.wait()
            return "stale"
        return "fresh"

    poller = Poller(fetch, 10, results.append)
    poller.start()
    await asyncio.sleep(0.01)
    await poller.stop()
    poller.start()
    await asyncio.sleep(0.01)
    release.set()
    await asyncio.sleep(0.01)
    await poller.stop()

    assert results == ["fresh"]


async def test_failing_listener_is_logged_and_polling_continues(caplog):
    calls = []

    def on_result(result):
        raise RuntimeError("view crashed")

    poller = Poller(lambda: calls.append(1), 0.01, on_result)
    with caplog.at_level(logging.ERROR, logger="votedapp.client.polling"):
        poller.start()
        await asyncio.sleep(0.05)
        await poller.stop()

    assert len(calls) >= 2
    assert "Poll listener failed: view crashed" in caplog.text


def test_block_watcher_installs_filter_on_first_check():
    created = []

    def make_filter(kind):
        created.append(kind)
        return SimpleNamespace(get_new_entries=lambda: [])

    watcher = BlockWatcher(SimpleNamespace(eth=SimpleNamespace(filter=make_filter)))

    assert created == []
    assert watcher.has_new_blocks()
    assert created == ["latest"]
    assert watcher.subscribed


def test_block_watcher_falls_back_without_filters():
    def no_filters(kind):
        raise ValueError("filters not supported")

    watcher = BlockWatcher(SimpleNamespace(eth=SimpleNamespace(filter=no_filters)))

    assert watcher.has_new_blocks()
    assert not watcher.subscribed
    assert watcher.has_new_blocks()


def test_block_watcher_reports_new_blocks():
    entries = [[], ["0xblock"]]
    block_filter = SimpleNamespace(get_new_entries=lambda: entries.pop(0))
    watcher = BlockWatcher(SimpleNamespace(eth=SimpleNamespace(filter=lambda kind: block_filter)))

    assert watcher.has_new_blocks()
    assert not watcher.has_new_blocks()
    assert watcher.has_new_blocks()


def test_block_watcher_degrades_when_filter_expires():
    def expired():
        raise ValueError("filter not found")

    block_filter = SimpleNamespace(get_new_entries=expired)
    watcher = BlockWatcher(SimpleNamespace(eth=SimpleNamespace(filter=lambda kind: block_filter)))

    assert watcher.has_new_blocks()
    assert watcher.subscribed
    assert watcher.has_new_blocks()
    assert not watcher.subscribed
