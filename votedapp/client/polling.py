import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, Optional, Set, Union

from web3 import Web3

logger = logging.getLogger(__name__)

Fetcher = Callable[[], Union[Any, Awaitable[Any]]]


class BlockWatcher:
    """
    Tells a poller whether the chain moved since the last check.

    Uses a ``latest`` block filter where the node supports filters. When it
    does not, every check reports a change and the poller degrades to plain
    interval polling.
    """

    def __init__(self, web3: Web3):
        self.web3 = web3
        self._filter = None
        self._installed = False

    def _install(self) -> None:
        self._installed = True
        try:
            self._filter = self.web3.eth.filter("latest")
        except Exception as e:
            logger.info(f"Block filters unavailable, falling back to interval polling: {e}")

    @property
    def subscribed(self) -> bool:
        return self._filter is not None

    def has_new_blocks(self) -> bool:
        """
        Blocking: issues RPC calls, so run it off the event loop. The first call
        installs the filter and always reports a change.
        """
        if not self._installed:
            self._install()
            return True
        if self._filter is None:
            return True
        try:
            return len(self._filter.get_new_entries()) > 0
        except Exception as e:
            logger.warning(f"Block filter failed, polling unconditionally from now on: {e}")
            self._filter = None
            return True


class Poller:
    """
    Runs ``fetch`` every ``interval`` seconds and hands results to ``on_result``.

    Each tick is an independent read: ticks are not de-duplicated against reads
    still in flight, so results are applied in arrival order. Results of reads
    started before the latest ``stop()`` are dropped instead of applied, even
    if the poller has been started again since.
    """

    def __init__(
        self,
        fetch: Fetcher,
        interval: float,
        on_result: Callable[[Any], None],
        on_error: Optional[Callable[[Exception], None]] = None,
        watcher: Optional[BlockWatcher] = None,
    ):
        self.fetch = fetch
        self.interval = interval
        self.on_result = on_result
        self.on_error = on_error
        self.watcher = watcher
        self._timer: Optional[asyncio.Task] = None
        self._inflight: Set[asyncio.Task] = set()
        self._stopped = True
        self._first_tick = True
        self._generation = 0

    @property
    def running(self) -> bool:
        return not self._stopped

    def start(self) -> None:
        if self._timer is not None:
            return
        self._stopped = False
        self._first_tick = True
        self._generation += 1
        self._timer = asyncio.get_running_loop().create_task(self._run())

    async def stop(self) -> None:
        """Cancel the timer; in-flight reads finish but their results are discarded."""
        self._stopped = True
        self._generation += 1
        if self._timer is not None:
            self._timer.cancel()
            try:
                await self._timer
            except asyncio.CancelledError:
                pass
            self._timer = None

    async def _run(self) -> None:
        generation = self._generation
        while not self._stopped:
            if await self._should_fetch():
                task = asyncio.create_task(self._tick(generation))
                self._inflight.add(task)
                task.add_done_callback(self._inflight.discard)
            await asyncio.sleep(self.interval)

    async def _should_fetch(self) -> bool:
        if self.watcher is None:
            return True
        # The watcher talks to the node synchronously
        changed = await asyncio.to_thread(self.watcher.has_new_blocks)
        if self._first_tick:
            self._first_tick = False
            return True
        return changed

    async def _call_fetch(self) -> Any:
        if inspect.iscoroutinefunction(self.fetch):
            return await self.fetch()
        return await asyncio.to_thread(self.fetch)

    def _is_current(self, generation: int) -> bool:
        return not self._stopped and generation == self._generation

    async def _tick(self, generation: int) -> None:
        try:
            result = await self._call_fetch()
        except Exception as e:
            if not self._is_current(generation):
                return
            logger.error(f"Polling fetch failed: {e}")
            self._notify(self.on_error, e)
            return

        if not self._is_current(generation):
            logger.debug("Discarding poll result from a stopped run")
            return
        self._notify(self.on_result, result)

    def _notify(self, listener: Optional[Callable[[Any], None]], value: Any) -> None:
        if listener is None:
            return
        try:
            listener(value)
        except Exception as e:
            logger.error(f"Poll listener failed: {e}")
