import asyncio
import logging
from enum import Enum
from typing import List, Optional

from inventory import Inventory
from models import ElementDescriptor, ExtractionConfig, PassReport
from traversal import Context, TraversalEngine

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    STOPPED = "stopped"


class ExtractionSession:
    """Keeps an inventory of visible element locators for one page.

    ``start`` runs a first pass and then re-runs the traversal every
    ``observationIntervalMs`` until ``stop``. Stopping never interrupts a pass
    already running; use ``wait_closed`` to let it finish before reading a
    consistent snapshot.
    """

    def __init__(self, page: Context, config: Optional[ExtractionConfig] = None):
        self.page = page
        self.config = config or ExtractionConfig()
        self.inventory = Inventory()
        self.engine = TraversalEngine(self.inventory, self.config)
        self.state = SessionState.IDLE
        self.pass_count = 0
        self.last_report: Optional[PassReport] = None
        self.last_error: Optional[BaseException] = None
        self._timer: Optional[asyncio.Task] = None
        self._timer_in_pass = False
        self._pass_lock = asyncio.Lock()

    async def __aenter__(self) -> "ExtractionSession":
        return await self.start()

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.stop()
        await self.wait_closed()

    async def start(self) -> "ExtractionSession":
        if self.state is not SessionState.RUNNING:
            # new lifecycle: let a straggling pass finish before wiping its results
            await self.wait_closed()
            self.inventory.clear()
            self.pass_count = 0
            self.last_report = None
            self.last_error = None
            self.state = SessionState.IDLE
        await self.run_pass()
        self._cancel_timer()
        if self.state is SessionState.STOPPED:
            # stop() arrived while the first pass was running
            return self
        self.state = SessionState.RUNNING
        self._timer = asyncio.create_task(self._observe())
        logger.info(
            "Observing %d element(s), re-scanning every %d ms",
            len(self.inventory), self.config.observationIntervalMs,
        )
        return self

    def stop(self) -> None:
        if self.state is SessionState.STOPPED:
            return
        self.state = SessionState.STOPPED
        if not self._timer_in_pass:
            self._cancel_timer()
        logger.info("Dynamic element observation stopped.")

    async def wait_closed(self) -> None:
        """Wait for the pass in flight, and for the timer once stopped.

        On a running session the timer never finishes on its own, so only the
        current pass is awaited.
        """
        if self._timer is not None and self.state is not SessionState.RUNNING:
            await asyncio.gather(self._timer, return_exceptions=True)
            self._timer = None
        async with self._pass_lock:
            pass

    def locators(self) -> List[ElementDescriptor]:
        return self.inventory.snapshot()

    async def run_pass(self) -> PassReport:
        async with self._pass_lock:
            report = await self.engine.run_pass(self.page)
        self.pass_count += 1
        self.last_report = report
        logger.debug(
            "Pass %d: %d candidates, %d committed, %d skipped, %d parents removed, "
            "%d frame(s), %d frame error(s), %.1f ms",
            self.pass_count, report.candidates, report.committed, report.skipped,
            report.parentsRemoved, report.frames, report.frameErrors, report.durationMs,
        )
        return report

    def _cancel_timer(self) -> None:
        if self._timer is not None and not self._timer.done():
            self._timer.cancel()

    async def _observe(self) -> None:
        loop = asyncio.get_running_loop()
        interval = self.config.interval_seconds
        next_tick = loop.time() + interval
        while self.state is SessionState.RUNNING:
            await asyncio.sleep(max(0.0, next_tick - loop.time()))
            if self.state is not SessionState.RUNNING:
                return
            await self._pulse()

            next_tick += interval
            now = loop.time()
            if next_tick <= now:
                missed = int((now - next_tick) // interval) + 1
                logger.debug("Pass overran the interval, dropping %d pulse(s)", missed)
                next_tick += missed * interval

    async def _pulse(self) -> None:
        if self._pass_lock.locked():
            logger.debug("Previous pass still running, skipping pulse")
            return
        logger.debug("Polling for new elements...")
        self._timer_in_pass = True
        try:
            await self.run_pass()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            # the root is usually rebuilt after navigation; try again next pulse
            self.last_error = e
            logger.warning("Observation pass failed: %s", e, exc_info=True)
        finally:
            self._timer_in_pass = False


async def extract_visible_element_locators(
    page: Context, config: Optional[ExtractionConfig] = None
) -> ExtractionSession:
    """Start observing ``page``; returns once the first pass has completed."""
    session = ExtractionSession(page, config)
    return await session.start()
