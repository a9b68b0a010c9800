import logging
import time
from dataclasses import dataclass
from typing import Iterator, List, Optional, Union

from playwright.async_api import ElementHandle, Frame, Page, Error as PlaywrightError

from inventory import Inventory
from locators import generate_locator
from models import ElementDescriptor, ExtractionConfig, PassReport
from naming import extract_name
from visibility import evaluate_visibility, is_qualifying

logger = logging.getLogger(__name__)

Context = Union[Page, Frame]

# Everything under body, plus tagged elements that may live outside it.
CANDIDATES_SELECTOR = "body, body *, [data-testid], [data-test-id], [name]"
PARENT_JS = "(el) => el.parentElement"


@dataclass
class _FrameCursor:
    context: Context
    depth: int
    handles: Optional[Iterator[ElementHandle]] = None


class TraversalEngine:
    """One pass over a page and every frame reachable from it.

    Frames are descended depth-first through an explicit stack, so a frame's
    candidates are processed right after the element embedding it, as plain
    recursion would, without growing the Python call stack.
    """

    def __init__(self, inventory: Inventory, config: ExtractionConfig):
        self.inventory = inventory
        self.config = config

    async def run_pass(self, root: Context) -> PassReport:
        report = PassReport()
        started = time.perf_counter()
        stack: List[_FrameCursor] = [_FrameCursor(root, 0)]

        while stack:
            cursor = stack[-1]
            if cursor.handles is None:
                try:
                    handles = await cursor.context.query_selector_all(CANDIDATES_SELECTOR)
                except PlaywrightError as e:
                    if cursor.depth == 0:
                        raise
                    logger.debug("Skipping frame that could not be enumerated: %s", e)
                    stack.pop()
                    continue
                cursor.handles = iter(handles)
                report.frames += 1

            handle = next(cursor.handles, None)
            if handle is None:
                stack.pop()
                continue

            report.candidates += 1
            try:
                child = await self._visit(cursor.context, handle, report)
            except PlaywrightError as e:
                report.skipped += 1
                logger.debug("Skipping candidate: %s", e)
                continue
            finally:
                await _release(handle)

            if child is not None:
                if cursor.depth < self.config.maxFrameDepth:
                    stack.append(_FrameCursor(child, cursor.depth + 1))
                else:
                    logger.debug("Not descending into frame beyond depth %d", self.config.maxFrameDepth)

        report.durationMs = round((time.perf_counter() - started) * 1000, 1)
        return report

    async def _visit(self, context: Context, handle: ElementHandle, report: PassReport) -> Optional[Frame]:
        """Process one candidate and return the frame it embeds, if any."""
        info = await evaluate_visibility(handle)
        if not info.qualifies(self.config.minElementSize):
            return None
        report.qualifying += 1

        locator = await generate_locator(handle)
        if not locator:
            return None

        try:
            if await self._supersede_parent(handle):
                report.parentsRemoved += 1
        except PlaywrightError as e:
            # parent detached in the meantime
            logger.debug("Parent check failed for %s: %s", locator, e)

        await self._commit(context, handle, locator, report)

        try:
            return await handle.content_frame()
        except PlaywrightError as e:
            report.frameErrors += 1
            logger.debug("Could not resolve the frame embedded by %s: %s", locator, e)
            return None

    async def _commit(self, context: Context, handle: ElementHandle, locator: str, report: PassReport) -> None:
        try:
            count = await context.locator(locator).count()
        except PlaywrightError as e:
            report.skipped += 1
            logger.debug("Locator validation failed for %s: %s", locator, e)
            return
        if count == 0:
            logger.debug("Locator %s matched nothing, dropped", locator)
            return

        try:
            name = await extract_name(handle, self.config.nameMaxLength)
        except PlaywrightError as e:
            report.skipped += 1
            logger.debug("Name extraction failed for %s: %s", locator, e)
            return
        self.inventory.put(ElementDescriptor(locator=locator, name=name, count=count))
        report.committed += 1

    async def _supersede_parent(self, handle: ElementHandle) -> bool:
        """Drop the parent's entry when the parent itself qualifies.

        Runs before the child is committed, so the more specific child always
        replaces its stored ancestor.
        """
        parent_handle = await handle.evaluate_handle(PARENT_JS)
        try:
            parent = parent_handle.as_element()
            if parent is None:
                return False
            parent_locator = await generate_locator(parent)
            if not parent_locator or parent_locator not in self.inventory:
                return False
            if not await is_qualifying(parent, self.config.minElementSize):
                return False
            self.inventory.remove(parent_locator)
            logger.debug("Removed parent %s in favour of its child", parent_locator)
            return True
        finally:
            await _release(parent_handle)


async def _release(handle) -> None:
    try:
        await handle.dispose()
    except PlaywrightError as e:
        # the owning frame may already be gone
        logger.debug("Could not dispose handle: %s", e)
