import logging

from playwright.async_api import ElementHandle, Error as PlaywrightError

from models import BoundingInfo, HIDDEN

logger = logging.getLogger(__name__)

# Runs in the element's own frame, so getComputedStyle sees that frame's styles.
VISIBILITY_JS = """
(el) => {
    const style = window.getComputedStyle(el);
    return style.display !== 'none' &&
           style.visibility !== 'hidden' &&
           parseFloat(style.opacity) > 0 &&
           el.offsetWidth > 0 && el.offsetHeight > 0;
}
"""


async def evaluate_visibility(handle: ElementHandle) -> BoundingInfo:
    """Rendered size and computed-style visibility of an element.

    Never raises: a detached handle, a missing box or a failing script all
    come back as an invisible zero-sized result.
    """
    try:
        box = await handle.bounding_box()
        if not box:
            return HIDDEN
        visible = await handle.evaluate(VISIBILITY_JS)
    except PlaywrightError as e:
        logger.debug("visibility check failed: %s", e)
        return HIDDEN
    return BoundingInfo(isVisible=bool(visible), width=box["width"], height=box["height"])


async def is_qualifying(handle: ElementHandle, min_size: float) -> bool:
    info = await evaluate_visibility(handle)
    return info.qualifies(min_size)
