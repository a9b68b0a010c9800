import logging
import traceback

from models import Flow, Instruction, ExecResult, ExecError

logger = logging.getLogger(__name__)


def _target(page, ins: Instruction):
    loc = page.locator(ins.selector)
    if ins.hasText:
        loc = loc.filter(has_text=ins.hasText)
    return loc.first


async def execute_instruction(driver, ins: Instruction):
    page = driver.page
    if ins.action == "navigate" and ins.url:
        await driver.goto(ins.url)
    elif ins.action == "click" and ins.selector:
        await _target(page, ins).click(timeout=ins.timeoutMs)
    elif ins.action == "fill" and ins.selector:
        await _target(page, ins).fill(ins.value or "", timeout=ins.timeoutMs)
    elif ins.action == "waitForSelector" and ins.selector:
        await page.wait_for_selector(ins.selector, timeout=ins.timeoutMs)
    elif ins.action == "waitForLoadState":
        await page.wait_for_load_state(ins.value or "load", timeout=ins.timeoutMs)
    elif ins.action == "wait":
        await page.wait_for_timeout(ins.timeoutMs or 0)
    else:
        raise ValueError(f"Incomplete instruction: {ins.model_dump(exclude_none=True)}")
    if ins.waitAfter:
        await page.wait_for_load_state(ins.waitAfter.for_, timeout=ins.waitAfter.timeoutMs)


async def execute_flow(driver, flow: Flow) -> ExecResult:
    res = ExecResult(ok=True)
    try:
        if flow.startUrl:
            await driver.goto(flow.startUrl)
        for i, ins in enumerate(flow.instructions):
            logger.info("Step %d: %s %s", i, ins.action, ins.hasText or ins.selector or ins.url or "")
            await execute_instruction(driver, ins)
            res.logs.append(f"{i}:{ins.action}")
        info = await driver.describe()
        res.url, res.title = info["url"], info["title"]
    except Exception as e:
        res.ok = False
        res.errors.append(ExecError(code="runtime", message=str(e), details={"trace": traceback.format_exc()}))
    return res
