import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

import anyio
from pydantic import ValidationError

from context import PlaywrightDriver
from executor import execute_flow
from flow import default_flow, load_flow
from models import ElementDescriptor, ExecResult, ExtractionConfig, Flow
from session import extract_visible_element_locators

logger = logging.getLogger(__name__)

DEFAULT_OUTPUT = "extracted_locators.json"


def write_locators(path, locators: List[ElementDescriptor]) -> Path:
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    payload = [d.model_dump() for d in locators]
    out.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
    return out


def _print_flow_result(res: ExecResult):
    border = "=" * 60
    print(f"\n{border}")
    print(f"FLOW RESULT: {'OK' if res.ok else 'FAIL'}")
    print(f"URL: {res.url}")
    print(f"TITLE: {res.title}")
    for i, e in enumerate(res.errors, 1):
        print(f"  {i}. [{e.code}] {e.message}")
    print(border)


async def run(flow: Flow, config: ExtractionConfig, output: str,
              observe_seconds: float = 0, headless: bool = True) -> List[ElementDescriptor]:
    driver = PlaywrightDriver(headless=headless)
    await driver.start()
    try:
        if flow.startUrl:
            await driver.goto(flow.startUrl)
        session = await extract_visible_element_locators(driver.page, config)
        try:
            res = await execute_flow(driver, flow.model_copy(update={"startUrl": None}))
            _print_flow_result(res)
            if observe_seconds > 0:
                logger.info("Observing for another %.1f s", observe_seconds)
                await anyio.sleep(observe_seconds)
        finally:
            session.stop()
            await session.wait_closed()

        locators = session.locators()
        print("\n--- Final Extracted Locators ---")
        print(f"Total unique visible and interactable elements found: {len(locators)}")
        try:
            path = write_locators(output, locators)
            print(f"\nSuccessfully wrote locators to: {path}")
        except OSError as e:
            logger.error("Failed to write JSON file: %s", e)
        return locators
    finally:
        await driver.stop()


def build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Collect locators of visible, interactable elements while a user flow runs.")
    p.add_argument("url", nargs="?", help="page to open first (overrides the flow's startUrl)")
    p.add_argument("--flow", help="JSON file with the instructions to run while observing")
    p.add_argument("--output", "-o", default=DEFAULT_OUTPUT)
    p.add_argument("--observe", type=float, default=0, help="seconds to keep observing after the flow")
    p.add_argument("--interval", type=int, help="re-scan interval in ms")
    p.add_argument("--name-max-length", type=int)
    p.add_argument("--min-size", type=float)
    p.add_argument("--headed", action="store_true")
    return p


def main(argv: Optional[List[str]] = None) -> int:
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    args = build_arg_parser().parse_args(argv)
    try:
        flow = load_flow(args.flow) if args.flow else default_flow()
        config = ExtractionConfig.from_env(
            observationIntervalMs=args.interval,
            nameMaxLength=args.name_max_length,
            minElementSize=args.min_size,
        )
    except (OSError, ValueError, ValidationError) as e:
        print(f"Invalid input: {e}")
        return 1
    if args.url:
        flow = flow.model_copy(update={"startUrl": args.url})
    if not flow.startUrl:
        print("No start URL: pass one on the command line or set startUrl in the flow.")
        return 1

    headless = not args.headed and os.getenv("HEADLESS", "true").lower() not in ("0", "false", "no")
    try:
        anyio.run(run, flow, config, args.output, args.observe, headless)
    except Exception:
        logger.exception("An error occurred during the process")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
