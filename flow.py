import json
from pathlib import Path
from typing import Any, Union

from models import Flow

DEMO_STORE_URL = "https://www.demoblaze.com/"

# Category clicks, a product page that removes the category list, then home.
DEFAULT_FLOW = {
    "startUrl": DEMO_STORE_URL,
    "instructions": [
        {"action": "click", "selector": "a.nav-link", "hasText": "Laptops",
         "waitAfter": {"for": "networkidle"}},
        {"action": "click", "selector": "a.nav-link", "hasText": "Monitors",
         "waitAfter": {"for": "networkidle"}},
        {"action": "click", "selector": "a.nav-link", "hasText": "Phones",
         "waitAfter": {"for": "networkidle"}},
        {"action": "click", "selector": ".card-title a", "hasText": "Samsung galaxy s6",
         "waitAfter": {"for": "networkidle"}},
        {"action": "wait", "timeoutMs": 5000},
        {"action": "click", "selector": ".navbar-brand", "waitAfter": {"for": "networkidle"}},
        {"action": "wait", "timeoutMs": 3000},
    ],
}


def parse_flow(data: Any) -> Flow:
    """A flow object, or a bare list of instructions."""
    if isinstance(data, list):
        data = {"instructions": data}
    return Flow.model_validate(data)


def load_flow(source: Union[str, Path]) -> Flow:
    text = Path(source).read_text(encoding="utf-8")
    return parse_flow(json.loads(text))


def default_flow() -> Flow:
    return parse_flow(DEFAULT_FLOW)
