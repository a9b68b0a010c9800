"""Structural CSS locators for element handles.

Attribute based selectors come first because they survive re-ordering of the
document; the tag/class selector with a positional suffix is the last resort
and may still match more than one element.
"""
import logging
from typing import Any, Callable, Dict, List, Optional, Tuple

from playwright.async_api import ElementHandle, Error as PlaywrightError

logger = logging.getLogger(__name__)

LOCATOR_FACTS_JS = """
(el) => {
    const attrs = {};
    for (const name of ['data-testid', 'data-test-id', 'name', 'role', 'type']) {
        attrs[name] = el.getAttribute(name);
    }
    let idCount = 0;
    if (el.id) {
        idCount = Array.from(document.querySelectorAll('[id]')).filter(n => n.id === el.id).length;
    }
    let nthOfType = null;
    const parent = el.parentElement;
    if (parent) {
        const sameTag = Array.from(parent.children).filter(s => s.tagName === el.tagName);
        nthOfType = sameTag.indexOf(el) + 1;
    }
    return {
        tag: el.tagName.toLowerCase(),
        id: el.id || null,
        idCount: idCount,
        classes: Array.from(el.classList),
        attrs: attrs,
        nthOfType: nthOfType,
    };
}
"""

SELECTOR_COUNT_JS = "(el, selector) => document.querySelectorAll(selector).length"

Facts = Dict[str, Any]
LocatorRule = Callable[[Facts], Optional[str]]


def escape_css_string(value: str) -> str:
    value = value.replace("\\", "\\\\").replace('"', '\\"')
    # raw line breaks end a CSS string
    return value.replace("\n", "\\a ").replace("\r", "\\d ")


def escape_css_identifier(value: str) -> str:
    escaped: List[str] = []
    for i, char in enumerate(value):
        leading_digit = char.isdigit() and (i == 0 or (i == 1 and value[0] == "-"))
        if (char.isalnum() and not leading_digit) or char in ("-", "_"):
            escaped.append(char)
        else:
            escaped.append(f"\\{ord(char):x} ")
    return "".join(escaped)


def attribute_selector(name: str, value: str) -> str:
    return f'[{name}="{escape_css_string(value)}"]'


def _unique_id(facts: Facts) -> Optional[str]:
    if facts.get("id") and facts.get("idCount") == 1:
        return "#" + escape_css_identifier(facts["id"])
    return None


def _attribute(name: str) -> LocatorRule:
    def rule(facts: Facts) -> Optional[str]:
        value = (facts.get("attrs") or {}).get(name)
        if value:
            return attribute_selector(name, value)
        return None
    return rule


# Evaluated in order, first hit wins. data-test-id is the legacy spelling.
LOCATOR_RULES: List[Tuple[str, LocatorRule]] = [
    ("id", _unique_id),
    ("data-testid", _attribute("data-testid")),
    ("data-test-id", _attribute("data-test-id")),
    ("name", _attribute("name")),
]


def locator_from_rules(facts: Facts, rules: List[Tuple[str, LocatorRule]] = LOCATOR_RULES) -> Optional[str]:
    for _, rule in rules:
        locator = rule(facts)
        if locator:
            return locator
    return None


def structural_selector(facts: Facts) -> str:
    selector = facts["tag"]
    for cls in facts.get("classes") or []:
        # multi-token or blank class values cannot be expressed as .class
        if cls and not any(ch.isspace() for ch in cls):
            selector += "." + escape_css_identifier(cls)
    attrs = facts.get("attrs") or {}
    for name in ("role", "type"):
        if attrs.get(name):
            selector += attribute_selector(name, attrs[name])
    return selector


def disambiguate(selector: str, matches: int, nth_of_type: Optional[int]) -> str:
    if matches > 1 and nth_of_type and nth_of_type > 0:
        return f"{selector}:nth-of-type({nth_of_type})"
    return selector


async def generate_locator(handle: ElementHandle) -> Optional[str]:
    """Locator string for ``handle`` or None when the page cannot be queried."""
    try:
        facts = await handle.evaluate(LOCATOR_FACTS_JS)
        locator = locator_from_rules(facts)
        if locator:
            return locator
        selector = structural_selector(facts)
        matches = await handle.evaluate(SELECTOR_COUNT_JS, selector)
    except PlaywrightError as e:
        logger.debug("Could not generate CSS locator: %s", e)
        return None
    return disambiguate(selector, matches, facts.get("nthOfType"))
