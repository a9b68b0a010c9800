from typing import Any, Callable, Dict, List, Optional, Tuple

from playwright.async_api import ElementHandle

NAME_FACTS_JS = """
(el) => {
    const text = (node) => (node && typeof node.innerText === 'string') ? node.innerText : null;
    let labelText = null;
    if (el.id) {
        const label = Array.from(document.querySelectorAll('label[for]'))
            .find(l => l.getAttribute('for') === el.id);
        labelText = text(label);
    }
    const parent = el.parentElement;
    const parentIsLabel = !!parent && parent.tagName.toLowerCase() === 'label';
    return {
        tag: el.tagName.toLowerCase(),
        id: el.id || null,
        className: el.getAttribute('class') || '',
        labelText: labelText,
        parentLabelText: parentIsLabel ? text(parent) : null,
        title: el.getAttribute('title'),
        ariaLabel: el.getAttribute('aria-label'),
        placeholder: el.getAttribute('placeholder'),
        alt: el.getAttribute('alt'),
        text: text(el),
    };
}
"""

Facts = Dict[str, Any]
NameRule = Callable[[Facts], Optional[str]]


def _fact(key: str) -> NameRule:
    return lambda facts: facts.get(key)


# label[for] > wrapping label > title > aria-label > placeholder > alt > own text
NAME_RULES: List[Tuple[str, NameRule]] = [
    ("label", _fact("labelText")),
    ("parent-label", _fact("parentLabelText")),
    ("title", _fact("title")),
    ("aria-label", _fact("ariaLabel")),
    ("placeholder", _fact("placeholder")),
    ("alt", _fact("alt")),
    ("text", _fact("text")),
]


def fallback_name(facts: Facts) -> str:
    name = (facts.get("tag") or "").lower()
    classes = (facts.get("className") or "").split()
    if facts.get("id"):
        name += f" (ID: {facts['id']})"
    elif classes:
        name += f" (Class: {classes[0]})"
    return name


def name_from_facts(facts: Facts, max_length: int, rules: List[Tuple[str, NameRule]] = NAME_RULES) -> str:
    for _, rule in rules:
        value = rule(facts)
        if value and value.strip():
            return value.strip()[:max_length]
    return fallback_name(facts).strip()[:max_length]


async def extract_name(handle: ElementHandle, max_length: int) -> str:
    facts = await handle.evaluate(NAME_FACTS_JS)
    return name_from_facts(facts, max_length)
