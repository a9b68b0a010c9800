import pytest
from playwright.async_api import Error as PlaywrightError

from fakes import E, page, locators_of
from inventory import Inventory
from models import ElementDescriptor, ExtractionConfig
from traversal import TraversalEngine

pytestmark = pytest.mark.anyio


def engine(**config):
    return TraversalEngine(Inventory(), ExtractionConfig(**config))


async def test_unique_id_scenario():
    eng = engine()
    doc = page(E("button", {"id": "submit-btn"}, text="Go", size=(80, 30)))
    await eng.run_pass(doc)
    assert eng.inventory.snapshot() == [ElementDescriptor(locator="#submit-btn", name="Go", count=1)]


async def test_named_input_scenario():
    eng = engine()
    doc = page(E("input", {"placeholder": "Enter email", "name": "email"}))
    await eng.run_pass(doc)
    item = eng.inventory.get('[name="email"]')
    assert item is not None
    assert item.name == "Enter email"


async def test_tiny_element_is_ignored():
    eng = engine()
    await eng.run_pass(page(E("div", {"class": "dot"}, size=(3, 3))))
    assert "div.dot" not in eng.inventory
    # nothing replaced the body, so it is the only entry
    assert locators_of(eng.inventory.snapshot()) == ["body"]


@pytest.mark.parametrize("kwargs", [
    {"size": (0, 40)},
    {"size": (40, 0)},
    {"style": {"display": "none"}},
    {"style": {"visibility": "hidden"}},
    {"style": {"opacity": "0"}},
])
async def test_invisible_elements_never_recorded(kwargs):
    eng = engine()
    await eng.run_pass(page(E("button", {"id": "ghost"}, text="Hidden", **kwargs)))
    assert "#ghost" not in eng.inventory


async def test_child_supersedes_parent():
    eng = engine()
    doc = page(E("div", {"class": "card"}, E("button", None, text="Buy"), size=(300, 200)))
    report = await eng.run_pass(doc)
    assert locators_of(eng.inventory.snapshot()) == ["button"]
    # body replaced by the card, card replaced by the button
    assert report.parentsRemoved == 2


async def test_small_parent_is_kept():
    eng = engine()
    # the wrapper is stored first (it is big enough) then shrinks before its child is visited
    wrapper = E("span", {"data-testid": "wrap"}, E("a", {"id": "inner"}, text="Docs"), size=(50, 50))
    doc = page(wrapper)
    eng.inventory.put(ElementDescriptor(locator='[data-testid="wrap"]', name="wrap", count=1))
    wrapper.size = (2, 2)
    await eng.run_pass(doc)
    assert '[data-testid="wrap"]' in eng.inventory
    assert "#inner" in eng.inventory


async def test_parent_found_after_child_in_later_pass_is_removed_again():
    eng = engine()
    doc = page(E("div", {"id": "panel"}, E("button", {"id": "ok"}, text="OK"), size=(300, 200)))
    for _ in range(3):
        await eng.run_pass(doc)
        assert "#panel" not in eng.inventory
        assert "#ok" in eng.inventory


async def test_two_passes_over_static_document_are_identical():
    eng = engine()
    doc = page(
        E("nav", None, E("a", {"class": "nav-link"}, text="Home"), E("a", {"class": "nav-link"}, text="About")),
        E("form", None,
          E("label", {"for": "q"}, text="Query"),
          E("input", {"id": "q"}),
          E("button", {"type": "submit"}, text="Search")),
        size=(1024, 768),
    )
    await eng.run_pass(doc)
    first = eng.inventory.snapshot()
    await eng.run_pass(doc)
    assert eng.inventory.snapshot() == first
    assert {d.locator for d in first} >= {"a.nav-link:nth-of-type(1)", "a.nav-link:nth-of-type(2)", "#q"}
    assert eng.inventory.get("#q").name == "Query"


async def test_zero_match_locator_is_never_committed():
    eng = engine()
    doc = page(E("button", {"id": "flaky"}, text="Now you see me"))
    doc.count_overrides["#flaky"] = 0
    report = await eng.run_pass(doc)
    assert "#flaky" not in eng.inventory
    assert report.committed == 1  # only the body


async def test_entries_survive_while_their_locator_is_valid():
    eng = engine()
    keep = E("button", {"id": "keep"}, text="Keep")
    doc = page(keep)
    await eng.run_pass(doc)
    doc.body.append(E("button", {"id": "later"}, text="Later"))
    await eng.run_pass(doc)
    assert {"#keep", "#later"} <= set(eng.inventory)


async def test_bad_candidates_are_skipped_and_pass_completes():
    eng = engine()
    doc = page(
        E("button", {"id": "broken-name"}, fail={"name"}),
        E("iframe", {"id": "broken-frame"}, fail={"content_frame"}),
        E("button", {"id": "broken-parent"}, fail={"parent"}),
        E("button", {"id": "broken-locator"}, fail={"locator"}),
        E("button", {"id": "fine"}, text="Fine"),
    )
    report = await eng.run_pass(doc)
    # the failed name is the only skip; the frame failure is counted on its own
    assert report.skipped == 1
    assert report.frameErrors == 1
    assert "#broken-name" not in eng.inventory
    assert "#broken-frame" in eng.inventory
    assert "#broken-parent" in eng.inventory
    assert "#fine" in eng.inventory
    assert report.candidates == 6


async def test_nested_frames_are_walked_in_document_order():
    eng = engine()
    inner = page(E("button", {"id": "inner"}, text="Inside"))
    doc = page(
        E("iframe", {"id": "frame"}, frame=inner, size=(400, 300)),
        E("button", {"id": "after"}, text="After"),
    )
    report = await eng.run_pass(doc)
    assert locators_of(eng.inventory.snapshot()) == ["#frame", "#inner", "#after"]
    assert report.frames == 2


async def test_frame_depth_is_bounded():
    innermost = page(E("button", {"id": "deep"}, text="Deep"))
    middle = page(E("iframe", {"id": "f2"}, frame=innermost, size=(300, 200)))
    doc = page(E("iframe", {"id": "f1"}, frame=middle, size=(400, 300)))

    shallow = engine(maxFrameDepth=1)
    await shallow.run_pass(doc)
    assert "#f2" in shallow.inventory
    assert "#deep" not in shallow.inventory

    full = engine()
    await full.run_pass(doc)
    assert "#deep" in full.inventory


async def test_detached_frame_is_skipped():
    gone = page(E("button", {"id": "inside"}))
    gone.destroyed = True
    eng = engine()
    doc = page(E("iframe", {"id": "frame"}, frame=gone, size=(400, 300)), E("button", {"id": "after"}))
    report = await eng.run_pass(doc)
    assert "#after" in eng.inventory
    assert report.frames == 1


async def test_destroyed_root_propagates():
    doc = page(E("button", {"id": "x"}))
    doc.destroyed = True
    with pytest.raises(PlaywrightError):
        await engine().run_pass(doc)


async def test_names_respect_configured_limit():
    eng = engine(nameMaxLength=10)
    await eng.run_pass(page(
        E("button", {"id": "a"}, text="A really long button caption"),
        E("img", {"id": "b", "alt": "   a descriptive alternative text   "}),
        E("div", {"id": "c"}),
    ))
    assert all(len(d.name) <= 10 for d in eng.inventory.snapshot())
    assert eng.inventory.get("#c").name == "div (ID: c)"[:10]


async def test_name_failure_counts_as_skipped(caplog):
    eng = engine()
    caplog.set_level("DEBUG", logger="traversal")
    report = await eng.run_pass(page(E("button", {"id": "nameless"}, fail={"name"})))
    assert report.skipped == 1
    assert report.frameErrors == 0
    assert "Name extraction failed for #nameless" in caplog.text
    assert "Locator validation failed" not in caplog.text


async def test_every_candidate_handle_is_disposed():
    eng = engine()
    doc = page(E("button", {"id": "one"}), E("button", {"id": "two"}, fail={"name"}))
    for _ in range(3):
        await eng.run_pass(doc)
    candidates = [doc.body] + doc.body.children
    assert [el.disposals for el in candidates] == [3, 3, 3]


async def test_candidate_handles_in_frames_are_disposed():
    inner = page(E("button", {"id": "inner"}))
    frame_el = E("iframe", {"id": "frame"}, frame=inner, size=(400, 300))
    doc = page(frame_el, E("div", {"id": "hidden"}, style={"display": "none"}))
    await engine().run_pass(doc)
    assert frame_el.disposals == 1
    assert doc.body.children[1].disposals == 1
    assert inner.body.children[0].disposals == 1


async def test_parent_handles_are_always_disposed():
    wrapper = E("span", {"data-testid": "wrap"}, E("a", {"id": "in-small"}), size=(50, 50))
    locked = E("section", {"id": "locked"}, E("a", {"id": "in-locked"}), size=(300, 100))
    doc = page(
        E("div", {"id": "card"}, E("button", {"id": "buy"}), size=(300, 200)),
        wrapper,
        locked,
    )
    eng = engine()
    eng.inventory.put(ElementDescriptor(locator='[data-testid="wrap"]', name="wrap", count=1))
    wrapper.size = (2, 2)  # stored but no longer qualifying
    await eng.run_pass(doc)
    # the section's locator cannot be generated when its child checks it
    locked.fail.add("locator")
    await eng.run_pass(doc)

    issued = [h for el in doc.elements() for h in el.js_handles]
    assert issued
    assert all(h.disposed for h in issued)
    assert '[data-testid="wrap"]' in eng.inventory
    assert "#card" not in eng.inventory


async def test_parent_handle_disposed_when_there_is_no_parent():
    eng = engine()
    orphan = E("button")
    assert await eng._supersede_parent(orphan) is False
    assert [h.disposed for h in orphan.js_handles] == [True]


async def test_newline_in_attribute_value_still_validates():
    eng = engine()
    await eng.run_pass(page(E("input", {"name": "line one\nline two"})))
    assert '[name="line one\\a line two"]' in eng.inventory


async def test_id_with_leading_dash_digit_is_escaped():
    eng = engine()
    await eng.run_pass(page(E("div", {"id": "-1col"}, text="Column")))
    assert "#-\\31 col" in eng.inventory
