"""
Unit tests for the PageObject base: locator binding, lazy resolution, waits,
the horizontal swipe gesture and page-source presence checks.
"""

from __future__ import annotations

import time

import pytest
from appium.webdriver.common.appiumby import AppiumBy
from lxml import etree

from PageObject import (
    ElementLocator,
    ElementNotFoundError,
    FindBy,
    InitializationError,
    PageObject,
    load_element_mapping,
)
from tests.conftest import FakeElement

pytestmark = pytest.mark.unit


class _SamplePage(PageObject):
    Title = FindBy(accessibility="Title")
    Rows = FindBy(xpath="//XCUIElementTypeCell", many=True)
    Save = FindBy(xpath="//XCUIElementTypeButton[@name='Save']")
    Spinner = FindBy(accessibility="Spinner", timeout=5)


def test_find_by_requires_exactly_one_strategy():
    with pytest.raises(ValueError):
        FindBy()
    with pytest.raises(ValueError):
        FindBy(accessibility="a", xpath="//b")
    with pytest.raises(ValueError):
        FindBy(accessibility="a", timeout=-1)


def test_element_locator_is_immutable():
    locator = ElementLocator(by=AppiumBy.XPATH, value="//a")
    with pytest.raises(AttributeError):
        locator.value = "//b"


def test_accessibility_locator_maps_to_name_xpath():
    locator = ElementLocator(by=AppiumBy.ACCESSIBILITY_ID, value="Add")
    assert locator.as_xpath() == "//*[@name='Add']"


def test_init_binds_declared_locators_and_settles(driver, pauses):
    page = _SamplePage(driver)

    assert page.GetLocator("Title") == ElementLocator(by=AppiumBy.ACCESSIBILITY_ID, value="Title")
    assert page.GetLocator("Rows").many is True
    assert pauses == [PageObject.SETTLE_DELAY_S]


def test_init_rejects_closed_session(driver, pauses):
    driver.session_id = None
    with pytest.raises(InitializationError, match="session is closed"):
        _SamplePage(driver)


def test_init_rejects_unusable_session(driver, pauses):
    driver.window_error = "session deleted"
    with pytest.raises(InitializationError, match="not usable"):
        _SamplePage(driver)


def test_init_rejects_missing_mapping_file(driver, pauses, tmp_path):
    with pytest.raises(InitializationError, match="Mapping file not found"):
        _SamplePage(driver, mapping_path=str(tmp_path / "missing.map"))


def test_mapping_file_overrides_locator(driver, pauses, tmp_path):
    mapping = tmp_path / "sample.map"
    mapping.write_text("Save <=> \"//XCUIElementTypeButton[@name='Done']\"\nUnused <=> //x\n", encoding="utf-8")
    page = _SamplePage(driver, mapping_path=str(mapping))

    assert page.GetLocator("Save").value == "//XCUIElementTypeButton[@name='Done']"
    with pytest.raises(ValueError):
        page.GetLocator("Unused")


def test_load_element_mapping_skips_lines_without_separator(tmp_path):
    mapping = tmp_path / "sample.map"
    mapping.write_text("# comment\n\nTitle <=> '//a'\n", encoding="utf-8")
    assert load_element_mapping(str(mapping)) == {"Title": "//a"}


def test_load_element_mapping_rejects_empty_locator(tmp_path):
    mapping = tmp_path / "sample.map"
    mapping.write_text("Title <=> \n", encoding="utf-8")
    with pytest.raises(SyntaxError):
        load_element_mapping(str(mapping))


def test_attribute_access_resolves_live(driver, pauses):
    page = _SamplePage(driver)
    first = driver.add(AppiumBy.ACCESSIBILITY_ID, "Title", FakeElement("One"))
    assert page.Title is first

    driver.elements.clear()
    second = driver.add(AppiumBy.ACCESSIBILITY_ID, "Title", FakeElement("Two"))
    assert page.Title is second


def test_missing_single_element_raises_not_found(driver, pauses):
    page = _SamplePage(driver)
    with pytest.raises(ElementNotFoundError, match="Title"):
        page.Title


def test_missing_list_resolves_empty(driver, pauses):
    page = _SamplePage(driver)
    assert page.Rows == []


def test_tap_element_clicks(driver, pauses):
    page = _SamplePage(driver)
    save = driver.add(AppiumBy.XPATH, "//XCUIElementTypeButton[@name='Save']", FakeElement("Save"))

    assert page.TapElement("Save") is True
    assert save.clicks == 1


def test_get_element_text(driver, pauses):
    page = _SamplePage(driver)
    driver.add(AppiumBy.ACCESSIBILITY_ID, "Title", FakeElement("Settings"))
    assert page.GetElementText("Title") == "Settings"


def test_wait_for_visible_element_returns_it(driver, pauses):
    page = _SamplePage(driver)
    element = FakeElement("Visible")
    assert page.WaitForElement(element, 1) is element


def test_wait_for_declared_element_by_name(driver, pauses):
    page = _SamplePage(driver)
    title = driver.add(AppiumBy.ACCESSIBILITY_ID, "Title", FakeElement("Settings"))
    assert page.WaitForElement("Title", 1) is title


def test_wait_for_hidden_element_times_out(driver, pauses):
    page = _SamplePage(driver)
    element = FakeElement("Hidden", displayed=False)

    started = time.monotonic()
    with pytest.raises(TimeoutError, match="not visible"):
        page.WaitForElement(element, 0.1)
    assert time.monotonic() - started < 0.1 + PageObject.POLL_INTERVAL_S + 1


def test_wait_for_missing_declared_element_times_out(driver, pauses):
    page = _SamplePage(driver)
    with pytest.raises(TimeoutError):
        page.WaitForElement("Title", 0)


def test_wait_by_name_is_bounded_by_caller_timeout_not_locator_timeout(driver, pauses):
    page = _SamplePage(driver)
    assert page.GetLocator("Spinner").timeout == 5

    started = time.monotonic()
    with pytest.raises(TimeoutError, match="Spinner"):
        page.WaitForElement("Spinner", 0.5)
    elapsed = time.monotonic() - started

    assert elapsed < 0.5 + PageObject.POLL_INTERVAL_S + 1


def test_wait_by_name_finds_element_of_timed_locator(driver, pauses):
    page = _SamplePage(driver)
    spinner = driver.add(AppiumBy.ACCESSIBILITY_ID, "Spinner", FakeElement("Loading"))
    assert page.WaitForElement("Spinner", 0.5) is spinner


def test_wait_rejects_list_locator(driver, pauses):
    page = _SamplePage(driver)
    driver.add(AppiumBy.XPATH, "//XCUIElementTypeCell", FakeElement("Row"))
    with pytest.raises(ValueError, match="list locator"):
        page.WaitForElement("Rows", 0)


@pytest.mark.parametrize(
    "value, expected",
    [
        ("Add", "//*[@name='Add']"),
        ("O'Brien", "//*[@name=\"O'Brien\"]"),
        ("it's \"on\"", "//*[@name=concat('it', \"'\", 's \"on\"')]"),
    ],
)
def test_accessibility_xpath_quotes_value(value, expected):
    assert ElementLocator(by=AppiumBy.ACCESSIBILITY_ID, value=value).as_xpath() == expected


def test_check_element_presence_with_quote_in_accessibility_id(driver, pauses):
    class _QuotedPage(PageObject):
        Owner = FindBy(accessibility="O'Brien")

    page = _QuotedPage(driver)
    driver.page_source = (
        "<AppiumAUT>"
        "<XCUIElementTypeStaticText name=\"O'Brien\" visible='true' x='0' y='10' width='80' height='20'/>"
        "</AppiumAUT>"
    )
    assert page.CheckElementPresence("Owner", displayed=True) is True


def test_wait_rejects_negative_timeout(driver, pauses):
    page = _SamplePage(driver)
    with pytest.raises(ValueError):
        page.WaitForElement(FakeElement(), -1)


def test_swipe_sends_press_hold_move_release(driver, pauses):
    page = _SamplePage(driver)
    cell = FakeElement("Cell", x=10, y=200, width=300, height=44)

    page.SwipeElementHorizontally(cell, hold_ms=3000)

    assert len(driver.executed) == 1
    command, params = driver.executed[0]
    assert command == "actions"
    (pointer,) = params["actions"]
    assert pointer["parameters"] == {"pointerType": "touch"}
    steps = pointer["actions"]
    assert [step["type"] for step in steps] == ["pointerMove", "pointerDown", "pause", "pointerMove", "pointerUp"]
    assert (steps[0]["x"], steps[0]["y"]) == (309, 201)
    assert steps[2]["duration"] == 3000
    assert (steps[3]["x"], steps[3]["y"]) == (11, 201)


def test_swipe_rejects_negative_hold(driver, pauses):
    page = _SamplePage(driver)
    with pytest.raises(ValueError):
        page.SwipeElementHorizontally(FakeElement(), hold_ms=-5)


def test_check_element_presence_reads_page_source(driver, pauses):
    page = _SamplePage(driver)
    driver.page_source = (
        "<AppiumAUT>"
        "<XCUIElementTypeOther name='Title' visible='true' x='0' y='40' width='390' height='44'/>"
        "<XCUIElementTypeButton name='Save' visible='false' x='0' y='0' width='50' height='20'/>"
        "</AppiumAUT>"
    )

    assert page.CheckElementPresence("Title", displayed=True) is True
    assert page.CheckElementPresence("Save", displayed=True) is False
    assert page.CheckElementPresence("Save", displayed=False) is True


def test_check_element_presence_missing_counts_as_hidden(driver, pauses):
    page = _SamplePage(driver)
    assert page.CheckElementPresence("Title", displayed=False) is True


def test_check_element_presence_rejects_bad_source(driver, pauses):
    page = _SamplePage(driver)
    driver.page_source = "<not xml"
    with pytest.raises(etree.LxmlError):
        page.CheckElementPresence("Title", displayed=True)
