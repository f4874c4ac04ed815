"""
Shared pytest fixtures for the page object tests.

Provides an in-memory stand-in for an Appium XCUITest session so that pages can be
exercised without a device: elements are registered per (strategy, value) locator,
W3C action payloads are captured, and the page source is a plain XML string.
"""

from __future__ import annotations

import pytest
from selenium.common.exceptions import NoSuchElementException, WebDriverException

from PageObject import PageObject


class FakeElement:
    """Minimal stand-in for an Appium ``WebElement``."""

    def __init__(self, text="", x=0, y=0, width=100, height=40, displayed=True):
        self.text = text
        self.location = {"x": x, "y": y}
        self.size = {"width": width, "height": height}
        self.displayed = displayed
        self.clicks = 0

    @property
    def id(self):
        return f"fake-{self.text}"

    def click(self):
        self.clicks += 1

    def is_displayed(self):
        return self.displayed


class FakeDriver:
    """Minimal stand-in for an Appium driver session."""

    def __init__(self):
        self.session_id = "fake-session"
        self.elements = {}
        self.executed = []
        self.page_source = "<AppiumAUT/>"
        self.window_error = None
        self.quit_called = False

    def add(self, by, value, *elements):
        self.elements.setdefault((by, value), []).extend(elements)
        return elements[0] if len(elements) == 1 else list(elements)

    def find_element(self, by, value):
        found = self.elements.get((by, value))
        if not found:
            raise NoSuchElementException(f"No element for {by}={value}")
        return found[0]

    def find_elements(self, by, value):
        return list(self.elements.get((by, value), []))

    def get_window_size(self):
        if self.window_error:
            raise WebDriverException(self.window_error)
        return {"width": 390, "height": 844}

    def execute(self, command, params=None):
        self.executed.append((command, params))
        return {"value": None}

    def quit(self):
        self.quit_called = True


@pytest.fixture
def driver():
    return FakeDriver()


@pytest.fixture
def pauses(monkeypatch):
    """Records fixed delays instead of sleeping through them."""
    recorded = []
    monkeypatch.setattr(PageObject, "_pause", lambda self, seconds: recorded.append(seconds))
    return recorded
