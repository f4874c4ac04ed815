from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Union
import logging
import os
import time

from lxml import etree
from appium.webdriver.common.appiumby import AppiumBy
from selenium.common.exceptions import (
    NoSuchElementException,
    StaleElementReferenceException,
    TimeoutException,
    WebDriverException,
)
from selenium.webdriver.common.action_chains import ActionChains
from selenium.webdriver.common.actions import interaction
from selenium.webdriver.common.actions.action_builder import ActionBuilder
from selenium.webdriver.common.actions.pointer_input import PointerInput
from selenium.webdriver.remote.webelement import WebElement
from selenium.webdriver.support import expected_conditions as EC
from selenium.webdriver.support.ui import WebDriverWait

logger = logging.getLogger(__name__)

MAPPING_SEPARATOR = "<=>"


class InitializationError(WebDriverException):
    """Raised when a page cannot be bound to the driver session."""


class ElementNotFoundError(NoSuchElementException):
    """Raised when a locator does not resolve or an indexed element is missing."""


@dataclass(frozen=True)
class ElementLocator:
    """
    Locator expression for a UI element, resolved against the live tree on every access.

    Attributes:
        by (str): AppiumBy strategy (accessibility id or xpath).
        value (str): The locator expression.
        timeout (Optional[float]): Seconds to wait for the element to appear, None for a single lookup.
        many (bool): True if the locator resolves to a list of elements.
    """
    by: str
    value: str
    timeout: Optional[float] = None
    many: bool = False

    def as_xpath(self) -> str:
        """XPath equivalent of the locator, for evaluation against the page source."""
        if self.by == AppiumBy.ACCESSIBILITY_ID:
            return f"//*[@name={_xpath_literal(self.value)}]"
        return self.value


class FindBy:
    """
    Declares a named locator on a page class.

    Reading the attribute from a page instance resolves the bound locator against the
    current UI tree and returns a WebElement, or a list of them when many=True.
    """

    def __init__(self, accessibility: str = "", xpath: str = "", timeout: Optional[float] = None, many: bool = False):
        if bool(accessibility) == bool(xpath):
            raise ValueError("Exactly one of 'accessibility' or 'xpath' must be given")
        if timeout is not None and (not isinstance(timeout, (int, float)) or timeout < 0):
            raise ValueError(f"Invalid timeout: {timeout} must be a non-negative number")
        by = AppiumBy.ACCESSIBILITY_ID if accessibility else AppiumBy.XPATH
        self.locator = ElementLocator(by=by, value=accessibility or xpath, timeout=timeout, many=many)
        self.name = None

    def __set_name__(self, owner, name):
        self.name = name

    def __get__(self, page, owner=None):
        if page is None:
            return self
        return page.Resolve(self.name)


class PageObject:
    """
    Base class for screens of the application under test.

    Subclasses declare their elements with FindBy and expose screen-level actions.
    The driver session is borrowed, never created or quit here.
    """

    SETTLE_DELAY_S = 1.0
    POLL_INTERVAL_S = 0.3

    def __init__(self, driver, mapping_path: Optional[str] = None):
        """
        Binds the declared locators of the page against a live driver session.

        Args:
            driver: Appium driver session for the screen.
            mapping_path (Optional[str]): Element mapping file whose entries override locator expressions.

        Raises:
            InitializationError: If the session is closed or the locators cannot be bound.
        """
        if driver is None or not getattr(driver, "session_id", None):
            raise InitializationError(f"Cannot initialize {type(self).__name__}: driver session is closed")
        try:
            driver.get_window_size()
        except WebDriverException as wde:
            raise InitializationError(f"Cannot initialize {type(self).__name__}: driver session is not usable: {wde}")

        self.driver = driver
        self.mapping_path = mapping_path
        logger.info("Initializing the %s elements", type(self).__name__)
        self._locators = self._bind_locators()
        self._pause(self.SETTLE_DELAY_S)

    def _bind_locators(self) -> Dict[str, ElementLocator]:
        """
        Collects the FindBy declarations of the page class and applies mapping file overrides.

        Returns:
            Dict[str, ElementLocator]: Bound locators keyed by attribute name.

        Raises:
            InitializationError: If a declaration is unnamed or the mapping file cannot be read.
        """
        declared = {}
        for klass in reversed(type(self).__mro__):
            for attr, value in vars(klass).items():
                if isinstance(value, FindBy):
                    if not value.name:
                        raise InitializationError(f"Locator '{attr}' of {type(self).__name__} is not bound to a name")
                    declared[attr] = value.locator

        if not self.mapping_path:
            return declared

        try:
            overrides = load_element_mapping(self.mapping_path)
        except (FileNotFoundError, SyntaxError, IOError) as e:
            raise InitializationError(f"Cannot initialize {type(self).__name__}: {e}")

        for name, expression in overrides.items():
            if name in declared:
                base = declared[name]
                declared[name] = ElementLocator(by=AppiumBy.XPATH, value=expression, timeout=base.timeout, many=base.many)
                logger.debug("Locator '%s' overridden from mapping: %s", name, expression)
        return declared

    def _pause(self, seconds: float) -> None:
        if seconds > 0:
            time.sleep(seconds)

    def GetLocator(self, name: str) -> ElementLocator:
        """
        Returns the bound locator for a declared element name.

        Raises:
            ValueError: If no element with that name is declared on the page.
        """
        if name not in self._locators:
            raise ValueError(f"Unknown element '{name}' on {type(self).__name__}")
        return self._locators[name]

    def Resolve(self, name: str) -> Union[WebElement, List[WebElement]]:
        """
        Resolves a declared element against the current UI tree.

        Args:
            name (str): Attribute name of the FindBy declaration.

        Returns:
            Union[WebElement, List[WebElement]]: The element, or the (possibly empty) list for list locators.

        Raises:
            ValueError: If the name is not declared.
            ElementNotFoundError: If a single-element locator does not resolve.
        """
        locator = self.GetLocator(name)
        if locator.many:
            return self._find_all(locator)
        return self._find_one(name, locator)

    def _find_one(self, name: str, locator: ElementLocator) -> WebElement:
        try:
            if locator.timeout:
                return WebDriverWait(self.driver, locator.timeout, poll_frequency=self.POLL_INTERVAL_S).until(
                    EC.presence_of_element_located((locator.by, locator.value))
                )
            return self.driver.find_element(locator.by, locator.value)
        except TimeoutException as te:
            raise ElementNotFoundError(f"Element '{name}' ({locator.by}={locator.value}) not found within {locator.timeout}s: {te}")
        except NoSuchElementException as nse:
            raise ElementNotFoundError(f"Element '{name}' ({locator.by}={locator.value}) not found: {nse}")

    def _find_all(self, locator: ElementLocator) -> List[WebElement]:
        if not locator.timeout:
            return self.driver.find_elements(locator.by, locator.value)
        try:
            return WebDriverWait(self.driver, locator.timeout, poll_frequency=self.POLL_INTERVAL_S).until(
                lambda d: d.find_elements(locator.by, locator.value)
            )
        except TimeoutException:
            return []

    def TapElement(self, name: str) -> bool:
        """
        Taps a declared single element.

        Raises:
            ElementNotFoundError: If the element does not resolve.
            WebDriverException: If the click is rejected by the driver.
        """
        element = self.Resolve(name)
        try:
            element.click()
            logger.info("Tapped '%s'", name)
            return True
        except StaleElementReferenceException as sre:
            raise ElementNotFoundError(f"Element '{name}' went stale before tapping: {sre}")
        except WebDriverException as wde:
            raise WebDriverException(f"Failed to tap element '{name}': {wde}")

    def GetElementText(self, name: str) -> str:
        """Returns the text of a declared single element."""
        return self.Resolve(name).text

    def WaitForCondition(self, condition: Callable[[], object], timeout_s: float, message: str = ""):
        """
        Polls a condition until it returns a truthy value.

        Args:
            condition (Callable[[], object]): Zero-argument callable; exceptions of a missing element count as falsy.
            timeout_s (float): Maximum number of seconds to wait.
            message (str): Context for the timeout error.

        Returns:
            The first truthy value returned by the condition.

        Raises:
            ValueError: If timeout_s is negative.
            TimeoutError: If the condition is not met within timeout_s.
        """
        if not isinstance(timeout_s, (int, float)) or timeout_s < 0:
            raise ValueError(f"Invalid timeout_s: {timeout_s} must be a non-negative number")
        try:
            return WebDriverWait(
                self.driver,
                timeout_s,
                poll_frequency=self.POLL_INTERVAL_S,
                ignored_exceptions=(NoSuchElementException, StaleElementReferenceException),
            ).until(lambda _driver: condition())
        except TimeoutException as te:
            raise TimeoutError(f"Timed out after {timeout_s}s: {message or 'condition not met'}") from te

    def WaitForElement(self, element: Union[str, WebElement], timeout_s: float) -> WebElement:
        """
        Waits until an element is visible.

        Args:
            element (Union[str, WebElement]): A live element, or the name of a declared single-element locator.
            timeout_s (float): Maximum number of seconds to wait.

        Returns:
            WebElement: The visible element.

        Raises:
            ValueError: If timeout_s is negative, or the name is not declared or names a list locator.
            TimeoutError: If the element is not visible within timeout_s.
        """
        if isinstance(element, str):
            name = element
            locator = self.GetLocator(name)
            if locator.many:
                raise ValueError(f"Invalid element: '{name}' is a list locator; wait on one of its elements instead")

            # Single lookup per poll; the locator's own timeout must not outlast timeout_s
            def visible():
                found = self.driver.find_element(locator.by, locator.value)
                return found if found.is_displayed() else False
        else:
            name = getattr(element, "id", repr(element))

            def visible():
                return EC.visibility_of(element)(self.driver)

        return self.WaitForCondition(visible, timeout_s, message=f"element '{name}' not visible")

    def SwipeElementHorizontally(self, element: WebElement, hold_ms: int) -> None:
        """
        Swipes an element from its right edge to its left edge along its top row.

        The coordinates are read from the element at call time.

        Args:
            element (WebElement): Element to swipe.
            hold_ms (int): Press duration before moving, in milliseconds.

        Raises:
            ValueError: If hold_ms is negative.
            WebDriverException: If the gesture is rejected by the driver.
        """
        if not isinstance(hold_ms, int) or hold_ms < 0:
            raise ValueError(f"Invalid hold_ms: {hold_ms} must be a non-negative integer")
        location = element.location
        size = element.size
        start = (location["x"] + size["width"] - 1, location["y"] + 1)
        end = (location["x"] + 1, location["y"] + 1)
        try:
            self._drag(start, end, hold_ms)
        except WebDriverException as wde:
            raise WebDriverException(f"Failed to swipe from {start} to {end}: {wde}")

    def _drag(self, start, end, hold_ms: int) -> None:
        """Press at start, hold, move to end, release: one W3C touch pointer sequence."""
        actions = ActionChains(self.driver)
        actions.w3c_actions = ActionBuilder(self.driver, mouse=PointerInput(interaction.POINTER_TOUCH, "touch"))
        actions.w3c_actions.pointer_action.move_to_location(start[0], start[1])
        actions.w3c_actions.pointer_action.pointer_down()
        actions.w3c_actions.pointer_action.pause(hold_ms / 1000.0)
        actions.w3c_actions.pointer_action.move_to_location(end[0], end[1])
        actions.w3c_actions.pointer_action.pointer_up()
        actions.perform()

    def CheckElementPresence(self, name: str, displayed: bool) -> bool:
        """
        Checks a declared element against the page source without waiting.

        Args:
            name (str): Name of a declared locator.
            displayed (bool): Expected visibility state.

        Returns:
            bool: True if the element's visibility matches the expected state. A missing element counts as not displayed.

        Raises:
            ValueError: If the name is not declared or displayed is not a boolean.
            etree.LxmlError: If the page source or the XPath cannot be parsed.
        """
        if not isinstance(displayed, bool):
            raise ValueError(f"Invalid displayed: {displayed} must be a boolean")
        locator = self.GetLocator(name)
        xpath = locator.as_xpath()
        try:
            root = etree.fromstring(self.driver.page_source.encode("utf-8"))
            elements = root.xpath(xpath)
        except etree.LxmlError as le:
            raise etree.LxmlError(f"Failed to check presence of '{name}' with XPath '{xpath}': {le}")

        actual = bool(elements) and _is_element_visible(elements[0])
        if actual != displayed:
            logger.info("Element '%s' visible=%s, expected=%s", name, actual, displayed)
        return actual == displayed


def _xpath_literal(value: str) -> str:
    """Quotes a value as an XPath 1.0 string literal; values holding both quote kinds go through concat()."""
    if "'" not in value:
        return f"'{value}'"
    if '"' not in value:
        return f'"{value}"'
    parts = value.split("'")
    return "concat(" + ", \"'\", ".join(f"'{part}'" for part in parts) + ")"


def _is_element_visible(elem) -> bool:
    """An XCUITest node is visible if flagged visible with positive size and on-screen position."""
    if elem.attrib.get("visible", "true").lower() != "true":
        return False
    try:
        x = int(elem.attrib.get("x", "-1"))
        y = int(elem.attrib.get("y", "-1"))
        width = int(elem.attrib.get("width", "0"))
        height = int(elem.attrib.get("height", "0"))
    except (TypeError, ValueError):
        return False
    return width > 0 and height > 0 and x >= 0 and y >= 0


def load_element_mapping(mapping_path: str) -> Dict[str, str]:
    """
    Reads an element mapping file of 'LogicalName <=> locator' lines.

    Args:
        mapping_path (str): Path to the mapping file.

    Returns:
        Dict[str, str]: Locator expressions keyed by logical name, surrounding quotes stripped.

    Raises:
        FileNotFoundError: If the mapping file does not exist.
        SyntaxError: If a mapping line has an empty name or locator.
    """
    if not os.path.exists(mapping_path):
        raise FileNotFoundError(f"Mapping file not found at '{mapping_path}'")

    mapping = {}
    with open(mapping_path, "r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line or MAPPING_SEPARATOR not in line:
                continue
            key, expression = map(str.strip, line.split(MAPPING_SEPARATOR, 1))
            if (expression.startswith('"') and expression.endswith('"')) or (expression.startswith("'") and expression.endswith("'")):
                expression = expression[1:-1]
            if not key or not expression:
                raise SyntaxError(f"Malformed mapping line in '{mapping_path}': '{line}'")
            mapping[key] = expression
    return mapping
