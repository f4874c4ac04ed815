"""
Page object for the Site List screen of the SourcePoint meta app (iOS).

The screen lists configured properties as 'propertyCell' static texts. Swiping a cell
reveals the contextual actions (Reset, Edit, Delete); Delete asks for confirmation
through a YES/NO alert.
"""
from typing import List, Optional
import logging

from PageObject import ElementNotFoundError, FindBy, PageObject

logger = logging.getLogger(__name__)

SITE_CELL_XPATH = "//XCUIElementTypeStaticText[@name='propertyCell']"
DELETE_CONFIRMATION_PHRASE = "Are you sure you want to"

# Position of each contextual action in the generic button list.
ACTION_BUTTON_INDEX = {
    "reset": 1,
    "edit": 2,
    "delete": 3,
}

# Dedicated locator of each contextual action.
ACTION_BUTTON_LOCATOR = {
    "reset": "GDPRResetButton",
    "edit": "GDPREditButton",
    "delete": "GDPRDeleteButton",
}


class SiteListPage(PageObject):
    ACTION_DELAY_S = 3.0
    SWIPE_HOLD_MS = 3000
    SWIPE_SETTLE_S = 8.0

    GDPRAddButton = FindBy(accessibility="Add")
    GDPRSiteListPageHeader = FindBy(xpath="//XCUIElementTypeOther[contains(@name, 'Property List')]")
    GDPRSiteListView = FindBy(xpath="//XCUIElementTypeStaticText[@name='Site List']")
    GDPREditButton = FindBy(xpath="//XCUIElementTypeButton[@name='Edit']")
    GDPRResetButton = FindBy(xpath="//XCUIElementTypeButton[@name='Reset']")
    GDPRDeleteButton = FindBy(xpath="//XCUIElementTypeButton[@name='Trash']", timeout=30)
    GDPRSiteList = FindBy(xpath=f"({SITE_CELL_XPATH})", timeout=30, many=True)
    GDPRSiteName = FindBy(accessibility="propertyName", timeout=30)
    GDPRSiteCell = FindBy(xpath=SITE_CELL_XPATH)
    ActionButtons = FindBy(xpath="(//XCUIElementTypeButton)", timeout=50, many=True)
    ErrorMessage = FindBy(xpath="(//XCUIElementTypeStaticText)", timeout=50, many=True)
    YESButton = FindBy(accessibility="YES")
    NOButton = FindBy(accessibility="NO")

    def __init__(self, driver, mapping_path: Optional[str] = None):
        self.site_found = False
        super().__init__(driver, mapping_path=mapping_path)

    def IsSitePresent(self, site_name: str) -> bool:
        """
        Compares the first listed site with site_name.

        Only the first 'propertyCell' is read; use IsSiteListed to search the whole list.

        Args:
            site_name (str): Expected site name, compared case-sensitively.

        Returns:
            bool: True if the first cell's text equals site_name. Also stored in site_found.

        Raises:
            ElementNotFoundError: If no site cell is on screen.
        """
        self.site_found = self.GDPRSiteCell.text == site_name
        logger.info("Site '%s' found: %s", site_name, self.site_found)
        return self.site_found

    def WasSiteFound(self) -> bool:
        """Result of the last IsSitePresent call."""
        return self.site_found

    def GetSiteNames(self) -> List[str]:
        return [cell.text for cell in self.GDPRSiteList]

    def IsSiteListed(self, site_name: str) -> bool:
        """True if any listed site's text equals site_name."""
        return site_name in self.GetSiteNames()

    def SelectAction(self, action: str) -> bool:
        """
        Taps a contextual action by its position in the on-screen button list.

        The button list must be presented in the Reset, Edit, Delete order after the
        leading navigation button.

        Args:
            action (str): 'Reset', 'Edit' or 'Delete', case-insensitive.

        Returns:
            bool: True if a button was tapped, False for an unknown action.

        Raises:
            ElementNotFoundError: If the button list is shorter than the action's index.
        """
        self._pause(self.ACTION_DELAY_S)
        index = ACTION_BUTTON_INDEX.get(str(action).lower())
        if index is None:
            logger.warning("Unknown action '%s'; nothing tapped", action)
            return False

        buttons = self.ActionButtons
        if index >= len(buttons):
            raise ElementNotFoundError(
                f"Action '{action}' expects a button at index {index}, but only {len(buttons)} buttons are on screen"
            )
        buttons[index].click()
        logger.info("Selected action '%s'", action)
        return True

    def SelectNamedAction(self, action: str) -> bool:
        """
        Taps a contextual action through its own locator instead of its position.

        Raises:
            ValueError: If the action is not Reset, Edit or Delete.
            ElementNotFoundError: If the action button is not on screen.
        """
        name = ACTION_BUTTON_LOCATOR.get(str(action).lower())
        if name is None:
            raise ValueError(f"Invalid action: '{action}' must be one of Reset, Edit, Delete")
        return self.TapElement(name)

    def TapOnSite(self, site_name: str) -> None:
        self._pause(self.ACTION_DELAY_S)
        logger.info("Tap on site '%s'", site_name)
        self.GDPRSiteCell.click()

    def SwipeHorizontally(self, site_name: str) -> None:
        """
        Swipes the first site cell right to left to reveal its contextual actions.

        Args:
            site_name (str): Site the swipe is meant for, used for logging.

        Raises:
            ElementNotFoundError: If no site cell is on screen.
            WebDriverException: If the gesture is rejected by the driver.
        """
        logger.info("Swipe on %s", site_name)
        self.SwipeElementHorizontally(self.GDPRSiteCell, hold_ms=self.SWIPE_HOLD_MS)
        self._pause(self.SWIPE_SETTLE_S)

    def VerifyDeleteSiteMessage(self) -> bool:
        """
        Checks the last static text on screen for the delete confirmation phrase.

        Returns:
            bool: True if the phrase is part of the last text; False if no text is on screen.
        """
        messages = self.ErrorMessage
        if not messages:
            return False
        return DELETE_CONFIRMATION_PHRASE in (messages[-1].text or "")

    def TapAddButton(self) -> bool:
        return self.TapElement("GDPRAddButton")

    def ConfirmAlert(self, accept: bool) -> bool:
        """Answers the confirmation alert with YES or NO."""
        return self.TapElement("YESButton" if accept else "NOButton")

    def IsSiteListPageDisplayed(self) -> bool:
        return self.CheckElementPresence("GDPRSiteListPageHeader", displayed=True)
