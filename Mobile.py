from typing import Dict, Optional
import configparser
import logging
import os

from appium import webdriver
from appium.options.common import AppiumOptions
from selenium.common.exceptions import WebDriverException

logger = logging.getLogger(__name__)

SECTION_PREFIX = "Smartphone_"
DEFAULT_AUTOMATION_NAME = "XCUITest"
DEFAULT_NEW_COMMAND_TIMEOUT = 600


class Mobile:
    def __init__(self):
        """
        Initializes the Mobile class with an empty devices dictionary.
        """
        self.config_path = None
        self.devices = {}  # sp_num -> capabilities, server_url, options, mapping_path, driver

    def LoadPhoneConfiguration(self, path: str) -> None:
        """
        Creates device configurations for all iOS smartphones defined in the config file without opening sessions.

        Args:
            path (str): Path to the INI configuration file with [Smartphone_N] sections.

        Raises:
            ValueError: If path is empty.
            FileNotFoundError: If the configuration file does not exist.
            configparser.Error: If the configuration file cannot be parsed.
        """
        if not path or not isinstance(path, str):
            raise ValueError(f"Invalid configuration path: '{path}' must be a non-empty string")
        if not os.path.exists(path):
            raise FileNotFoundError(f"Configuration file not found at '{path}'")

        config = configparser.ConfigParser()
        config.optionxform = str  # Preserve original case of keys
        try:
            config.read(path, encoding="utf-8")
        except configparser.Error as ce:
            raise configparser.Error(f"Failed to parse configuration file '{path}': {ce}")

        self.config_path = path

        for section in config.sections():
            if not section.startswith(SECTION_PREFIX):
                continue
            try:
                sp_num = self._parse_sp_num(section)
                capabilities = dict(config[section])
                self.devices[sp_num] = {
                    "capabilities": capabilities,
                    "server_url": self._get_server_url(section, capabilities),
                    "options": self._build_options(section, capabilities),
                    "mapping_path": capabilities.get("elementMapping", ""),
                    "driver": self.devices.get(sp_num, {}).get("driver"),
                }
            except ValueError as ve:
                logger.warning("Failed to load configuration for %s: %s", section, ve)
                continue

    def InitSmartphone(self, sp_num: Optional[int] = None, alternate_url: str = "") -> bool:
        """
        Opens (or reopens) the Appium session for a configured smartphone.

        Args:
            sp_num (Optional[int]): Smartphone identifier.
            alternate_url (str): Server URL to use instead of the configured one.

        Returns:
            bool: True once the session is open.

        Raises:
            ValueError: If sp_num is invalid or not configured.
            WebDriverException: If the session cannot be created.
        """
        self._check_device(sp_num)
        url = alternate_url or self.devices[sp_num]["server_url"]
        try:
            self.devices[sp_num]["driver"] = webdriver.Remote(
                command_executor=url,
                options=self.devices[sp_num]["options"]
            )
        except WebDriverException as wde:
            raise WebDriverException(f"Failed to initialize Appium driver for Smartphone_{sp_num} at '{url}': {wde}")
        logger.info("Session opened for Smartphone_%s at %s", sp_num, url)
        return True

    def GetDriver(self, sp_num: Optional[int] = None):
        """
        Returns the open driver session of a smartphone.

        Raises:
            ValueError: If sp_num is invalid or InitSmartphone has not been called.
        """
        self._check_device(sp_num)
        driver = self.devices[sp_num].get("driver")
        if driver is None:
            raise ValueError(f"InitSmartphone must be called first for device {sp_num}")
        return driver

    def GetMappingPath(self, sp_num: Optional[int] = None) -> Optional[str]:
        """Element mapping file configured for the smartphone, or None."""
        self._check_device(sp_num)
        return self.devices[sp_num]["mapping_path"] or None

    def GetCapability(self, capability: str, sp_num: Optional[int] = None) -> Optional[str]:
        """
        Retrieves a capability value with case-insensitive lookup, handling an optional 'appium:' prefix.

        Args:
            capability (str): The capability name.
            sp_num (Optional[int]): Smartphone identifier.

        Returns:
            Optional[str]: The configured value, or None if not found.

        Raises:
            ValueError: If capability is empty or sp_num is invalid.
        """
        self._check_device(sp_num)
        if not capability or not isinstance(capability, str):
            raise ValueError(f"Invalid capability: '{capability}' must be a non-empty string")

        capabilities = self.devices[sp_num]["capabilities"]
        lowered_keys = {k.lower(): k for k in capabilities}
        for key in (capability, f"appium:{capability}"):
            if key.lower() in lowered_keys:
                return capabilities[lowered_keys[key.lower()]]
        return None

    def Quit(self, sp_num: Optional[int] = None) -> None:
        """
        Quits the Appium session of a smartphone, if one is open.

        Raises:
            ValueError: If sp_num is invalid.
            WebDriverException: If quitting the driver fails.
        """
        self._check_device(sp_num)
        driver = self.devices[sp_num].get("driver")
        if not driver:
            return
        try:
            driver.quit()
        except WebDriverException as wde:
            raise WebDriverException(f"Failed to quit driver for device {sp_num}: {wde}")
        finally:
            self.devices[sp_num]["driver"] = None

    def _check_device(self, sp_num) -> None:
        if sp_num is None or not isinstance(sp_num, int) or sp_num < 0:
            raise ValueError(f"Invalid sp_num: {sp_num} must be a non-negative integer")
        if sp_num not in self.devices:
            raise ValueError(f"Device {sp_num} not found in loaded configurations")

    def _parse_sp_num(self, section: str) -> int:
        try:
            sp_num = int(section[len(SECTION_PREFIX):])
        except ValueError:
            raise ValueError(f"Section '{section}' does not end with a smartphone number")
        if sp_num < 0:
            raise ValueError(f"Invalid sp_num: {sp_num} must be a non-negative integer")
        return sp_num

    def _get_server_url(self, section: str, capabilities: Dict[str, str]) -> str:
        server_url = capabilities.get("appium:serverURL", capabilities.get("serverURL", ""))
        if not server_url:
            raise ValueError(f"No serverURL defined for {section}")
        return server_url

    def _build_options(self, section: str, capabilities: Dict[str, str]) -> AppiumOptions:
        """
        Builds XCUITest session options from a configuration section.

        Raises:
            ValueError: If the section is not for an iOS device or newCommandTimeout is not a number.
        """
        platform_name = capabilities.get("platformName", capabilities.get("platformname", ""))
        if platform_name.lower() != "ios":
            raise ValueError(f"Unsupported platformName '{platform_name}' in {section}; only iOS is supported")

        try:
            new_command_timeout = int(capabilities.get("newCommandTimeout", DEFAULT_NEW_COMMAND_TIMEOUT))
        except ValueError:
            raise ValueError(f"Invalid newCommandTimeout in {section}: '{capabilities.get('newCommandTimeout')}'")

        always_match = {
            "platformName": "iOS",
            "appium:platformVersion": capabilities.get("platformVersion", ""),
            "appium:deviceName": capabilities.get("deviceName", ""),
            "appium:udid": capabilities.get("udid", ""),
            "appium:automationName": capabilities.get("automationName", DEFAULT_AUTOMATION_NAME),
            "appium:bundleId": capabilities.get("bundleId", ""),
            "appium:newCommandTimeout": new_command_timeout,
        }
        if capabilities.get("app"):
            always_match["appium:app"] = capabilities["app"]

        # Remaining keys pass through as vendor capabilities
        skipped = {"platformName", "serverURL", "appium:serverURL", "elementMapping", "newCommandTimeout", "app"}
        for key, value in capabilities.items():
            if key in skipped:
                continue
            appium_key = key if key.startswith("appium:") else f"appium:{key}"
            if appium_key not in always_match:
                always_match[appium_key] = value

        options = AppiumOptions()
        options.load_capabilities(always_match)
        return options
