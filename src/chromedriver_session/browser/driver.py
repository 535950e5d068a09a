"""Remote WebDriver creation."""

from selenium import webdriver
from selenium.webdriver.chrome.options import Options

import logging
logger = logging.getLogger(__name__)


def create_remote_driver(hub_url: str, options: Options) -> webdriver.Remote:
    """Open a new remote session against the supervised chromedriver."""
    driver = webdriver.Remote(command_executor=hub_url, options=options)
    logger.debug(f"opened remote session {driver.session_id} on {hub_url}")
    return driver


__all__ = ["create_remote_driver"]
