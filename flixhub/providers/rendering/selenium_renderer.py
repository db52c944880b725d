"""
Selenium Renderer - Headless Chrome behind the Renderer protocol.

Requires the optional ``rendering`` extra (selenium). Instances are created
and driven only on the render thread; the RenderContext guarantees that.
"""

import logging
import shutil
from typing import Optional

from flixhub.core.config_schemas import RenderingSettings
from flixhub.core.exceptions import RenderingError, RenderTimeoutError
from flixhub.providers.rendering.context import RenderedPage, require_render_thread


logger = logging.getLogger(__name__)


def detect_chrome_driver() -> Optional[str]:
    """
    Detect a ChromeDriver on PATH.

    Returns:
        Path to ChromeDriver, or None to let Selenium Manager resolve one
    """
    path = shutil.which("chromedriver")
    if path:
        logger.debug(f"Found ChromeDriver in PATH: {path}")
    return path


class SeleniumRenderer:
    """Renders pages in a headless Chrome session."""

    def __init__(self, settings: Optional[RenderingSettings] = None):
        require_render_thread()
        self.settings = settings or RenderingSettings()
        self.driver = self._create_driver()

    def _create_driver(self):
        """Configure and start the Chrome driver."""
        try:
            from selenium import webdriver
            from selenium.common.exceptions import WebDriverException
            from selenium.webdriver.chrome.options import Options
            from selenium.webdriver.chrome.service import Service
        except ImportError as e:
            raise RenderingError(
                "Selenium is not installed; install the 'rendering' extra",
                details=str(e),
            )

        # Selenium's own logging is very chatty at DEBUG
        logging.getLogger("selenium").setLevel(logging.WARNING)

        options = Options()
        options.add_argument("--disable-blink-features=AutomationControlled")
        options.add_argument("--no-sandbox")
        options.add_argument("--disable-dev-shm-usage")
        options.add_argument("--disable-gpu")
        options.add_argument("--log-level=3")
        options.add_argument(f"--window-size={self.settings.window_size}")

        if self.settings.headless:
            options.add_argument("--headless=new")

        if self.settings.disable_images:
            options.add_experimental_option(
                "prefs", {"profile.managed_default_content_settings.images": 2}
            )

        driver_path = self.settings.driver_path or detect_chrome_driver()
        service = Service(executable_path=driver_path) if driver_path else Service()

        try:
            driver = webdriver.Chrome(service=service, options=options)
        except WebDriverException as e:
            raise RenderingError(f"Failed to start Chrome: {e.msg or e}", details=repr(e))

        driver.set_page_load_timeout(self.settings.page_load_timeout)
        logger.info("Chrome driver started")
        return driver

    def load(self, url: str, wait_for: Optional[str] = None) -> RenderedPage:
        """
        Load a page and wait for an element to appear.

        Args:
            url: Page to load
            wait_for: CSS selector that must be present before returning

        Returns:
            The rendered page

        Raises:
            RenderTimeoutError: If the page or the element does not load in time
            RenderingError: On any other driver failure
        """
        from selenium.common.exceptions import TimeoutException, WebDriverException
        from selenium.webdriver.common.by import By
        from selenium.webdriver.support import expected_conditions as EC
        from selenium.webdriver.support.ui import WebDriverWait

        require_render_thread()
        try:
            self.driver.get(url)
            if wait_for:
                WebDriverWait(self.driver, self.settings.page_load_timeout).until(
                    EC.presence_of_element_located((By.CSS_SELECTOR, wait_for))
                )

            cookies = {cookie["name"]: cookie["value"] for cookie in self.driver.get_cookies()}
            return RenderedPage(
                url=self.driver.current_url,
                html=self.driver.page_source,
                cookies=cookies,
                title=self.driver.title or None,
            )
        except TimeoutException as e:
            raise RenderTimeoutError(f"Timed out loading {url}", url=url, details=e.msg)
        except WebDriverException as e:
            raise RenderingError(f"Failed to render {url}: {e.msg or e}", url=url, details=repr(e))

    def reset(self) -> None:
        """Drop page state so the next load starts clean."""
        require_render_thread()
        self.driver.delete_all_cookies()
        self.driver.get("about:blank")

    def close(self) -> None:
        require_render_thread()
        self.driver.quit()
        logger.info("Chrome driver closed")


__all__ = ["SeleniumRenderer", "detect_chrome_driver"]
