"""
Page monitor - automatic page markers.

Single-page applications change "pages" without navigating. The monitor
watches an element whose text names the current page (by default the
element with id ``panel-header``) and reports every change of that text.
"""

import logging
from typing import Callable, Optional

from action_recorder.dom.window import Window
from action_recorder.exceptions import XPathEvaluationError

logger = logging.getLogger(__name__)

DEFAULT_PAGE_XPATH = '//*[@id="panel-header"]'


class PageMonitor:
    """
    Polls the page-name element; ``check()`` is one poll.

    Args:
        window: Window whose document is watched
        on_change: Called with the new page name
        xpath: Locates the page-name element
    """

    def __init__(self, window: Window, on_change: Callable[[str], None], xpath: str = DEFAULT_PAGE_XPATH):
        self.window = window
        self.on_change = on_change
        self.xpath = xpath
        self.running = False
        self.last_page: Optional[str] = None

    def start(self) -> None:
        if self.running:
            return
        self.running = True
        logger.info(f"Starting page monitor in frame: {'MAIN' if self.window.is_top else 'IFRAME'}")

    def stop(self) -> None:
        if not self.running:
            return
        self.running = False
        self.last_page = None
        logger.info("Stopped page monitor")

    def current_page(self) -> Optional[str]:
        if self.window.document is None:
            return None
        try:
            element = self.window.document.find_first(self.xpath)
        except XPathEvaluationError as e:
            logger.warning(f"Page monitor xpath is invalid: {e}")
            return None
        if element is None:
            return None
        return element.text_content().strip() or None

    def check(self) -> Optional[str]:
        """Report the page name if it changed since the last poll."""
        if not self.running:
            return None
        page = self.current_page()
        if page and page != self.last_page:
            logger.info(f"Page changed: {self.last_page} -> {page}")
            self.last_page = page
            self.on_change(page)
            return page
        return None
