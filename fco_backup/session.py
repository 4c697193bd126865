"""
Shared, lazily created browser session.

SessionHandle owns at most one live session. It creates the session through a
factory on first use, hands the same session to every caller, and tears it
down when invalidated so the next acquire() starts a fresh browser.

PlaywrightSession is the concrete backend: a headless Chromium page driven by
Playwright's synchronous API.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Protocol

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import sync_playwright

from .config import BrowserConfig
from .errors import SessionError


logger = logging.getLogger(__name__)


class Session(Protocol):
    """Operations the fetch pipeline needs from an interactive browser."""

    def navigate(self, url: str) -> None: ...

    def find_all(self, selector: str, within: Any | None = None) -> list[Any]: ...

    def text(self, element: Any) -> str: ...

    def property(self, element: Any, name: str) -> str: ...

    def close(self) -> None: ...


SessionFactory = Callable[[], Session]


class SessionHandle:
    """Guarded slot holding the current session, if any.

    Attributes:
        factory: Called to create a session when the slot is empty
    """

    def __init__(self, factory: SessionFactory):
        self.factory = factory
        self._session: Session | None = None
        self._lock = threading.Lock()

    @property
    def is_live(self) -> bool:
        return self._session is not None

    def acquire(self) -> Session:
        """Return the live session, creating it if needed.

        Factory failures are not retried here; they reach the caller, and the
        slot stays empty so the next call tries again.

        Raises:
            SessionError: If the factory fails
        """
        with self._lock:
            if self._session is None:
                logger.info("Starting browser session")
                try:
                    self._session = self.factory()
                except SessionError:
                    raise
                except Exception as exc:  # noqa: BLE001
                    raise SessionError(f"Error starting browser session: {exc}") from exc
            return self._session

    def invalidate(self) -> None:
        """Release the current session so the next acquire() recreates it.

        The old session is closed before the lock is released, so a
        concurrent acquire() only starts a replacement once it is gone.
        """
        with self._lock:
            session, self._session = self._session, None
            if session is None:
                return
            logger.info("Discarding browser session")
            try:
                session.close()
            except Exception as exc:  # noqa: BLE001
                logger.warning("Error closing browser session: %s: %s", type(exc).__name__, exc)

    close = invalidate


class PlaywrightSession:
    """Session backed by one Chromium page.

    Every Playwright failure is re-raised as SessionError so the retry layer
    treats it as a reason to recreate the browser.
    """

    def __init__(self, playwright, browser, page, owns_browser: bool = True):
        self._playwright = playwright
        self._browser = browser
        self._page = page
        self._owns_browser = owns_browser

    def navigate(self, url: str) -> None:
        try:
            self._page.goto(url, wait_until="domcontentloaded")
        except PlaywrightError as exc:
            raise SessionError(f"Error getting url {url}: {exc}") from exc

    def find_all(self, selector: str, within: Any | None = None) -> list[Any]:
        root = within if within is not None else self._page
        try:
            return list(root.query_selector_all(selector))
        except PlaywrightError as exc:
            raise SessionError(f"Error finding {selector!r}: {exc}") from exc

    def text(self, element: Any) -> str:
        try:
            return element.inner_text()
        except PlaywrightError as exc:
            raise SessionError(f"Error getting element text: {exc}") from exc

    def property(self, element: Any, name: str) -> str:
        # Properties such as href come back fully resolved, unlike attributes.
        try:
            value = element.get_property(name).json_value()
        except PlaywrightError as exc:
            raise SessionError(f"Error getting property {name!r}: {exc}") from exc
        return value if isinstance(value, str) else ""

    def close(self) -> None:
        try:
            if self._owns_browser:
                self._browser.close()
            else:
                self._page.close()
        finally:
            self._playwright.stop()


def build_session_factory(cfg: BrowserConfig) -> SessionFactory:
    """Return a factory that launches (or connects to) Chromium.

    With ``cfg.cdp_endpoint`` set, the factory attaches to an already running
    browser and only owns the page it opens.
    """

    def factory() -> Session:
        playwright = sync_playwright().start()
        try:
            if cfg.cdp_endpoint:
                browser = playwright.chromium.connect_over_cdp(cfg.cdp_endpoint)
                owns_browser = False
            else:
                browser = playwright.chromium.launch(headless=cfg.headless, args=list(cfg.args))
                owns_browser = True
            page = browser.new_page()
            page.set_default_timeout(cfg.navigation_timeout_seconds * 1000)
        except PlaywrightError as exc:
            playwright.stop()
            raise SessionError(f"Error starting browser: {exc}") from exc
        return PlaywrightSession(playwright, browser, page, owns_browser=owns_browser)

    return factory
