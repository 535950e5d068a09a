"""Example: open a session, poke around a page, optionally serve a snapshot of it."""

import argparse
import logging
import sys

from .config.environment import get_env_config
from .context import get_context
from .errors import WebDriverSessionError
from .utils.diagnostics import collect_diagnostics

logger = logging.getLogger("chromedriver_session")

CONTAINER_PATH = "//div[contains(@class, 'container')]"
COMMENTS_PATH = ".//div[@class='comment-list comment-parent comment-view']"
COMMENTS_CLASS = "comment-list comment-parent comment-view"
NAV_ITEMS_PATH = "//a[@class='nav-item']"
NAV_ITEMS_EXPECTED = 3
FORM_PATH = "//form[@id='cform']"


def run(url: str, port: int, debug: bool, headless: bool, timeout: float, snap: bool) -> int:
    ctx = get_context()
    try:
        ctx.initialize(port, debug)
    except (EnvironmentError, ValueError, WebDriverSessionError) as e:
        logger.error(f"init error: {e}")
        return 1

    try:
        session = ctx.new_session("", 1920, 1080, headless, timeout)
        session.navigate(url)

        container = session.locate_one(CONTAINER_PATH)
        comments = container.locate_one(COMMENTS_PATH)
        cls = comments.attribute("class")
        if cls != COMMENTS_CLASS:
            logger.error(f"unexpected class attribute value {cls!r}")
            return 1

        items = session.locate_many(NAV_ITEMS_PATH)
        if len(items) != NAV_ITEMS_EXPECTED:
            logger.error(f"expected {NAV_ITEMS_EXPECTED} nav items, found {len(items)}")
            return 1
        logger.info(f"nav items: {[item.text() for item in items]}")
        session.click(f"{NAV_ITEMS_PATH}[2]")

        form = session.locate_one(FORM_PATH)
        if snap:
            form.capture_snapshot()
        return 0
    except WebDriverSessionError as e:
        logger.error(f"{e}\n{collect_diagnostics(ctx, e)}")
        return 1
    finally:
        ctx.shutdown()


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(prog="chromedriver_session")
    parser.add_argument("--url", default="http://www.beijing-time.org/")
    parser.add_argument("--port", type=int, default=None, help="driver port (default CHROME_DRIVER_PORT)")
    parser.add_argument("--timeout", type=float, default=None, help="session timeout in seconds")
    parser.add_argument("--headless", action="store_true")
    parser.add_argument("--debug", action="store_true")
    parser.add_argument("--snap", action="store_true", help="serve a snapshot of the page")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        cfg = get_env_config()
    except (EnvironmentError, ValueError) as e:
        logger.error(f"init error: {e}")
        return 1

    debug = args.debug or cfg["debug"]
    if debug:
        logging.getLogger().setLevel(logging.DEBUG)
    port = args.port if args.port is not None else cfg["port"]
    timeout = args.timeout if args.timeout is not None else cfg["session_timeout"]
    return run(args.url, port, debug, args.headless, timeout, args.snap)


if __name__ == "__main__":
    sys.exit(main())
