import argparse  # noqa: D100
import logging
from typing import List, Optional

from saxis_viewer.config import config


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser("Saxis Viewer")
    parser.add_argument(
        "--server", default=config.SERVER_URL, help="Base URL of the saxis server"
    )
    parser.add_argument(
        "--fps", type=float, default=config.RENDER_FPS, help="Render ticks per second"
    )
    parser.add_argument(
        "--poll-period",
        type=float,
        default=config.POLL_PERIOD,
        help="Seconds between status requests",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=config.REQUEST_TIMEOUT,
        help="Seconds to wait for each server response",
    )
    parser.add_argument(
        "--duration",
        type=float,
        default=None,
        help="Stop after this many seconds (default: run until stopped)",
    )
    parser.add_argument(
        "--debug", default=False, action="store_true", help="Enable debug logging"
    )
    return parser.parse_args(argv)


def setup_logger(debug: bool) -> logging.Logger:
    """Configure logging for the viewer."""
    log_format = "%(asctime)s %(levelname)s %(name)s:%(lineno)d | %(message)s"
    logging.basicConfig(level=logging.INFO, format=log_format)

    app_logger = logging.getLogger("saxis_viewer")
    app_logger.setLevel(logging.DEBUG if debug else logging.INFO)
    app_handler = logging.StreamHandler()
    app_handler.setFormatter(logging.Formatter(log_format))
    app_handler.setLevel(logging.DEBUG if debug else logging.INFO)
    app_logger.handlers.clear()
    app_logger.addHandler(app_handler)
    app_logger.propagate = False

    # Tame third-party noise
    for name in ("urllib3", "requests"):
        logging.getLogger(name).setLevel(logging.WARNING)

    return app_logger
