import os
import logging

from dotenv import find_dotenv, load_dotenv


logger = logging.getLogger(__name__)

# Locate .env file (search upward from current working directory)
dotenv_path = find_dotenv(usecwd=True)

if dotenv_path:
    # Load .env and override environment variables
    load_dotenv(dotenv_path=dotenv_path, override=True)
    logger.info(f"Configuration loaded from {dotenv_path}")
else:
    logger.debug("No .env file found, using environment variables")


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be a number, got {raw!r}") from None
    if value <= 0:
        raise RuntimeError(f"{name} must be positive, got {raw!r}")
    return value


def _env_pcount(name: str, default: int | None) -> int | None:
    raw = os.getenv(name)
    if raw is None:
        return default
    # An empty value disables the signal.
    if not raw.strip():
        return None
    try:
        return int(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be an integer program count, got {raw!r}") from None


class Config:
    """Configuration class for the saxis viewer."""

    SERVER_URL = os.getenv("SAXIS_SERVER_URL", "http://localhost:8080")
    POLL_PERIOD = _env_float("SAXIS_POLL_PERIOD", 0.213)
    RENDER_FPS = _env_float("SAXIS_RENDER_FPS", 60.0)
    REQUEST_TIMEOUT = _env_float("SAXIS_REQUEST_TIMEOUT", 2.0)

    # Programs whose adoption starts/stops frame capture
    RECORD_START_PCOUNT = _env_pcount("SAXIS_RECORD_START_PCOUNT", 4)
    RECORD_STOP_PCOUNT = _env_pcount("SAXIS_RECORD_STOP_PCOUNT", 5)

    logger.debug(f"Server: {SERVER_URL}, poll period: {POLL_PERIOD}s, fps: {RENDER_FPS}")
    logger.debug(f"Recording pcounts: start={RECORD_START_PCOUNT}, stop={RECORD_STOP_PCOUNT}")


config = Config()
