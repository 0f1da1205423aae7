"""Environment helpers used while building `Settings` and at startup."""

import logging

from dotenv import load_dotenv

logger = logging.getLogger(__name__)


def load_env_file() -> bool:
    """Export variables from a local `.env` into os.environ.

    Values already present in the process environment win, so production
    deployments are never overridden by a stray file. Returns whether a
    file was found.
    """
    loaded = load_dotenv(override=False)
    if loaded:
        logger.info("[CONFIG] Loaded local .env file (exported variables kept)")
    return loaded


def require_setting(name: str, value):
    """Return `value`, or fail startup naming the missing variable."""
    if not value:
        raise RuntimeError(f"{name} is not set. Export it or add it to backend/.env.")
    return value
