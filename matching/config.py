import os

from dotenv import load_dotenv

from .logic import constants

load_dotenv()


# ------------------------------------------------------
# ENV HELPERS
# ------------------------------------------------------
def _read_env(*keys, default=None):
    """Return the first found environment variable from provided keys."""
    for key in keys:
        if key and key in os.environ:
            return os.environ[key]
    return default


def _read_bool(*keys, default=False):
    raw = _read_env(*keys)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


class Settings:
    """Runtime configuration, read from the environment (and .env) once at import."""

    def __init__(self):
        # Stores
        self.DATABASE_URL = _read_env("DATABASE_URL", default="sqlite:///./matching.db")
        self.REDIS_URL = _read_env("REDIS_URL", "UPSTASH_REDIS_URL")

        # Match cache
        self.MATCH_CACHE_TTL_SECONDS = float(
            _read_env("MATCH_CACHE_TTL_SECONDS", default=constants.MATCH_CACHE_TTL_SECONDS)
        )
        self.UNVERSIONED_CACHE_TTL_SECONDS = float(
            _read_env("UNVERSIONED_CACHE_TTL_SECONDS", default=constants.UNVERSIONED_CACHE_TTL_SECONDS)
        )
        self.MATCH_LOCK_TTL_SECONDS = float(
            _read_env("MATCH_LOCK_TTL_SECONDS", default=constants.MATCH_LOCK_TTL_SECONDS)
        )
        self.MATCH_CACHE_WAIT_TIMEOUT_SECONDS = float(
            _read_env("MATCH_CACHE_WAIT_TIMEOUT_SECONDS", default=constants.MATCH_CACHE_WAIT_TIMEOUT_SECONDS)
        )
        self.MATCH_CACHE_OP_TIMEOUT_SECONDS = float(
            _read_env("MATCH_CACHE_OP_TIMEOUT_SECONDS", default=constants.MATCH_CACHE_OP_TIMEOUT_SECONDS)
        )

        # Candidate prefilter
        self.MATCH_PREFILTER_ENABLED = _read_bool("MATCH_PREFILTER_ENABLED", default=True)
        self.MATCH_PREFILTER_MIN_CATALOG = int(
            _read_env("MATCH_PREFILTER_MIN_CATALOG", default=constants.PREFILTER_MIN_CATALOG)
        )

        # Match set builder
        self.MATCH_PARALLEL_THRESHOLD = int(
            _read_env("MATCH_PARALLEL_THRESHOLD", default=constants.PARALLEL_THRESHOLD)
        )
        self.MATCH_MAX_WORKERS = int(
            _read_env("MATCH_MAX_WORKERS", default=constants.DEFAULT_MAX_WORKERS)
        )

        self.LOG_LEVEL = _read_env("LOG_LEVEL", default="INFO")


settings = Settings()
