"""
Process-wide default run configuration.

The default RunConfig is read from the environment (and a .env file, if
present) the first time it is needed:

- SPECRUNNER_WORKERS: worker pool size (default: cpu count)
- SPECRUNNER_MSEC: time budget in milliseconds (default: 10000)
- SPECRUNNER_VERBOSE: 1/true/yes/on to report every iteration
- SPECRUNNER_SEED: optional integer base seed

The default is consulted only when a run starts without an explicit config.
It may be replaced between runs with set_default_run_config().
"""

import logging
import os
import threading
from typing import Optional

from dotenv import load_dotenv

from .errors import ConfigurationError
from .models import RunConfig

load_dotenv()

logger = logging.getLogger(__name__)

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"", "0", "false", "no", "off"}

_lock = threading.Lock()
_default: Optional[RunConfig] = None


def _env_int(name: str) -> Optional[int]:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from None


def _env_bool(name: str) -> bool:
    raw = os.environ.get(name, "").strip().lower()
    if raw in _TRUTHY:
        return True
    if raw in _FALSY:
        return False
    raise ConfigurationError(f"{name} must be a boolean flag, got {raw!r}")


def load_run_config_from_env() -> RunConfig:
    """
    Build a RunConfig from SPECRUNNER_* environment variables.

    Raises:
        ConfigurationError: if a variable is set but cannot be parsed, or the
            resulting config is invalid.
    """
    kwargs = {}
    workers = _env_int("SPECRUNNER_WORKERS")
    if workers is not None:
        kwargs["workers"] = workers
    msec = _env_int("SPECRUNNER_MSEC")
    if msec is not None:
        kwargs["msec"] = msec
    seed = _env_int("SPECRUNNER_SEED")
    if seed is not None:
        kwargs["seed"] = seed
    kwargs["verbose"] = _env_bool("SPECRUNNER_VERBOSE")
    return RunConfig(**kwargs)


def get_default_run_config() -> RunConfig:
    """Return the process-wide default RunConfig, loading it on first use."""
    global _default
    with _lock:
        if _default is None:
            _default = load_run_config_from_env()
            logger.debug("loaded default run config: %s", _default)
        return _default


def set_default_run_config(config: Optional[RunConfig]) -> None:
    """
    Replace the process-wide default RunConfig.

    Passing None drops the current default so the next lookup reloads it from
    the environment. Must not be called while a run is in flight.
    """
    global _default
    with _lock:
        _default = config


def resolve_run_config(override: Optional[RunConfig] = None) -> RunConfig:
    """Return the override if given, otherwise the process-wide default."""
    if override is not None:
        return override
    return get_default_run_config()
