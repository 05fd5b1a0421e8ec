"""
Runtime configuration.

The host core count is read once when this module is imported and is the
default pool size for batch calls. Callers pass a plain dictionary to
override defaults, for example {"max_workers": 1} in tests.

Supported keys
- max_workers : int default CORES, clamped to at least 1
- rank_levels : int default 3, number of distinct frequency levels returned
"""

from typing import Any, Dict, Optional
from multiprocessing import cpu_count

from .exceptions import ConfigurationError

CORES = cpu_count()

DEFAULT_CONFIG: Dict[str, Any] = {
    "max_workers": CORES,
    "rank_levels": 3,
}


def _as_int(cfg: Dict[str, Any], key: str) -> int:
    value = cfg.get(key, DEFAULT_CONFIG[key])
    if isinstance(value, bool):
        raise ConfigurationError(f"{key} must be an integer", details={key: value})
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"{key} must be an integer", details={key: value}, cause=e) from e


def resolve_config(config: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Merge a user configuration dictionary over DEFAULT_CONFIG.

    Unknown keys are kept so callers can carry their own settings along.
    Raises ConfigurationError for values that cannot be coerced or for a
    non positive rank_levels.
    """
    cfg = dict(DEFAULT_CONFIG)
    cfg.update(config or {})

    max_workers = _as_int(cfg, "max_workers")
    rank_levels = _as_int(cfg, "rank_levels")
    if rank_levels < 1:
        raise ConfigurationError("rank_levels must be at least 1", details={"rank_levels": rank_levels})

    cfg["max_workers"] = max(1, max_workers)
    cfg["rank_levels"] = rank_levels
    return cfg
