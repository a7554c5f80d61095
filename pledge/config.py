"""Process-wide configuration for pledge."""
import os
import threading
from typing import Optional

_lock = threading.Lock()

_default_scheduler = None
_owns_default_scheduler = False
_strict: Optional[bool] = None


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "").strip().lower() in ("1", "true", "yes", "on")


def set_default_scheduler(scheduler) -> None:
    """Set the scheduler used by delayed constructors when none is given."""
    global _default_scheduler, _owns_default_scheduler
    with _lock:
        _default_scheduler = scheduler
        _owns_default_scheduler = False


def get_default_scheduler():
    """Get the default scheduler, creating a ThreadScheduler on first use."""
    global _default_scheduler, _owns_default_scheduler
    with _lock:
        if _default_scheduler is None:
            from .scheduler import ThreadScheduler
            _default_scheduler = ThreadScheduler("pledge")
            _owns_default_scheduler = True
        return _default_scheduler


def set_strict(flag: bool) -> None:
    """Make illegal transitions raise AssertionError instead of being ignored."""
    global _strict
    _strict = bool(flag)


def is_strict() -> bool:
    """Whether strict transition checks are on (PLEDGE_STRICT when unset)."""
    if _strict is None:
        return _env_flag("PLEDGE_STRICT")
    return _strict


def reset_all() -> None:
    """Restore defaults, stopping a default scheduler created by this module."""
    global _default_scheduler, _owns_default_scheduler, _strict
    with _lock:
        scheduler = _default_scheduler if _owns_default_scheduler else None
        _default_scheduler = None
        _owns_default_scheduler = False
        _strict = None
    if scheduler is not None:
        scheduler.stop()
