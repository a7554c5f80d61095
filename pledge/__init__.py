"""pledge: composable promises with progress."""

from pledge.promise import (
    Promise,
    State
)

from pledge.deferred import Deferred

from pledge.combinators import (
    chain,
    any_of,
    all_of
)

from pledge.errors import (
    DOMAIN,
    ErrorCode,
    PromiseError
)

from pledge.scheduler import (
    Scheduler,
    ThreadScheduler,
    AsyncioScheduler,
    PortalScheduler,
    ManualScheduler
)

from pledge.futures import (
    to_future,
    from_future,
    wait
)

from pledge.log import (
    get_logger,
    setup_logging
)

__version__ = "0.1.0"

__all__ = [
    # Promises
    'Promise',
    'State',
    'Deferred',

    # Combinators
    'chain',
    'any_of',
    'all_of',

    # Errors
    'DOMAIN',
    'ErrorCode',
    'PromiseError',

    # Schedulers
    'Scheduler',
    'ThreadScheduler',
    'AsyncioScheduler',
    'PortalScheduler',
    'ManualScheduler',

    # Async bridge
    'to_future',
    'from_future',
    'wait',

    # Logging
    'get_logger',
    'setup_logging',
]
