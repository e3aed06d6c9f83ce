"""stubborn - retry operations with constant or growing backoff and jitter."""

from stubborn.application.builder import Backoff
from stubborn.application.executor import (
    constant,
    execute,
    growing,
    must_constant,
    must_growing,
    must_run,
    run,
)
from stubborn.application.options import (
    build,
    from_retry_config,
    retry_after,
    with_abort_handler,
    with_callback,
    with_delay,
    with_jitter,
    with_label,
    with_logger,
    with_retries,
    with_sleep,
    with_strategy,
    with_time_scale,
)
from stubborn.domain.errors import (
    ConfigurationError,
    InvalidConfigurationError,
    InvalidRetriesCount,
    RetryAbortedError,
    StubbornError,
    Unrecoverable,
    is_unrecoverable,
    unwrap,
)
from stubborn.domain.jitter import equal_jitter, full_jitter, no_jitter
from stubborn.domain.models.configuration import Configuration, Strategy, TimeScale

__version__ = "0.1.0"

__all__ = [
    "Backoff",
    "Configuration",
    "ConfigurationError",
    "InvalidConfigurationError",
    "InvalidRetriesCount",
    "RetryAbortedError",
    "Strategy",
    "StubbornError",
    "TimeScale",
    "Unrecoverable",
    "build",
    "from_retry_config",
    "constant",
    "equal_jitter",
    "execute",
    "full_jitter",
    "growing",
    "is_unrecoverable",
    "must_constant",
    "must_growing",
    "must_run",
    "no_jitter",
    "retry_after",
    "run",
    "unwrap",
    "with_abort_handler",
    "with_callback",
    "with_delay",
    "with_jitter",
    "with_label",
    "with_logger",
    "with_retries",
    "with_sleep",
    "with_strategy",
    "with_time_scale",
]
