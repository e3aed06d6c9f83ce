"""Configuration options and the configuration builder.

Each option is a callable taking the in-progress :class:`Configuration` and
returning ``None`` on success or an exception describing why the input was
rejected. Options are applied in order and the first failure stops the
build.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, List, Optional, Tuple, Union

from pydantic import ValidationError

from stubborn.domain.config.retry import RetryConfig
from stubborn.domain.errors import InvalidConfigurationError, InvalidRetriesCount
from stubborn.domain.jitter import JitterFunc, resolve_jitter
from stubborn.domain.models.configuration import (
    MAX_RETRIES,
    MIN_RETRIES,
    Configuration,
    Strategy,
    TimeScale,
)
from stubborn.infrastructure.logging_sink import as_sink, default_sink

logger = logging.getLogger(__name__)

Option = Callable[[Configuration], Optional[Exception]]


def _assign(cfg: Configuration, field: str, value: Any) -> Optional[Exception]:
    try:
        setattr(cfg, field, value)
    except ValidationError as e:
        return InvalidConfigurationError(f"invalid {field}: {e.errors()[0]['msg']}")
    return None


def with_retries(n: int) -> Option:
    """Set the maximum number of attempts (1..100)"""

    def option(cfg: Configuration) -> Optional[Exception]:
        if isinstance(n, bool):
            return InvalidRetriesCount(n, MIN_RETRIES, MAX_RETRIES)
        try:
            cfg.max_retries = n
        except ValidationError:
            return InvalidRetriesCount(n, MIN_RETRIES, MAX_RETRIES)
        return None

    return option


def with_label(label: str) -> Option:
    """Set the label used as prefix for log messages"""

    def option(cfg: Configuration) -> Optional[Exception]:
        return _assign(cfg, "label", label)

    return option


def with_delay(n: int) -> Option:
    """Set the base delay magnitude, in time scale units (milliseconds by default)"""

    def option(cfg: Configuration) -> Optional[Exception]:
        try:
            cfg.base_delay = n
        except ValidationError:
            return InvalidConfigurationError(f"invalid delay: {n} (expected a non-negative integer)")
        return None

    return option


retry_after = with_delay


def with_time_scale(unit: Union[TimeScale, str]) -> Option:
    """Set the duration unit of the delay. Mostly used by tests to avoid real waits."""

    def option(cfg: Configuration) -> Optional[Exception]:
        try:
            cfg.time_scale = unit if isinstance(unit, TimeScale) else TimeScale(str(unit).lower())
        except ValueError:
            choices = ", ".join(t.value for t in TimeScale)
            return InvalidConfigurationError(f"invalid time scale: {unit} (expected one of {choices})")
        return None

    return option


def with_strategy(strategy: Union[Strategy, str]) -> Option:
    """Set the delay strategy (constant or growing)"""

    def option(cfg: Configuration) -> Optional[Exception]:
        try:
            cfg.strategy = strategy if isinstance(strategy, Strategy) else Strategy(str(strategy).lower())
        except ValueError:
            choices = ", ".join(s.value for s in Strategy)
            return InvalidConfigurationError(f"invalid strategy: {strategy} (expected one of {choices})")
        return None

    return option


def with_logger(dest: Any) -> Option:
    """Set the destination of per-attempt warnings (logger or text stream)"""

    def option(cfg: Configuration) -> Optional[Exception]:
        try:
            cfg.logger = as_sink(dest)
        except TypeError as e:
            return InvalidConfigurationError(str(e))
        return None

    return option


def with_callback(fn: Callable[[Configuration, Any], Any]) -> Option:
    """Set the function called once with (configuration, result) on success"""

    def option(cfg: Configuration) -> Optional[Exception]:
        return _assign(cfg, "callback", fn)

    return option


def with_jitter(jitter: Union[JitterFunc, str]) -> Option:
    """Set the jitter strategy, as a function or by name (none, full, equal)"""

    def option(cfg: Configuration) -> Optional[Exception]:
        try:
            cfg.jitter = resolve_jitter(jitter) if isinstance(jitter, str) else jitter
        except (ValueError, ValidationError) as e:
            return InvalidConfigurationError(f"invalid jitter: {e}")
        return None

    return option


def with_sleep(fn: Callable[[float], Any]) -> Option:
    """Set the blocking wait function (seconds -> None)"""

    def option(cfg: Configuration) -> Optional[Exception]:
        return _assign(cfg, "sleep", fn)

    return option


def with_abort_handler(fn: Callable[[str], Any]) -> Option:
    """Set the handler invoked when the must-run policy gives up"""

    def option(cfg: Configuration) -> Optional[Exception]:
        return _assign(cfg, "abort_handler", fn)

    return option


def from_retry_config(policy: RetryConfig) -> List[Option]:
    """Translate a file or environment retry policy into options"""
    opts = [
        with_retries(policy.max_retries),
        with_delay(policy.delay),
        with_time_scale(policy.time_scale),
        with_strategy(policy.strategy),
        with_jitter(policy.jitter),
    ]
    if policy.label:
        opts.append(with_label(policy.label))
    return opts


def build(
    operation: Callable[[], Any],
    *options: Option,
    strategy: Strategy = Strategy.CONSTANT,
) -> Tuple[Optional[Configuration], Optional[Exception]]:
    """Build a configuration from defaults and options

    Args:
        operation: Zero-argument callable to retry
        *options: Configuration options, applied in order
        strategy: Initial delay strategy (options may override it)

    Returns:
        (configuration, None) on success. (configuration, error) on the first
        rejected option, the configuration holding the options applied before
        it; it must not be executed. (None, error) if operation is not callable.
    """
    try:
        cfg = Configuration(operation=operation, strategy=strategy)
    except ValidationError as e:
        return None, InvalidConfigurationError(f"invalid operation: {e.errors()[0]['msg']}")

    for option in options:
        try:
            err = option(cfg)
        except InvalidConfigurationError as e:
            err = e
        if err is not None:
            logger.debug(f"Rejected configuration for {cfg.label}: {err}")
            return cfg, err

    if cfg.logger is None:
        cfg.logger = default_sink()

    logger.debug(
        f"Configured {cfg.label}: retries={cfg.max_retries}, delay={cfg.base_delay} "
        f"{cfg.time_scale.value}, strategy={cfg.strategy.value}"
    )
    return cfg, None
