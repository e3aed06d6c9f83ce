"""Retry executor.

Runs an operation until it succeeds, the retry budget runs out, or it raises
an :class:`Unrecoverable` error. The attempt loop is driven by tenacity:

* a wait precedes every attempt, the first one included. The first wait is
  taken in the ``before`` hook, the following ones come from the wait
  strategy;
* recoverable failures are counted and logged from the ``after`` hook;
* unrecoverable failures fail the retry predicate and end the loop at once.

Two termination policies share the loop. :func:`run` reports, returning
``(result, error)``. :func:`must_run` aborts through the configured abort
handler and returns the bare result.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, NoReturn, Optional, Tuple

from tenacity import RetryCallState, Retrying, nap, retry_if_exception, stop_after_attempt
from tenacity.wait import wait_base

from stubborn.application.options import Option, build
from stubborn.domain.errors import RetryAbortedError, is_unrecoverable
from stubborn.domain.models.configuration import Configuration, Strategy
from stubborn.infrastructure.abort import fatal_abort
from stubborn.infrastructure.logging_sink import emit_warning

logger = logging.getLogger(__name__)


class wait_attempt_delay(wait_base):
    """Wait computed from the configuration for the upcoming attempt"""

    def __init__(self, config: Configuration) -> None:
        self.config = config

    def __call__(self, retry_state: RetryCallState) -> float:
        # retry_state still refers to the attempt that just failed. Newer
        # tenacity releases ask for the wait before checking the stop condition
        if retry_state.attempt_number >= self.config.max_retries:
            return 0.0
        return self.config.delay_seconds(retry_state.attempt_number + 1)


def _sleeper(config: Configuration) -> Callable[[float], Any]:
    return config.sleep or nap.sleep


def _retrying(config: Configuration) -> Retrying:
    sleep = _sleeper(config)

    def _before_attempt(retry_state: RetryCallState) -> None:
        if retry_state.attempt_number == 1:
            sleep(config.delay_seconds(1))

    def _after_failure(retry_state: RetryCallState) -> None:
        config.failed_invocations += 1
        error = retry_state.outcome.exception() if retry_state.outcome else None
        emit_warning(config.logger, f"{config.label} (Attempt #{retry_state.attempt_number}): {error}")

    return Retrying(
        stop=stop_after_attempt(config.max_retries),
        wait=wait_attempt_delay(config),
        retry=retry_if_exception(lambda e: not is_unrecoverable(e)),
        before=_before_attempt,
        after=_after_failure,
        sleep=sleep,
        reraise=True,
    )


def _invoke(config: Configuration) -> Any:
    config.invocations += 1
    return config.operation()


def execute(config: Configuration) -> Any:
    """Run the attempt loop for a built configuration

    Args:
        config: Configuration built for this run only

    Returns:
        Result of the first successful attempt

    Raises:
        Unrecoverable: If an attempt raised an unrecoverable error
        Exception: The last recoverable error once the budget is exhausted
    """
    result = _attempt(config)
    _notify(config, result)
    return result


def _attempt(config: Configuration) -> Any:
    logger.debug(f"Starting {config.label} with up to {config.max_retries} attempts")
    result = _retrying(config)(_invoke, config)
    logger.debug(f"{config.label} succeeded after {config.invocations} attempt(s)")
    return result


def _notify(config: Configuration, result: Any) -> None:
    if config.callback is not None:
        config.callback(config.snapshot(), result)


def run(
    operation: Callable[[], Any],
    *options: Option,
    strategy: Strategy = Strategy.CONSTANT,
) -> Tuple[Any, Optional[Exception]]:
    """Retry an operation and report the outcome

    Args:
        operation: Zero-argument callable; raising means the attempt failed
        *options: Configuration options (with_retries, with_delay, ...)
        strategy: Delay strategy, constant by default

    Returns:
        (result, None) on success. (None, error) when the configuration is
        invalid, the budget is exhausted (last error) or an attempt raised
        an Unrecoverable error (the wrapper, whose cause is the original).
    """
    config, err = build(operation, *options, strategy=strategy)
    if err is not None:
        return None, err
    try:
        result = _attempt(config)
    except Exception as e:
        if is_unrecoverable(e):
            logger.debug(f"{config.label} stopped on unrecoverable error: {e}")
        return None, e
    _notify(config, result)
    return result, None


def must_run(
    operation: Callable[[], Any],
    *options: Option,
    strategy: Strategy = Strategy.CONSTANT,
) -> Any:
    """Retry an operation, aborting when it cannot succeed

    Same loop as :func:`run`, but an invalid configuration, an exhausted
    budget or an unrecoverable error call the abort handler, which by
    default terminates the process. Only use it where no recovery is
    possible.

    Returns:
        Result of the first successful attempt

    Raises:
        RetryAbortedError: If a substituted abort handler returned
    """
    config, err = build(operation, *options, strategy=strategy)
    if err is not None:
        _abort(config.abort_handler if config is not None else None, f"invalid configuration: {err}", err)

    try:
        result = _attempt(config)
    except Exception as e:
        if is_unrecoverable(e):
            message = f"{config.label}: giving up after unrecoverable error on attempt #{config.invocations}: {e}"
        else:
            message = f"{config.label}: giving up after {config.invocations} attempts: {e}"
        _abort(config.abort_handler, message, e)
    _notify(config, result)
    return result


def _abort(handler: Optional[Callable[[str], Any]], message: str, cause: BaseException) -> NoReturn:
    (handler or fatal_abort)(message)
    raise RetryAbortedError(message) from cause


def constant(operation: Callable[[], Any], *options: Option) -> Tuple[Any, Optional[Exception]]:
    """Retry with the same delay before every attempt"""
    return run(operation, *options, strategy=Strategy.CONSTANT)


def growing(operation: Callable[[], Any], *options: Option) -> Tuple[Any, Optional[Exception]]:
    """Retry with the delay multiplied by the attempt number"""
    return run(operation, *options, strategy=Strategy.GROWING)


def must_constant(operation: Callable[[], Any], *options: Option) -> Any:
    return must_run(operation, *options, strategy=Strategy.CONSTANT)


def must_growing(operation: Callable[[], Any], *options: Option) -> Any:
    return must_run(operation, *options, strategy=Strategy.GROWING)
