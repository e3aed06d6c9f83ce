"""Configuration model - settings and counters of one retry execution"""

from __future__ import annotations

import functools
from enum import Enum
from typing import Any, Callable, Optional

from pydantic import BaseModel, ConfigDict, Field

from stubborn.domain.jitter import JitterFunc, full_jitter

MIN_RETRIES = 1
MAX_RETRIES = 100

DEFAULT_LABEL = "operation"


class Strategy(str, Enum):
    """How the delay evolves between attempts"""

    CONSTANT = "constant"  # same (jittered) delay before every attempt
    GROWING = "growing"  # jittered delay multiplied by the attempt number


class TimeScale(str, Enum):
    """Duration unit applied to delay magnitudes"""

    NANOSECOND = "nanosecond"
    MICROSECOND = "microsecond"
    MILLISECOND = "millisecond"
    SECOND = "second"

    @property
    def seconds(self) -> float:
        """Length of one unit in seconds"""
        return _SECONDS[self]

    def to_seconds(self, magnitude: int) -> float:
        return magnitude * self.seconds


_SECONDS = {
    TimeScale.NANOSECOND: 1e-9,
    TimeScale.MICROSECOND: 1e-6,
    TimeScale.MILLISECOND: 1e-3,
    TimeScale.SECOND: 1.0,
}


def derive_label(operation: Callable[..., Any]) -> str:
    """Derive a log label from an operation's name.

    Module and class qualifiers are stripped. Lambdas and callables without
    a name get a generic placeholder.
    """
    while isinstance(operation, functools.partial):
        operation = operation.func
    name = getattr(operation, "__qualname__", None) or getattr(operation, "__name__", None)
    if not name:
        name = type(operation).__name__
    name = name.rsplit(".", 1)[-1]
    if not name or name.startswith("<"):
        return DEFAULT_LABEL
    return name


class Configuration(BaseModel):
    """Settings and counters for a single retry execution.

    Built once per run by applying configuration options to the defaults,
    then owned by the executor until the run finishes. Never share an
    instance between runs.

    Attributes:
        operation: Zero-argument callable being retried
        max_retries: Maximum number of attempts (1..100)
        base_delay: Delay magnitude, in time_scale units
        time_scale: Unit applied to base_delay
        strategy: Constant or growing delay
        jitter: Function randomizing the delay magnitude
        label: Prefix for log messages
        callback: Called once with (configuration, result) on success
        logger: Sink receiving per-attempt warnings
        sleep: Blocking wait function, seconds -> None
        abort_handler: Called with a diagnostic when the abort policy fires
        invocations: Attempts made so far
        failed_invocations: Attempts that raised a recoverable error
    """

    operation: Callable[[], Any]
    max_retries: int = Field(10, ge=MIN_RETRIES, le=MAX_RETRIES, strict=True)
    base_delay: int = Field(500, ge=0, strict=True)
    time_scale: TimeScale = TimeScale.MILLISECOND
    strategy: Strategy = Strategy.CONSTANT
    jitter: JitterFunc = full_jitter
    label: str = ""
    callback: Optional[Callable[[Any, Any], Any]] = None
    logger: Any = None
    sleep: Optional[Callable[[float], Any]] = None
    abort_handler: Optional[Callable[[str], Any]] = None

    invocations: int = Field(0, ge=0)
    failed_invocations: int = Field(0, ge=0)

    model_config = ConfigDict(
        validate_assignment=True,
        arbitrary_types_allowed=True,
        extra="forbid",
    )

    def model_post_init(self, __context: Any) -> None:
        if not self.label:
            self.label = derive_label(self.operation)

    def delay_magnitude(self, attempt: int) -> int:
        """Jittered delay magnitude to wait before the given attempt (1-based)"""
        magnitude = self.jitter(self.base_delay)
        if self.strategy == Strategy.GROWING:
            magnitude *= attempt
        return magnitude

    def delay_seconds(self, attempt: int) -> float:
        """Wait before the given attempt, in seconds"""
        return self.time_scale.to_seconds(self.delay_magnitude(attempt))

    def snapshot(self) -> "Configuration":
        """Copy of the current state, handed to callbacks"""
        return self.model_copy()
