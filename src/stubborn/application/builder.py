"""Fluent interface over the retry executor.

    result, err = Backoff.growing(fetch, "fetch").with_retries(6).with_delay(800).exec()

Each method records a configuration option; nothing is validated until
``exec`` or ``must_exec`` builds the configuration.
"""

from __future__ import annotations

from typing import Any, Callable, List, Optional, Tuple, Union

from stubborn.application import executor, options
from stubborn.application.options import Option
from stubborn.domain.jitter import JitterFunc
from stubborn.domain.models.configuration import Configuration, Strategy, TimeScale


class Backoff:
    """Chainable retry configuration for one operation"""

    def __init__(
        self,
        operation: Callable[[], Any],
        label: Optional[str] = None,
        strategy: Strategy = Strategy.CONSTANT,
    ):
        self.operation = operation
        self.strategy = strategy
        self._options: List[Option] = []
        if label is not None:
            self._options.append(options.with_label(label))

    @classmethod
    def constant(cls, operation: Callable[[], Any], label: Optional[str] = None) -> "Backoff":
        return cls(operation, label, Strategy.CONSTANT)

    @classmethod
    def growing(cls, operation: Callable[[], Any], label: Optional[str] = None) -> "Backoff":
        return cls(operation, label, Strategy.GROWING)

    def _add(self, option: Option) -> "Backoff":
        self._options.append(option)
        return self

    def with_retries(self, n: int) -> "Backoff":
        return self._add(options.with_retries(n))

    def with_delay(self, n: int) -> "Backoff":
        return self._add(options.with_delay(n))

    def with_time_scale(self, unit: Union[TimeScale, str]) -> "Backoff":
        return self._add(options.with_time_scale(unit))

    def with_label(self, label: str) -> "Backoff":
        return self._add(options.with_label(label))

    def with_logger(self, dest: Any) -> "Backoff":
        return self._add(options.with_logger(dest))

    def with_callback(self, fn: Callable[[Configuration, Any], Any]) -> "Backoff":
        return self._add(options.with_callback(fn))

    def with_jitter(self, jitter: Union[JitterFunc, str]) -> "Backoff":
        return self._add(options.with_jitter(jitter))

    def with_sleep(self, fn: Callable[[float], Any]) -> "Backoff":
        return self._add(options.with_sleep(fn))

    def with_abort_handler(self, fn: Callable[[str], Any]) -> "Backoff":
        return self._add(options.with_abort_handler(fn))

    def with_options(self, *extra: Option) -> "Backoff":
        """Append already-built options, e.g. from from_retry_config()"""
        self._options.extend(extra)
        return self

    def exec(self) -> Tuple[Any, Optional[Exception]]:
        """Run with the report policy"""
        return executor.run(self.operation, *self._options, strategy=self.strategy)

    def must_exec(self) -> Any:
        """Run with the abort policy"""
        return executor.must_run(self.operation, *self._options, strategy=self.strategy)
