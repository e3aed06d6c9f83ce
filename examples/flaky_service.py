"""Retry a flaky call with growing backoff and a success callback"""

import logging
import random

from stubborn import Backoff, Unrecoverable

logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")


def flaky_service() -> str:
    roll = random.random()
    if roll < 0.05:
        raise Unrecoverable(PermissionError("credentials revoked"))
    if roll < 0.6:
        raise ConnectionError("connection reset by peer")
    return "payload"


def report(config, result) -> None:
    print(f"{config.label}: got {result!r} after {config.invocations} attempt(s)")


if __name__ == "__main__":
    result, err = (
        Backoff.growing(flaky_service, "flaky")
        .with_retries(6)
        .with_delay(100)
        .with_jitter("equal")
        .with_callback(report)
        .exec()
    )
    if err is not None:
        print(f"gave up: {err}")
