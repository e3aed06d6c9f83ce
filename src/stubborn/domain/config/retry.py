"""Retry policy configuration model."""

from typing import Literal, Optional

from pydantic import BaseModel, Field

from stubborn.domain.models.configuration import MAX_RETRIES, MIN_RETRIES


class RetryConfig(BaseModel):
    """Retry policy as written in .stubborn.yml or the environment.

    Attributes:
        max_retries: Maximum number of attempts
        delay: Base delay magnitude, in time_scale units
        time_scale: Duration unit of delay
        strategy: constant or growing delay
        jitter: Jitter strategy name
        label: Optional log label
    """

    max_retries: int = Field(10, ge=MIN_RETRIES, le=MAX_RETRIES)
    delay: int = Field(500, ge=0)
    time_scale: Literal["nanosecond", "microsecond", "millisecond", "second"] = "millisecond"
    strategy: Literal["constant", "growing"] = "constant"
    jitter: Literal["none", "full", "equal"] = "full"
    label: Optional[str] = None

