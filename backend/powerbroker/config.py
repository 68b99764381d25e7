from typing import Optional

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings

# Limits exposed by the host settings window, in real-time seconds.
UPDATE_INTERVAL_RANGE_S = (1, 60)
MINIMUM_ON_TIME_RANGE_S = (0, 60)

# Defaults, in real-time seconds.
DEFAULT_UPDATE_INTERVAL_S = 1
DEFAULT_MINIMUM_ON_TIME_S = 10


class Settings(BaseSettings):
    model_config = {"env_prefix": "POWERBROKER_", "case_sensitive": False}

    # Host clock
    ticks_per_second: int = Field(default=60, ge=1)

    # Balance loop (both in ticks; unset means the default seconds at the
    # current tick rate)
    update_interval: Optional[int] = None
    minimum_on_time: Optional[int] = None

    # Logging
    log_json: bool = False
    log_level: str = "INFO"

    @model_validator(mode="after")
    def _check_ranges(self) -> "Settings":
        if self.update_interval is None:
            self.update_interval = DEFAULT_UPDATE_INTERVAL_S * self.ticks_per_second
        if self.minimum_on_time is None:
            self.minimum_on_time = DEFAULT_MINIMUM_ON_TIME_S * self.ticks_per_second

        lo, hi = UPDATE_INTERVAL_RANGE_S
        if not lo * self.ticks_per_second <= self.update_interval <= hi * self.ticks_per_second:
            raise ValueError(
                f"update_interval must be within [{lo}s, {hi}s], "
                f"got {self.update_interval} ticks"
            )
        lo, hi = MINIMUM_ON_TIME_RANGE_S
        if not lo * self.ticks_per_second <= self.minimum_on_time <= hi * self.ticks_per_second:
            raise ValueError(
                f"minimum_on_time must be within [{lo}s, {hi}s], "
                f"got {self.minimum_on_time} ticks"
            )
        return self

    @property
    def update_interval_seconds(self) -> float:
        return self.update_interval / self.ticks_per_second

    @property
    def minimum_on_time_seconds(self) -> float:
        return self.minimum_on_time / self.ticks_per_second

    @classmethod
    def from_seconds(
        cls,
        update_interval_s: float = DEFAULT_UPDATE_INTERVAL_S,
        minimum_on_time_s: float = DEFAULT_MINIMUM_ON_TIME_S,
        ticks_per_second: int = 60,
        **kwargs,
    ) -> "Settings":
        """Build settings from slider values, clamped to the host ranges."""
        update_interval_s = min(max(update_interval_s, UPDATE_INTERVAL_RANGE_S[0]), UPDATE_INTERVAL_RANGE_S[1])
        minimum_on_time_s = min(max(minimum_on_time_s, MINIMUM_ON_TIME_RANGE_S[0]), MINIMUM_ON_TIME_RANGE_S[1])
        return cls(
            ticks_per_second=ticks_per_second,
            update_interval=round(update_interval_s * ticks_per_second),
            minimum_on_time=round(minimum_on_time_s * ticks_per_second),
            **kwargs,
        )


settings = Settings()
