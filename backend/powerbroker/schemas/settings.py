from pydantic import BaseModel, Field


# On-disk shape of the balance loop settings; tick counts are only meaningful
# together with the tick rate they were saved at
class PersistedSettings(BaseModel):
    ticks_per_second: int = Field(default=60, ge=1)
    update_interval: int = Field(default=60, ge=1)
    minimum_on_time: int = Field(default=600, ge=0)

    @property
    def update_interval_seconds(self) -> float:
        return self.update_interval / self.ticks_per_second

    @property
    def minimum_on_time_seconds(self) -> float:
        return self.minimum_on_time / self.ticks_per_second
