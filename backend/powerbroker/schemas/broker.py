from pydantic import BaseModel, Field, field_validator


# Per-broker persisted state, saved with the owning generator
class BrokerConfig(BaseModel):
    storage_target_range: tuple[float, float] = (0.0, 1.0)
    run_on_batteries_only: bool = True

    @field_validator("storage_target_range")
    @classmethod
    def _order_range(cls, value: tuple[float, float]) -> tuple[float, float]:
        low, high = (min(max(float(v), 0.0), 1.0) for v in value)
        return (min(low, high), max(low, high))


class BrokerSnapshot(BaseModel):
    broker_id: str
    status: str
    storage_target_range: tuple[float, float]
    run_on_batteries_only: bool
    last_start_tick: int | None = None
    network_id: str | None = None
    storage_level: float = Field(default=0.0, ge=0, le=1)
