"""Save and restore balance settings and per-broker configuration as JSON."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Union

from pydantic import TypeAdapter

from powerbroker.broker.registry import BrokerRegistry
from powerbroker.config import Settings
from powerbroker.schemas.broker import BrokerConfig
from powerbroker.schemas.settings import PersistedSettings

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

_broker_configs = TypeAdapter(dict[str, BrokerConfig])


def save_settings(path: PathLike, settings: Settings) -> None:
    """Write the persisted subset of ``settings`` to ``path``."""
    data = PersistedSettings(
        ticks_per_second=settings.ticks_per_second,
        update_interval=settings.update_interval,
        minimum_on_time=settings.minimum_on_time,
    )
    Path(path).write_text(data.model_dump_json(indent=2), encoding="utf-8")


def load_settings(path: PathLike, base: Settings | None = None) -> Settings:
    """Read settings saved by :func:`save_settings`.

    Saved intervals are converted to ``base``'s tick rate and clamped to
    the allowed ranges.  Values not stored on disk come from ``base`` (or
    the environment).  A missing file yields the defaults.
    """
    base = base or Settings()
    path = Path(path)
    if not path.exists():
        logger.info("No saved settings at %s, using defaults", path)
        return base

    data = PersistedSettings.model_validate_json(path.read_text(encoding="utf-8"))
    saved = data.model_fields_set
    return Settings.from_seconds(
        update_interval_s=(data.update_interval_seconds if "update_interval" in saved
                           else base.update_interval_seconds),
        minimum_on_time_s=(data.minimum_on_time_seconds if "minimum_on_time" in saved
                           else base.minimum_on_time_seconds),
        ticks_per_second=base.ticks_per_second,
        log_json=base.log_json,
        log_level=base.log_level,
    )


def save_brokers(path: PathLike, registry: BrokerRegistry) -> None:
    """Write every registered broker's configuration keyed by broker id."""
    configs = {broker.broker_id: broker.to_config() for broker in registry}
    Path(path).write_bytes(_broker_configs.dump_json(configs, indent=2))


def load_broker_configs(path: PathLike) -> dict[str, BrokerConfig]:
    """Read broker configurations saved by :func:`save_brokers`."""
    path = Path(path)
    if not path.exists():
        return {}
    return _broker_configs.validate_json(path.read_bytes())
