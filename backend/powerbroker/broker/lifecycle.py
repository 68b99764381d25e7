"""Host attach/detach notifications.

The host calls these when a backup attachment appears on a generator, when
the generator it sits on is rebuilt or rewired, and when the attachment or
its generator goes away.  None of them raise into the host.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Hashable, Optional

from powerbroker.config import Settings
from powerbroker.network.interfaces import NetworkView
from powerbroker.schemas.broker import BrokerConfig

from .generator_broker import GeneratorBroker
from .registry import BrokerRegistry

logger = logging.getLogger(__name__)


class DetachReason(str, Enum):
    REMOVED = "removed"
    HOST_DESTROYED = "host_destroyed"
    DOMAIN_UNLOADED = "domain_unloaded"


def attach(
    registry: BrokerRegistry,
    view: NetworkView,
    host_id: Hashable,
    broker_id: str = "",
    config: Optional[BrokerConfig] = None,
    settings: Optional[Settings] = None,
) -> Optional[GeneratorBroker]:
    """Bind a broker to the generator at ``host_id`` and register it.

    ``config`` restores persisted per-broker state.  Returns ``None`` when
    the host is not a generator with an on/off switch.
    """
    broker = GeneratorBroker.try_bind(
        view, host_id, broker_id=broker_id, config=config, settings=settings
    )
    if broker is None:
        logger.debug("Host %s cannot carry a backup broker", host_id)
        return None

    registry.register(broker)
    return broker


def reattach(registry: BrokerRegistry, broker: GeneratorBroker, host_id: Hashable) -> bool:
    """Rebind ``broker`` after its host was rebuilt or reconnected."""
    if not broker.rebind(host_id):
        return False
    registry.register(broker, force_regroup=True)
    return True


def detach(
    registry: BrokerRegistry,
    broker: GeneratorBroker,
    reason: DetachReason = DetachReason.REMOVED,
) -> None:
    """Deregister ``broker``; failures are logged and swallowed."""
    try:
        registry.deregister(broker)
    except Exception:
        logger.exception("Error deregistering broker %s", broker.broker_id,
                         extra={"broker": broker.broker_id})

    if reason is DetachReason.HOST_DESTROYED:
        logger.warning("Backup attachment %s removed because its generator is gone",
                       broker.broker_id, extra={"broker": broker.broker_id})


def check_host(
    registry: BrokerRegistry,
    broker: GeneratorBroker,
    replacement_host_id: Optional[Hashable] = None,
) -> bool:
    """Per-tick check for hosts that cannot signal destruction.

    If the bound generator is gone, try ``replacement_host_id`` (whatever
    now stands where the old one was); otherwise detach the broker.

    Returns
    -------
    bool
        Whether the broker is still attached.
    """
    if broker.endpoint is not None:
        return True

    if replacement_host_id is not None and reattach(registry, broker, replacement_host_id):
        return True

    detach(registry, broker, DetachReason.HOST_DESTROYED)
    return False
