"""Shutdown and startup eligibility rules.

Both rules read the same :class:`NetworkSnapshot`.  They only *list*
candidates; picking one and commanding it is the engine's job.

**Shutdown** is considered while production exceeds need or storage holds
anything.  A running backup qualifies when its output fits inside the
surplus (or it only exists to charge storage), storage has reached its
upper target, and it has run for the minimum on-time.

**Startup** is considered while need exceeds production or storage is not
full.  An idle backup qualifies when it could produce and storage is at or
below its lower target.
"""

from __future__ import annotations

from .snapshot import EndpointReading, NetworkSnapshot


def should_consider_shutdown(snapshot: NetworkSnapshot) -> bool:
    return snapshot.production > snapshot.need or (
        snapshot.has_storage and snapshot.storage_level > 0
    )


def should_consider_startup(snapshot: NetworkSnapshot) -> bool:
    return snapshot.production < snapshot.need or (
        snapshot.has_storage and snapshot.storage_level < 1
    )


def _storage_allows_shutdown(snapshot: NetworkSnapshot, reading: EndpointReading) -> bool:
    broker = reading.broker
    # Without storage the level reads 0, so a zero upper target still lets
    # a run-on-batteries-only backup stop.
    return (
        (not snapshot.has_storage and not broker.run_on_batteries_only)
        or snapshot.storage_level >= broker.storage_target_range.high
    )


def _storage_allows_startup(snapshot: NetworkSnapshot, reading: EndpointReading) -> bool:
    if not snapshot.has_storage:
        return True
    return snapshot.storage_level <= reading.broker.storage_target_range.low


def shutdown_candidates(
    snapshot: NetworkSnapshot,
    now: int,
    minimum_on_time: int,
) -> list[EndpointReading]:
    """Running backups that may be stopped this evaluation."""
    surplus = snapshot.surplus
    return [
        r for r in snapshot.brokered()
        if r.current_production > 0
        and (r.current_production <= surplus or r.broker.run_on_batteries_only)
        and _storage_allows_shutdown(snapshot, r)
        and r.broker.can_stop(now, minimum_on_time)
    ]


def startup_candidates(snapshot: NetworkSnapshot) -> list[EndpointReading]:
    """Idle backups that may be started this evaluation."""
    return [
        r for r in snapshot.brokered()
        if r.is_idle
        and r.potential_production > 0
        and _storage_allows_startup(snapshot, r)
    ]


def shutdown_weight(reading: EndpointReading) -> float:
    """Smaller producers are stopped first."""
    return 1.0 / reading.current_production


def startup_weight(reading: EndpointReading) -> float:
    """Larger potential producers are started first."""
    return reading.potential_production
