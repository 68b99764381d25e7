"""Tests for powerbroker.broker.registry and powerbroker.broker.lifecycle."""

from __future__ import annotations

import logging

import pytest

from powerbroker.broker.generator_broker import GeneratorBroker
from powerbroker.broker.lifecycle import DetachReason, attach, check_host, detach, reattach
from powerbroker.broker.registry import BrokerRegistry, RegistryError
from powerbroker.schemas.broker import BrokerConfig
from powerbroker.simulation.host import SimConsumer, SimGenerator, SimHost


# ======================================================================
# Helpers
# ======================================================================


def _two_network_host() -> SimHost:
    """Networks "north" (g1, g2) and "south" (g3)."""
    host = SimHost()
    host.add_network("north")
    host.add_network("south")
    host.add("north", SimGenerator("g1", rated_output=100.0))
    host.add("north", SimGenerator("g2", rated_output=50.0))
    host.add("south", SimGenerator("g3", rated_output=75.0))
    return host


def _error_records(caplog, code: RegistryError) -> list[logging.LogRecord]:
    return [r for r in caplog.records if getattr(r, "code", None) == code]


# ======================================================================
# Membership
# ======================================================================


class TestMembership:
    """Register / deregister semantics."""

    def test_register_and_contains(self, registry):
        host = _two_network_host()
        broker = GeneratorBroker.try_bind(host, "g1")
        registry.register(broker)
        assert broker in registry
        assert len(registry) == 1
        assert registry.get("g1") is broker

    def test_duplicate_register_is_reported_once(self, registry, caplog):
        host = _two_network_host()
        broker = GeneratorBroker.try_bind(host, "g1")
        registry.register(broker)
        registry.register(broker)
        registry.register(broker)
        assert len(registry) == 1
        assert len(_error_records(caplog, RegistryError.DUPLICATE_INSERT)) == 1

    def test_register_none_is_reported(self, registry, caplog):
        registry.register(None)
        assert len(registry) == 0
        assert len(_error_records(caplog, RegistryError.NULL_INSERT)) == 1

    def test_force_regroup_replaces_entry(self, registry, caplog):
        host = _two_network_host()
        broker = GeneratorBroker.try_bind(host, "g1")
        registry.register(broker)
        registry.register(broker, force_regroup=True)
        assert len(registry) == 1
        assert broker in registry
        assert not _error_records(caplog, RegistryError.DUPLICATE_INSERT)

    def test_force_regroup_drops_stale_twin(self, registry):
        """A second broker object with the same identity takes the slot."""
        host = _two_network_host()
        old = GeneratorBroker.try_bind(host, "g1")
        new = GeneratorBroker.try_bind(host, "g1")
        registry.register(old)
        registry.register(new, force_regroup=True)
        assert len(registry) == 1
        assert new in registry
        assert old not in registry

    def test_deregister(self, registry):
        host = _two_network_host()
        broker = GeneratorBroker.try_bind(host, "g1")
        registry.register(broker)
        registry.deregister(broker)
        assert len(registry) == 0
        assert broker not in registry

    def test_deregister_absent_logs_but_does_not_raise(self, registry, caplog):
        """Removing an unregistered broker logs an error and changes nothing."""
        host = _two_network_host()
        registered = GeneratorBroker.try_bind(host, "g1")
        stranger = GeneratorBroker.try_bind(host, "g2")
        registry.register(registered)

        registry.deregister(stranger)

        assert len(registry) == 1
        records = _error_records(caplog, RegistryError.ABSENT_REMOVE)
        assert len(records) == 1
        assert records[0].levelno == logging.ERROR

    def test_deregister_none_is_reported(self, registry, caplog):
        registry.deregister(None)
        assert len(_error_records(caplog, RegistryError.NULL_REMOVE)) == 1

    def test_domains_are_independent(self):
        host = _two_network_host()
        map_a = BrokerRegistry("a")
        map_b = BrokerRegistry("b")
        map_a.register(GeneratorBroker.try_bind(host, "g1"))
        assert len(map_a) == 1
        assert len(map_b) == 0


# ======================================================================
# Grouping
# ======================================================================


class TestGrouping:
    """group_by_network resolves networks afresh on every call."""

    def test_groups_by_network(self, registry):
        host = _two_network_host()
        for host_id in ("g1", "g2", "g3"):
            registry.register(GeneratorBroker.try_bind(host, host_id))

        groups = registry.group_by_network()
        assert set(groups) == {"north", "south"}
        assert {b.broker_id for b in groups["north"].brokers} == {"g1", "g2"}
        assert [b.broker_id for b in groups["south"].brokers] == ["g3"]
        assert groups["north"].network_id == "north"

    def test_unresolvable_brokers_are_skipped(self, registry):
        host = _two_network_host()
        for host_id in ("g1", "g2", "g3"):
            registry.register(GeneratorBroker.try_bind(host, host_id))

        host.disconnect("g3")
        host.remove("g2")

        groups = registry.group_by_network()
        assert set(groups) == {"north"}
        assert [b.broker_id for b in groups["north"].brokers] == ["g1"]
        assert len(registry) == 3

    def test_rewiring_moves_broker(self, registry):
        host = _two_network_host()
        registry.register(GeneratorBroker.try_bind(host, "g1"))
        host.move("g1", "south")
        groups = registry.group_by_network()
        assert set(groups) == {"south"}


# ======================================================================
# Teardown
# ======================================================================


class TestTeardown:
    """Teardown never stops half-way."""

    def test_teardown_empties_registry(self, registry):
        host = _two_network_host()
        for host_id in ("g1", "g2"):
            registry.register(GeneratorBroker.try_bind(host, host_id))
        registry.teardown()
        assert len(registry) == 0
        assert registry.closed

    def test_teardown_survives_failures(self, registry, caplog, monkeypatch):
        host = _two_network_host()
        for host_id in ("g1", "g2", "g3"):
            registry.register(GeneratorBroker.try_bind(host, host_id))

        real_deregister = registry.deregister

        def flaky(broker):
            if broker.broker_id == "g1":
                raise RuntimeError("map already gone")
            real_deregister(broker)

        monkeypatch.setattr(registry, "deregister", flaky)
        registry.teardown()

        assert len(registry) == 0
        assert registry.closed
        failures = [r for r in caplog.records if r.exc_info]
        assert len(failures) == 1
        assert "g1" in failures[0].getMessage()

    def test_register_after_teardown_is_rejected(self, registry, caplog):
        host = _two_network_host()
        registry.teardown()

        registry.register(GeneratorBroker.try_bind(host, "g1"))
        registry.register(GeneratorBroker.try_bind(host, "g2"))

        assert len(registry) == 0
        assert registry.get("g1") is None
        assert len(_error_records(caplog, RegistryError.INSERT_AFTER_TEARDOWN)) == 1


# ======================================================================
# Lifecycle
# ======================================================================


class TestLifecycle:
    """Host attach/detach notifications."""

    def test_attach_registers(self, registry):
        host = _two_network_host()
        broker = attach(registry, host, "g1")
        assert broker is not None
        assert broker in registry

    def test_attach_to_consumer_is_refused(self, registry):
        host = _two_network_host()
        host.add("north", SimConsumer("lamp", demand=5.0))
        assert attach(registry, host, "lamp") is None
        assert len(registry) == 0

    def test_attach_restores_config(self, registry):
        host = _two_network_host()
        config = BrokerConfig(storage_target_range=(0.4, 0.6), run_on_batteries_only=False)
        broker = attach(registry, host, "g1", broker_id="attachment-1", config=config)
        assert broker.broker_id == "attachment-1"
        assert broker.storage_target_range.as_tuple() == (0.4, 0.6)
        assert registry.get("attachment-1") is broker

    def test_reattach_after_rebuild(self, registry):
        host = _two_network_host()
        broker = attach(registry, host, "g1")
        host.replace("g1", "south", SimGenerator("g1-rebuilt", rated_output=120.0))

        assert reattach(registry, broker, "g1-rebuilt")
        assert broker.host_id == "g1-rebuilt"
        assert len(registry) == 1
        assert set(registry.group_by_network()) == {"south"}

    def test_reattach_to_non_generator_fails(self, registry):
        host = _two_network_host()
        broker = attach(registry, host, "g1")
        host.add("north", SimConsumer("lamp", demand=5.0))
        assert not reattach(registry, broker, "lamp")
        assert broker.host_id == "g1"

    def test_detach_swallows_errors(self, registry, caplog, monkeypatch):
        host = _two_network_host()
        broker = attach(registry, host, "g1")

        def boom(_broker):
            raise RuntimeError("half torn down")

        monkeypatch.setattr(registry, "deregister", boom)
        detach(registry, broker)
        assert any(r.exc_info for r in caplog.records)

    def test_check_host_keeps_live_broker(self, registry):
        host = _two_network_host()
        broker = attach(registry, host, "g1")
        assert check_host(registry, broker)
        assert broker in registry

    def test_check_host_detaches_orphan(self, registry, caplog):
        host = _two_network_host()
        broker = attach(registry, host, "g1")
        host.remove("g1")

        with caplog.at_level(logging.WARNING):
            assert not check_host(registry, broker, host.replacement_for("g1"))
        assert broker not in registry
        assert any("generator is gone" in r.getMessage() for r in caplog.records)

    def test_check_host_follows_replacement(self, registry):
        host = _two_network_host()
        broker = attach(registry, host, "g1")
        host.replace("g1", "north", SimGenerator("g1b", rated_output=90.0))

        assert check_host(registry, broker, host.replacement_for("g1"))
        assert broker.host_id == "g1b"
        assert broker in registry

    @pytest.mark.parametrize("reason", list(DetachReason))
    def test_detach_removes(self, registry, reason):
        host = _two_network_host()
        broker = attach(registry, host, "g1")
        detach(registry, broker, reason)
        assert len(registry) == 0
