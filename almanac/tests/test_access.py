"""Tests for single-administrator access control."""
import pytest

from almanac.errors import InvalidTarget, RegistryNotDeployed, Unauthorized
from almanac.identity import NULL_ADDRESS
from almanac.models import EventName
from almanac.registry import PeriodRegistry

from conftest import make_principal


class TestInitialization:
    def test_administrator_equals_initializer(self, registry, admin):
        assert registry.administrator == admin["address"]

    def test_initializer_accepts_0x_prefix_and_case(self, store):
        principal = make_principal()
        registry = PeriodRegistry.deploy(store, "0x" + principal["address"].upper())
        assert registry.administrator == principal["address"]

    def test_genesis_event(self, registry, admin):
        events = registry.events.list_events()
        assert len(events) == 1
        assert events[0].name == EventName.CONTROL_TRANSFERRED
        assert events[0].args == {"old_holder": NULL_ADDRESS, "new_holder": admin["address"]}

    def test_deploy_twice_rejected(self, registry, store, outsider):
        with pytest.raises(ValueError):
            PeriodRegistry.deploy(store, outsider["address"])
        assert registry.administrator != outsider["address"]

    def test_undeployed_store(self, store):
        with pytest.raises(RegistryNotDeployed):
            PeriodRegistry.open(store)
        registry = PeriodRegistry(store)
        with pytest.raises(RegistryNotDeployed):
            _ = registry.administrator

    def test_open_existing(self, registry, store, admin):
        reopened = PeriodRegistry.open(store.db_path)
        assert reopened.administrator == admin["address"]


class TestTransferControl:
    def test_transfer_by_holder(self, registry, admin, outsider):
        assert registry.transfer_control(admin["address"], outsider["address"]) is True
        assert registry.administrator == outsider["address"]

        last = registry.events.list_events()[-1]
        assert last.name == EventName.CONTROL_TRANSFERRED
        assert last.args == {"old_holder": admin["address"], "new_holder": outsider["address"]}

    def test_former_holder_cannot_retry(self, registry, admin, outsider):
        registry.transfer_control(admin["address"], outsider["address"])
        with pytest.raises(Unauthorized):
            registry.transfer_control(admin["address"], outsider["address"])
        assert registry.administrator == outsider["address"]

    def test_new_holder_can_commit_and_old_cannot(self, registry, admin, outsider):
        registry.transfer_control(admin["address"], outsider["address"])
        assert registry.commit(outsider["address"], "2025Q1", b"\x01" * 32, "", 1)
        with pytest.raises(Unauthorized):
            registry.commit(admin["address"], "2025Q1", b"\x02" * 32, "", 2)

    @pytest.mark.parametrize("target", [None, "", NULL_ADDRESS, "0x" + NULL_ADDRESS])
    def test_transfer_to_null_rejected(self, registry, admin, target):
        events_before = registry.events.count()
        with pytest.raises(InvalidTarget):
            registry.transfer_control(admin["address"], target)
        assert registry.administrator == admin["address"]
        assert registry.events.count() == events_before

    def test_null_transfer_by_outsider_fails_unchanged(self, registry, admin, outsider):
        with pytest.raises(Unauthorized):
            registry.transfer_control(outsider["address"], NULL_ADDRESS)
        assert registry.administrator == admin["address"]

    def test_transfer_by_outsider_rejected(self, registry, admin, outsider):
        events_before = registry.events.count()
        with pytest.raises(Unauthorized):
            registry.transfer_control(outsider["address"], outsider["address"])
        assert registry.administrator == admin["address"]
        assert registry.events.count() == events_before

    @pytest.mark.parametrize("caller", [None, "", "not-an-address", NULL_ADDRESS])
    def test_garbage_callers_unauthorized(self, registry, outsider, caller):
        with pytest.raises(Unauthorized):
            registry.transfer_control(caller, outsider["address"])

    def test_malformed_target_is_value_error(self, registry, admin):
        with pytest.raises(ValueError):
            registry.transfer_control(admin["address"], "zz" * 20)
        assert registry.administrator == admin["address"]

    def test_transfer_to_self_allowed(self, registry, admin):
        assert registry.transfer_control(admin["address"], admin["address"]) is True
        assert registry.administrator == admin["address"]
