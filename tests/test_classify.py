from __future__ import annotations

import re

import pytest

import az_netgraph.classify as classify
from az_netgraph.classify import (
    HopPattern,
    HopPatternRegistry,
    classify_hop,
    default_registry,
    get_hop_registry,
    match_canonical,
    match_hop,
    register_hop_pattern,
)
from az_netgraph.util.errors import UnrecognizedHopResourceId

PREFIX = "/subscriptions/s/resourceGroups/g"
NIC = f"{PREFIX}/providers/Microsoft.Network/networkInterfaces/nic1"
GW = f"{PREFIX}/providers/Microsoft.Network/virtualNetworkGateways/gw1"


def test_classify_internet_sentinel() -> None:
    found = classify_hop("Internet")

    assert (found.resource_type, found.name, found.resource_id) == ("Internet", "Internet", "Internet")
    assert found.is_internet


def test_classify_nic_ip_configuration_truncates_to_nic() -> None:
    found = classify_hop(f"{NIC}/ipConfigurations/ipconfig1")

    assert found.resource_type == "networkInterfaces"
    assert found.name == "nic1"
    assert found.resource_id == NIC
    assert found.resource_id.endswith("/networkInterfaces/nic1")


def test_classify_nic_with_elided_prefix() -> None:
    found = classify_hop(".../providers/Microsoft.Network/networkInterfaces/nic1/ipConfigurations/ipconfig1")

    assert found.resource_type == "networkInterfaces"
    assert found.name == "nic1"
    assert found.resource_id == ".../providers/Microsoft.Network/networkInterfaces/nic1"


def test_classify_virtual_network_gateway_keeps_id() -> None:
    found = classify_hop(GW)

    assert found.resource_type == "virtualNetworkGateways"
    assert found.name == "gw1"
    assert found.resource_id == GW


def test_classify_storage_account_is_unrecognized() -> None:
    raw = "/subscriptions/x/resourceGroups/y/providers/Microsoft.Storage/storageAccounts/a"
    with pytest.raises(UnrecognizedHopResourceId) as excinfo:
        classify_hop(raw)
    assert excinfo.value.resource_id == raw


def test_bare_nic_is_not_a_hop_but_is_canonical() -> None:
    assert match_hop(NIC) is None
    found = match_canonical(NIC)
    assert found is not None
    assert found.resource_type == "networkInterfaces"
    assert found.resource_id == NIC


def test_internet_is_case_sensitive_sentinel() -> None:
    assert match_hop("internet") is None


def test_canonical_match_does_not_accept_sub_resource_paths() -> None:
    assert match_canonical(f"{NIC}/ipConfigurations/c1") is None
    assert match_canonical("Internet") is not None


def test_registry_extension_adds_type_without_touching_defaults() -> None:
    registry = default_registry()
    base = rf"(?P<id>.*/providers/Microsoft\.Network/loadBalancers/(?P<name>[^/]+))"
    registry.register(
        HopPattern(
            resource_type="loadBalancers",
            hop_pattern=re.compile(rf"^{base}/frontendIPConfigurations/.+$", re.IGNORECASE),
            canonical_pattern=re.compile(rf"^{base}$", re.IGNORECASE),
            link_source=False,
        )
    )
    raw = f"{PREFIX}/providers/Microsoft.Network/loadBalancers/lb1/frontendIPConfigurations/fe"

    found = classify_hop(raw, registry)

    assert found.resource_type == "loadBalancers"
    assert found.name == "lb1"
    assert found.link_source is False
    assert registry.resource_types() == ["networkInterfaces", "virtualNetworkGateways", "loadBalancers"]
    # Global registry is untouched.
    assert "loadBalancers" not in get_hop_registry().resource_types()


def test_registry_unregister() -> None:
    registry = default_registry()
    registry.unregister("virtualNetworkGateways")

    assert classify_hop(f"{NIC}/ipConfigurations/c1", registry).name == "nic1"
    with pytest.raises(UnrecognizedHopResourceId):
        classify_hop(GW, registry)


def test_empty_registry_only_knows_internet() -> None:
    registry = HopPatternRegistry()

    assert classify_hop("Internet", registry).is_internet
    with pytest.raises(UnrecognizedHopResourceId):
        classify_hop(GW, registry)


def test_internet_and_default_types_link_source_flags() -> None:
    assert classify_hop("Internet").link_source is False
    assert classify_hop(GW).link_source is True
    assert classify_hop(f"{NIC}/ipConfigurations/c1").link_source is True


def test_register_hop_pattern_extends_global_registry(monkeypatch) -> None:
    monkeypatch.setattr(classify, "_global_registry", default_registry())
    base = rf"(?P<id>.*/providers/Microsoft\.Network/azureFirewalls/(?P<name>[^/]+))"
    register_hop_pattern(
        HopPattern(
            resource_type="azureFirewalls",
            hop_pattern=re.compile(rf"^{base}$", re.IGNORECASE),
            canonical_pattern=re.compile(rf"^{base}$", re.IGNORECASE),
        )
    )
    fw = f"{PREFIX}/providers/Microsoft.Network/azureFirewalls/fw1"

    found = classify_hop(fw)

    assert found.resource_type == "azureFirewalls"
    assert found.name == "fw1"
    assert match_canonical(fw) == found
    assert get_hop_registry().resource_types()[-1] == "azureFirewalls"
