"""Tests for local interface enumeration and ranking."""

import socket
from types import SimpleNamespace
from unittest.mock import patch

import pytest

from ctrlnet.network.interfaces import (
    classify_interface,
    interface_priority,
    list_interfaces,
    make_interface,
)
from ctrlnet.types.enums import InterfaceType


def _addr(family, address, netmask=None):
    return SimpleNamespace(family=family, address=address, netmask=netmask, broadcast=None)


class TestClassifyInterface:
    @pytest.mark.parametrize(
        ("name", "expected"),
        [
            ("lo", InterfaceType.LOOPBACK),
            ("lo0", InterfaceType.LOOPBACK),
            ("Loopback Pseudo-Interface 1", InterfaceType.LOOPBACK),
            ("eth0", InterfaceType.ETHERNET),
            ("en0", InterfaceType.ETHERNET),
            ("enp3s0", InterfaceType.ETHERNET),
            ("Local Area Connection", InterfaceType.ETHERNET),
            ("Local Area Connection 2", InterfaceType.ETHERNET),
            ("lo1", InterfaceType.LOOPBACK),
            ("lowpan0", InterfaceType.UNKNOWN),
            ("wlan0", InterfaceType.WIFI),
            ("wlp2s0", InterfaceType.WIFI),
            ("Wi-Fi", InterfaceType.WIFI),
            ("docker0", InterfaceType.VIRTUAL),
            ("veth1a2b", InterfaceType.VIRTUAL),
            ("br-5f3c", InterfaceType.VIRTUAL),
            ("virbr0", InterfaceType.VIRTUAL),
            ("vmnet8", InterfaceType.VIRTUAL),
            ("utun3", InterfaceType.VIRTUAL),
            ("tun0", InterfaceType.VIRTUAL),
            ("vEthernet (WSL)", InterfaceType.VIRTUAL),
            ("ppp0", InterfaceType.UNKNOWN),
        ],
    )
    def test_classify(self, name, expected):
        assert classify_interface(name) == expected


class TestInterfacePriority:
    def test_ordering(self):
        ethernet = interface_priority("eth1", InterfaceType.ETHERNET)
        wifi = interface_priority("wlan0", InterfaceType.WIFI)
        unknown = interface_priority("ppp0", InterfaceType.UNKNOWN)
        virtual = interface_priority("docker0", InterfaceType.VIRTUAL)
        loop = interface_priority("lo", InterfaceType.LOOPBACK)
        assert ethernet > wifi > unknown > virtual > loop

    def test_preferred_name_bonus(self):
        assert interface_priority("eth0", InterfaceType.ETHERNET) > interface_priority(
            "eth1", InterfaceType.ETHERNET
        )


class TestMakeInterface:
    def test_derived_fields(self):
        iface = make_interface("eth0", "192.168.1.37", "255.255.255.0", "aa:bb:cc:dd:ee:ff")
        assert iface.network == "192.168.1.0"
        assert iface.broadcast == "192.168.1.255"
        assert iface.type == InterfaceType.ETHERNET
        assert iface.prefix_length == 24

    def test_to_dict(self):
        data = make_interface("wlan0", "10.0.0.5", "255.0.0.0").to_dict()
        assert data["type"] == "wifi"
        assert data["broadcast"] == "10.255.255.255"
        assert data["mac"] == ""


class TestListInterfaces:
    def _patch(self, table):
        return patch("ctrlnet.network.interfaces.psutil.net_if_addrs", return_value=table)

    def test_ipv4_only_sorted_by_priority(self):
        table = {
            "docker0": [_addr(socket.AF_INET, "172.17.0.1", "255.255.0.0")],
            "eth0": [
                _addr(socket.AF_INET6, "fe80::1", "ffff:ffff:ffff:ffff::"),
                _addr(socket.AF_INET, "192.168.1.37", "255.255.255.0"),
            ],
            "wlan0": [_addr(socket.AF_INET, "10.0.0.5", "255.255.255.0")],
        }
        with self._patch(table):
            result = list_interfaces()
        assert [i.name for i in result] == ["eth0", "wlan0", "docker0"]
        assert all("." in i.address for i in result)

    def test_loopback_address_on_loopback_interface_kept(self):
        table = {"lo": [_addr(socket.AF_INET, "127.0.0.1", "255.0.0.0")]}
        with self._patch(table):
            result = list_interfaces()
        assert len(result) == 1
        assert result[0].type == InterfaceType.LOOPBACK

    def test_loopback_address_on_other_interface_skipped(self):
        table = {"eth9": [_addr(socket.AF_INET, "127.0.1.1", "255.0.0.0")]}
        with self._patch(table):
            assert list_interfaces() == []

    def test_mac_from_link_layer(self):
        table = {
            "eth0": [
                _addr(socket.AF_INET, "192.168.1.37", "255.255.255.0"),
                _addr(-1, "AA-BB-CC-DD-EE-FF"),
            ]
        }
        with (
            self._patch(table),
            patch("ctrlnet.network.interfaces.psutil.AF_LINK", -1),
        ):
            result = list_interfaces()
        assert result[0].mac == "aa:bb:cc:dd:ee:ff"

    def test_address_without_netmask_skipped(self):
        table = {"eth0": [_addr(socket.AF_INET, "192.168.1.37", None)]}
        with self._patch(table):
            assert list_interfaces() == []

    def test_windows_wired_adapter_kept(self):
        table = {
            "Local Area Connection": [_addr(socket.AF_INET, "192.168.1.37", "255.255.255.0")],
            "Loopback Pseudo-Interface 1": [_addr(socket.AF_INET, "127.0.0.1", "255.0.0.0")],
        }
        with self._patch(table):
            result = list_interfaces()
        assert [i.name for i in result] == [
            "Local Area Connection",
            "Loopback Pseudo-Interface 1",
        ]
        assert result[0].type == InterfaceType.ETHERNET
        assert result[0].priority > interface_priority("eth1", InterfaceType.ETHERNET)
