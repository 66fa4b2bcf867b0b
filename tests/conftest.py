# Copyright (C) 2026 Linuxfabrik <info@linuxfabrik.ch>
#
# This program is free software; you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation; either version 2 of the License, or
# (at your option) any later version.
#
# On Debian systems, the complete text of the GNU General Public License
# version 2 can be found in /usr/share/common-licenses/GPL-2.
#
# SPDX-License-Identifier: GPL-2.0-or-later

"""Shared pytest fixtures for the audit engine tests."""

import ipaddress
from pathlib import Path

import pytest

import firewallaudit.core
from firewallaudit.audit import Inventory, NetworkInfo, ZoneInfo
from firewallaudit.core.objects import NetworkPurpose

FIXTURES_DIR = Path(__file__).parent / 'fixtures'


@pytest.fixture
def snapshot_path():
    return FIXTURES_DIR / 'snapshot.yml'


@pytest.fixture
def snapshot_db(snapshot_path):
    """InventoryDatabase loaded from the sample snapshot."""
    db = firewallaudit.core.InventoryDatabase()
    db.load(snapshot_path)
    return db


@pytest.fixture
def isolation_inventory():
    """Two isolated networks A (VLAN 10, zone Z1) and B (VLAN 20, zone Z2)."""
    return Inventory(
        zones=(
            ZoneInfo(id='Z1', key='internal', name='Internal'),
            ZoneInfo(id='Z2', key='dmz', name='DMZ'),
        ),
        networks=(
            NetworkInfo(
                id='net-a',
                name='A',
                vlan_id=10,
                subnet=ipaddress.ip_network('10.0.10.0/24'),
                firewall_zone_id='Z1',
                isolation_required=True,
                purpose=NetworkPurpose.Corporate,
            ),
            NetworkInfo(
                id='net-b',
                name='B',
                vlan_id=20,
                subnet=ipaddress.ip_network('10.0.20.0/24'),
                firewall_zone_id='Z2',
                isolation_required=True,
                purpose=NetworkPurpose.IoT,
            ),
        ),
    )
