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

"""Immutable inventory snapshot consumed by the audit engine."""

from __future__ import annotations

import dataclasses
import functools
import ipaddress
import itertools
import logging

import sqlalchemy

from firewallaudit.core import objects
from firewallaudit.core.objects import NetworkPurpose

from ._normalizer import RuleNormalizer
from ._rule import Rule
from ._specs import IPNetwork

logger = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True, slots=True)
class ZoneInfo:
    id: str
    key: str = ''
    name: str = ''


@dataclasses.dataclass(frozen=True, slots=True)
class NetworkInfo:
    id: str
    name: str = ''
    vlan_id: int | None = None
    subnet: IPNetwork | None = None
    firewall_zone_id: str | None = None
    isolation_required: bool = False
    purpose: NetworkPurpose = NetworkPurpose.Unknown


@dataclasses.dataclass(frozen=True, slots=True)
class RequiredPath:
    """Traffic that must stay allowed from *network_id*.

    The source dimension of *predicate* is replaced by the network itself
    when the path is checked.
    """

    name: str
    network_id: str
    predicate: Rule
    description: str = ''


@dataclasses.dataclass(frozen=True)
class Inventory:
    zones: tuple[ZoneInfo, ...] = ()
    networks: tuple[NetworkInfo, ...] = ()
    required_paths: tuple[RequiredPath, ...] = ()

    @functools.cached_property
    def _zones_by_id(self) -> dict[str, ZoneInfo]:
        return {z.id: z for z in self.zones}

    @functools.cached_property
    def _networks_by_id(self) -> dict[str, NetworkInfo]:
        return {n.id: n for n in self.networks}

    @property
    def zone_ids(self) -> frozenset[str]:
        return frozenset(self._zones_by_id)

    @property
    def network_ids(self) -> frozenset[str]:
        return frozenset(self._networks_by_id)

    def zone(self, zone_id: str | None) -> ZoneInfo | None:
        return self._zones_by_id.get(zone_id)

    def zone_by_key(self, key: str) -> ZoneInfo | None:
        for zone in self.zones:
            if zone.key == key:
                return zone
        return None

    def network(self, network_id: str | None) -> NetworkInfo | None:
        return self._networks_by_id.get(network_id)

    @functools.cached_property
    def isolation_pairs(self) -> tuple[tuple[NetworkInfo, NetworkInfo], ...]:
        """Unordered network pairs that must not reach each other.

        At least one side requires isolation, and the two sit in different
        zones or different VLANs.
        """
        pairs = []
        for a, b in itertools.combinations(self.networks, 2):
            if not (a.isolation_required or b.isolation_required):
                continue
            if a.firewall_zone_id == b.firewall_zone_id and a.vlan_id == b.vlan_id:
                continue
            pairs.append((a, b))
        return tuple(pairs)


def _parse_subnet(network_id, value):
    if not value:
        return None
    try:
        return ipaddress.ip_network(value, strict=False)
    except ValueError:
        logger.warning('Network %s: ignoring invalid subnet %r', network_id, value)
        return None


def _parse_purpose(network_id, value):
    try:
        return NetworkPurpose(value)
    except ValueError:
        logger.warning('Network %s: unknown purpose %r', network_id, value)
        return NetworkPurpose.Unknown


def load_inventory(db, settings=None) -> Inventory:
    """Export the inventory held by an InventoryDatabase to an Inventory.

    Required path predicates are normalized here, so a malformed predicate
    raises RuleStructureError like any other rule.
    """
    with db.session() as session:
        zones = tuple(
            ZoneInfo(id=z.id, key=z.key, name=z.name)
            for z in session.scalars(
                sqlalchemy.select(objects.Zone).order_by(objects.Zone.id),
            )
        )
        networks = tuple(
            NetworkInfo(
                id=n.id,
                name=n.name,
                vlan_id=n.vlan_id,
                subnet=_parse_subnet(n.id, n.subnet),
                firewall_zone_id=n.firewall_zone_id,
                isolation_required=n.isolation_required,
                purpose=_parse_purpose(n.id, n.purpose),
            )
            for n in session.scalars(
                sqlalchemy.select(objects.Network).order_by(objects.Network.id),
            )
        )
        raw_paths = [
            (p.name, p.network_id, p.description, dict(p.predicate or {}))
            for p in session.scalars(
                sqlalchemy.select(objects.RequiredPathRecord).order_by(
                    objects.RequiredPathRecord.id,
                ),
            )
        ]

    inventory = Inventory(zones=zones, networks=networks)
    normalizer = RuleNormalizer(inventory, settings)
    paths = tuple(
        RequiredPath(
            name=name,
            network_id=network_id,
            predicate=normalizer.normalize_predicate(predicate, name=name),
            description=description,
        )
        for name, network_id, description, predicate in raw_paths
    )
    return dataclasses.replace(inventory, required_paths=paths)
