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

"""Reachability queries between inventory networks."""

from __future__ import annotations

from firewallaudit.core.objects import EntityKind, RuleAction

from ._containment import intersects
from ._inventory import NetworkInfo
from ._rule import Rule
from ._specs import EntitySpec


def network_spec(network: NetworkInfo, like: EntitySpec) -> EntitySpec:
    """The spec selecting *network*, in the representation *like* uses.

    CIDR rules are queried with the network's subnet and all other rules
    with its id. A network without a subnet, or a MAC-based rule, yields
    the empty set: the rule cannot be shown to cover the network.
    """
    match like.kind:
        case EntityKind.CIDR:
            if network.subnet is None:
                return EntitySpec.empty(EntityKind.CIDR)
            return EntitySpec.include(EntityKind.CIDR, [network.subnet])
        case EntityKind.MAC:
            return EntitySpec.empty(EntityKind.MAC)
    return EntitySpec.include(EntityKind.Network, [network.id])


def pair_query(rule: Rule, src: NetworkInfo, dst: NetworkInfo) -> Rule:
    """Any traffic from *src* to *dst*, shaped to be compared with *rule*."""
    return Rule(
        id=f'{src.id}->{dst.id}',
        ruleset=rule.ruleset,
        order=0,
        action=RuleAction.Allow,
        source_zone_id=src.firewall_zone_id,
        destination_zone_id=dst.firewall_zone_id,
        source=network_spec(src, rule.source),
        destination=network_spec(dst, rule.destination),
    )


def reaches(rule: Rule, src: NetworkInfo, dst: NetworkInfo) -> bool:
    """True if *rule* matches some traffic from *src* to *dst*."""
    return intersects(rule, pair_query(rule, src, dst))
