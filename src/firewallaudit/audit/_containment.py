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

"""Predicate containment engine.

``contains(a, b)`` is true iff every packet matched by *b* is also matched
by *a*; ``intersects(a, b)`` is true iff some packet matches both. Both
are computed dimension by dimension over canonical rules: zone pair,
protocol, source, destination, ports, ICMP type and web domains. A rule
predicate is the product of its dimensions, so containment holds overall
only if it holds in every dimension, and likewise for intersection.

An empty spec (``Include`` of nothing) matches nothing: it contains only
another empty spec and intersects nothing. Specs of different entity
kinds, or CIDR specs of different address families, are not comparable:
neither contains nor intersects the other unless one side is Any.
"""

from __future__ import annotations

import ipaddress

from firewallaudit.core.objects import EntityKind, Protocol, SpecMode

from ._rule import Rule
from ._specs import (
    PORT_UNIVERSE,
    UNIVERSE,
    EntitySpec,
    PortSpec,
    complement_ranges,
    merge_ranges,
    ranges_cover,
    ranges_overlap,
)

# Dimensions compared when deciding whether an allow is a deliberate carve-out.
NARROWING_DIMENSIONS = ('source', 'destination', 'source_ports', 'destination_ports')


def zone_contains(a: str | None, b: str | None) -> bool:
    if a is None:
        return True
    return a == b


def zone_intersects(a: str | None, b: str | None) -> bool:
    return a is None or b is None or a == b


def protocol_contains(a: Protocol, b: Protocol, a_name: str = '', b_name: str = '') -> bool:
    if a == Protocol.Any:
        return True
    if b == Protocol.Any:
        return False
    if a == Protocol.Other or b == Protocol.Other:
        return a == b and a_name == b_name
    if a == b:
        return True
    return a == Protocol.TCP_UDP and b in (Protocol.TCP, Protocol.UDP)


def protocol_intersects(a: Protocol, b: Protocol, a_name: str = '', b_name: str = '') -> bool:
    if Protocol.Any in (a, b):
        return True
    if a == Protocol.Other or b == Protocol.Other:
        return a == b and a_name == b_name
    if a == b:
        return True
    return {a, b} in ({Protocol.TCP_UDP, Protocol.TCP}, {Protocol.TCP_UDP, Protocol.UDP})


def _comparable(a: EntitySpec, b: EntitySpec) -> bool:
    if a.kind != b.kind:
        return False
    if a.kind == EntityKind.CIDR:
        return a.family == b.family
    return True


def _items_cover(kind: EntityKind, outer, inner) -> bool:
    """True if the set described by *inner* is a subset of *outer*."""
    if kind == EntityKind.CIDR:
        return all(
            any(i.subnet_of(o) for o in outer)
            for i in inner
        )
    return set(inner) <= set(outer)


def _items_overlap(kind: EntityKind, a, b) -> bool:
    if kind == EntityKind.CIDR:
        return any(x.overlaps(y) for x in a for y in b)
    return not set(a).isdisjoint(b)


def _items_span_universe(kind: EntityKind, items) -> bool:
    """True if *items* cover every possible entity of *kind*.

    Only CIDR sets have a bounded universe.
    """
    if kind != EntityKind.CIDR or not items:
        return False
    collapsed = tuple(ipaddress.collapse_addresses(items))
    return collapsed == (UNIVERSE[collapsed[0].version],)


def entity_contains(a: EntitySpec, b: EntitySpec) -> bool:
    if a.is_empty or b.is_empty:
        return a.is_empty and b.is_empty
    if a.is_any:
        return True
    if b.is_any or not _comparable(a, b):
        return False

    kind = a.kind
    match (a.mode, b.mode):
        case (SpecMode.Include, SpecMode.Include):
            return _items_cover(kind, a.items, b.items)
        case (SpecMode.Include, SpecMode.Exclude):
            return a.is_universe
        case (SpecMode.Exclude, SpecMode.Include):
            return not _items_overlap(kind, a.items, b.items)
        case (SpecMode.Exclude, SpecMode.Exclude):
            return _items_cover(kind, b.items, a.items)
    return False


def entity_intersects(a: EntitySpec, b: EntitySpec) -> bool:
    if a.is_empty or b.is_empty:
        return False
    if a.is_any or b.is_any:
        return True
    if not _comparable(a, b):
        return False

    kind = a.kind
    match (a.mode, b.mode):
        case (SpecMode.Include, SpecMode.Include):
            return _items_overlap(kind, a.items, b.items)
        case (SpecMode.Include, SpecMode.Exclude):
            return not _items_cover(kind, b.items, a.items)
        case (SpecMode.Exclude, SpecMode.Include):
            return not _items_cover(kind, a.items, b.items)
        case (SpecMode.Exclude, SpecMode.Exclude):
            return not _items_span_universe(kind, a.items + b.items)
    return False


def port_contains(a: PortSpec, b: PortSpec) -> bool:
    if a.is_empty or b.is_empty:
        return a.is_empty and b.is_empty
    if a.is_any:
        return True
    if b.is_any:
        return False

    match (a.mode, b.mode):
        case (SpecMode.Include, SpecMode.Include):
            return ranges_cover(a.ranges, b.ranges)
        case (SpecMode.Include, SpecMode.Exclude):
            return ranges_cover(a.ranges, complement_ranges(b.ranges))
        case (SpecMode.Exclude, SpecMode.Include):
            return not ranges_overlap(a.ranges, b.ranges)
        case (SpecMode.Exclude, SpecMode.Exclude):
            return ranges_cover(b.ranges, a.ranges)
    return False


def port_intersects(a: PortSpec, b: PortSpec) -> bool:
    if a.is_empty or b.is_empty:
        return False
    if a.is_any or b.is_any:
        return True

    match (a.mode, b.mode):
        case (SpecMode.Include, SpecMode.Include):
            return ranges_overlap(a.ranges, b.ranges)
        case (SpecMode.Include, SpecMode.Exclude):
            return not ranges_cover(b.ranges, a.ranges)
        case (SpecMode.Exclude, SpecMode.Include):
            return not ranges_cover(a.ranges, b.ranges)
        case (SpecMode.Exclude, SpecMode.Exclude):
            return merge_ranges(a.ranges + b.ranges) != PORT_UNIVERSE
    return False


def icmp_contains(a: str | None, b: str | None) -> bool:
    if a is None:
        return True
    return b is not None and a.upper() == b.upper()


def icmp_intersects(a: str | None, b: str | None) -> bool:
    return a is None or b is None or a.upper() == b.upper()


def domains_contains(a: frozenset[str] | None, b: frozenset[str] | None) -> bool:
    if a is None:
        return True
    return b is not None and b <= a


def _domain_related(x: str, y: str) -> bool:
    return x == y or x.endswith('.' + y) or y.endswith('.' + x)


def domains_intersects(a: frozenset[str] | None, b: frozenset[str] | None) -> bool:
    if a is None or b is None:
        return True
    return any(_domain_related(x, y) for x in a for y in b)


def contains(a: Rule, b: Rule) -> bool:
    """True iff every packet matched by *b* is also matched by *a*."""
    return (
        zone_contains(a.source_zone_id, b.source_zone_id)
        and zone_contains(a.destination_zone_id, b.destination_zone_id)
        and protocol_contains(a.protocol, b.protocol, a.protocol_name, b.protocol_name)
        and entity_contains(a.source, b.source)
        and entity_contains(a.destination, b.destination)
        and port_contains(a.source_ports, b.source_ports)
        and port_contains(a.destination_ports, b.destination_ports)
        and icmp_contains(a.icmp_type, b.icmp_type)
        and domains_contains(a.web_domains, b.web_domains)
    )


def intersects(a: Rule, b: Rule) -> bool:
    """True iff some packet is matched by both *a* and *b*."""
    return (
        zone_intersects(a.source_zone_id, b.source_zone_id)
        and zone_intersects(a.destination_zone_id, b.destination_zone_id)
        and protocol_intersects(a.protocol, b.protocol, a.protocol_name, b.protocol_name)
        and entity_intersects(a.source, b.source)
        and entity_intersects(a.destination, b.destination)
        and port_intersects(a.source_ports, b.source_ports)
        and port_intersects(a.destination_ports, b.destination_ports)
        and icmp_intersects(a.icmp_type, b.icmp_type)
        and domains_intersects(a.web_domains, b.web_domains)
    )


def narrower_dimensions(a: Rule, b: Rule) -> tuple[str, ...]:
    """Address and port dimensions in which *b* is strictly narrower than *a*."""
    checks = {
        'source': entity_contains,
        'destination': entity_contains,
        'source_ports': port_contains,
        'destination_ports': port_contains,
    }
    narrower = []
    for dim in NARROWING_DIMENSIONS:
        check = checks[dim]
        x, y = getattr(a, dim), getattr(b, dim)
        if check(x, y) and not check(y, x):
            narrower.append(dim)
    return tuple(narrower)
