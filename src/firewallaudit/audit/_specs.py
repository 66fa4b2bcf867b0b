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

"""Canonical match specifications: EntitySpec and PortSpec.

Both are tagged variants ``Any | Include(items) | Exclude(items)`` kept in
canonical form on construction, so two specs describing the same set are
equal and containment checks never see differently-expressed duplicates:

- CIDR items are collapsed (sorted, deduplicated, adjacent blocks merged).
- MAC items are lower-cased and colon separated.
- Network ids are deduplicated and sorted.
- Port ranges are sorted and merged when overlapping or adjacent.

``Exclude`` of nothing is ``Any``; ``Include`` of nothing is the empty set.
"""

from __future__ import annotations

import dataclasses
import ipaddress
import re

from firewallaudit.core.objects import EntityKind, SpecMode

PORT_MIN = 1
PORT_MAX = 65535
PORT_UNIVERSE = ((PORT_MIN, PORT_MAX),)

IPNetwork = ipaddress.IPv4Network | ipaddress.IPv6Network

UNIVERSE = {
    4: ipaddress.IPv4Network('0.0.0.0/0'),
    6: ipaddress.IPv6Network('::/0'),
}

_MAC_RE = re.compile(r'^[0-9a-f]{12}$')


def normalize_mac(value: str) -> str:
    """Return *value* as ``aa:bb:cc:dd:ee:ff`` or raise ValueError."""
    digits = re.sub(r'[^0-9a-fA-F]', '', str(value)).lower()
    if not _MAC_RE.match(digits) or len(re.sub(r'[-:. ]', '', str(value))) != 12:
        raise ValueError(f'invalid MAC address {value!r}')
    return ':'.join(digits[i:i + 2] for i in range(0, 12, 2))


def _canonical_items(kind: EntityKind, items) -> tuple:
    match kind:
        case EntityKind.CIDR:
            networks = [
                n if isinstance(n, (ipaddress.IPv4Network, ipaddress.IPv6Network))
                else ipaddress.ip_network(n, strict=False)
                for n in items
            ]
            if len({n.version for n in networks}) > 1:
                raise ValueError('mixed IPv4 and IPv6 blocks in one set')
            return tuple(ipaddress.collapse_addresses(networks))
        case EntityKind.MAC:
            return tuple(sorted({normalize_mac(m) for m in items}))
        case EntityKind.Network:
            return tuple(sorted({str(i) for i in items}))
    raise ValueError(f'unknown entity kind {kind!r}')


@dataclasses.dataclass(frozen=True, slots=True)
class EntitySpec:
    """Source or destination match: CIDR blocks, MACs or network ids."""

    mode: SpecMode = SpecMode.Any
    kind: EntityKind | None = None
    items: tuple = ()

    @classmethod
    def include(cls, kind: EntityKind, items) -> EntitySpec:
        return cls(SpecMode.Include, kind, _canonical_items(kind, items))

    @classmethod
    def exclude(cls, kind: EntityKind, items) -> EntitySpec:
        items = _canonical_items(kind, items)
        if not items:
            return ANY_ENTITY
        if kind == EntityKind.CIDR and items == (UNIVERSE[items[0].version],):
            return cls.empty(kind)
        return cls(SpecMode.Exclude, kind, items)

    @classmethod
    def empty(cls, kind: EntityKind = EntityKind.CIDR) -> EntitySpec:
        return cls(SpecMode.Include, kind, ())

    @property
    def is_any(self) -> bool:
        return self.mode == SpecMode.Any

    @property
    def is_empty(self) -> bool:
        return self.mode == SpecMode.Include and not self.items

    @property
    def family(self) -> int | None:
        """IP version of a CIDR spec, None otherwise."""
        if self.kind != EntityKind.CIDR or not self.items:
            return None
        return self.items[0].version

    @property
    def is_universe(self) -> bool:
        """True for Any and for an Include of the whole address family."""
        if self.is_any:
            return True
        return (
            self.mode == SpecMode.Include
            and self.family is not None
            and self.items == (UNIVERSE[self.family],)
        )

    def __str__(self):
        if self.is_any:
            return 'any'
        text = ', '.join(str(i) for i in self.items) or '(none)'
        if self.mode == SpecMode.Exclude:
            return f'not {text}'
        return text


ANY_ENTITY = EntitySpec()


def merge_ranges(ranges) -> tuple[tuple[int, int], ...]:
    """Sort closed intervals and merge the overlapping or adjacent ones."""
    merged: list[list[int]] = []
    for lo, hi in sorted((int(lo), int(hi)) for lo, hi in ranges):
        if lo > hi or lo < PORT_MIN or hi > PORT_MAX:
            raise ValueError(f'invalid port range {lo}-{hi}')
        if merged and lo <= merged[-1][1] + 1:
            merged[-1][1] = max(merged[-1][1], hi)
        else:
            merged.append([lo, hi])
    return tuple((lo, hi) for lo, hi in merged)


def complement_ranges(ranges) -> tuple[tuple[int, int], ...]:
    """Complement of canonical *ranges* within the port universe."""
    result = []
    start = PORT_MIN
    for lo, hi in ranges:
        if lo > start:
            result.append((start, lo - 1))
        start = hi + 1
    if start <= PORT_MAX:
        result.append((start, PORT_MAX))
    return tuple(result)


def ranges_cover(outer, inner) -> bool:
    """True if every interval of *inner* lies inside one interval of *outer*.

    Exact for canonical (merged) *outer* ranges.
    """
    return all(
        any(olo <= lo and hi <= ohi for olo, ohi in outer)
        for lo, hi in inner
    )


def ranges_overlap(a, b) -> bool:
    return any(alo <= bhi and blo <= ahi for alo, ahi in a for blo, bhi in b)


@dataclasses.dataclass(frozen=True, slots=True)
class PortSpec:
    """Port match as closed intervals within [1, 65535]."""

    mode: SpecMode = SpecMode.Any
    ranges: tuple[tuple[int, int], ...] = ()

    @classmethod
    def include(cls, ranges) -> PortSpec:
        ranges = merge_ranges(ranges)
        if ranges == PORT_UNIVERSE:
            return ANY_PORTS
        return cls(SpecMode.Include, ranges)

    @classmethod
    def exclude(cls, ranges) -> PortSpec:
        ranges = merge_ranges(ranges)
        if not ranges:
            return ANY_PORTS
        if ranges == PORT_UNIVERSE:
            return EMPTY_PORTS
        return cls(SpecMode.Exclude, ranges)

    @property
    def is_any(self) -> bool:
        return self.mode == SpecMode.Any

    @property
    def is_empty(self) -> bool:
        return self.mode == SpecMode.Include and not self.ranges

    def effective_ranges(self) -> tuple[tuple[int, int], ...]:
        """The matched ports as Include-style intervals."""
        match self.mode:
            case SpecMode.Any:
                return PORT_UNIVERSE
            case SpecMode.Exclude:
                return complement_ranges(self.ranges)
        return self.ranges

    def __str__(self):
        if self.is_any:
            return 'any'
        text = ','.join(
            str(lo) if lo == hi else f'{lo}-{hi}' for lo, hi in self.ranges
        ) or '(none)'
        if self.mode == SpecMode.Exclude:
            return f'not {text}'
        return text


ANY_PORTS = PortSpec()
EMPTY_PORTS = PortSpec(SpecMode.Include, ())
