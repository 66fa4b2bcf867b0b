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

"""Rule normalizer: raw rule records to canonical Rule objects.

Two record shapes are accepted. Zone-based policies carry ``source`` and
``destination`` sub-mappings::

    {'ruleset': 'policies', 'index': 10000, 'action': 'block',
     'protocol': 'tcp',
     'source': {'zone_id': 'z-int', 'matching_target': 'NETWORK',
                'network_ids': ['net-iot']},
     'destination': {'zone_id': 'z-ext', 'port': '80,443'}}

Legacy ACL records are flat (``src_address``, ``dst_network_id``,
``dst_port``, ``rule_index``, ...) and carry their zone pair implicitly in
the ruleset name (``WAN_IN``, ``LAN_OUT``, ...).

Group references are expected to be flattened by the caller. A group id
that arrives without literal members is kept as unresolved and turns the
dimension into the empty set. Data-shape problems never raise; they are
recorded on the rule as anomalies. Only structurally malformed records
raise RuleStructureError.
"""

from __future__ import annotations

import ipaddress
import logging
import uuid
from collections.abc import Mapping
from typing import TYPE_CHECKING

from firewallaudit.core import RuleStructureError, coerce_bool
from firewallaudit.core.objects import EntityKind, Protocol, RuleAction, ZoneKey
from firewallaudit.core.options import AuditSettings

from ._rule import Rule
from ._specs import (
    ANY_ENTITY,
    ANY_PORTS,
    EMPTY_PORTS,
    PORT_MAX,
    PORT_MIN,
    EntitySpec,
    PortSpec,
    normalize_mac,
)

if TYPE_CHECKING:
    from ._inventory import Inventory

logger = logging.getLogger(__name__)

LEGACY_ZONE_IDS = {
    ZoneKey.External: '__LEGACY_EXTERNAL__',
    ZoneKey.Internal: '__LEGACY_INTERNAL__',
    ZoneKey.Gateway: '__LEGACY_GATEWAY__',
}

# Legacy ruleset name -> (source zone key, destination zone key)
_LEGACY_RULESETS = {
    'WAN_IN': (ZoneKey.External, ZoneKey.Internal),
    'WAN_OUT': (ZoneKey.Internal, ZoneKey.External),
    'WAN_LOCAL': (ZoneKey.External, ZoneKey.Gateway),
    'LAN_IN': (ZoneKey.Internal, ZoneKey.Internal),
    'LAN_OUT': (ZoneKey.Internal, None),
    'LAN_LOCAL': (ZoneKey.Internal, ZoneKey.Gateway),
    'GUEST_IN': (ZoneKey.Internal, ZoneKey.Internal),
    'GUEST_OUT': (ZoneKey.Internal, None),
    'GUEST_LOCAL': (ZoneKey.Internal, ZoneKey.Gateway),
}

_ALLOW_ACTIONS = frozenset({'allow', 'accept', 'permit', 'pass'})
_BLOCK_ACTIONS = frozenset({'block', 'drop', 'deny', 'reject'})

_PROTOCOLS = {
    'all': Protocol.Any,
    'any': Protocol.Any,
    'tcp': Protocol.TCP,
    '6': Protocol.TCP,
    'udp': Protocol.UDP,
    '17': Protocol.UDP,
    'tcp_udp': Protocol.TCP_UDP,
    'tcp/udp': Protocol.TCP_UDP,
    'tcp-udp': Protocol.TCP_UDP,
    'icmp': Protocol.ICMP,
    'icmpv6': Protocol.ICMPv6,
    'ipv6-icmp': Protocol.ICMPv6,
    '1': Protocol.ICMP,
    '58': Protocol.ICMPv6,
}

_PORT_PROTOCOLS = frozenset({Protocol.TCP, Protocol.UDP, Protocol.TCP_UDP})

_ORDER_KEYS = ('order', 'index', 'rule_index')


def _blank(value) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip(' ,')
    if isinstance(value, (list, tuple)):
        return all(_blank(v) for v in value)
    return False


def _as_list(value) -> list:
    """Flatten a scalar, a comma separated string or a list into items."""
    if value is None:
        return []
    if isinstance(value, (list, tuple, set, frozenset)):
        items = []
        for v in value:
            items.extend(_as_list(v))
        return items
    if isinstance(value, str):
        return [p.strip() for p in value.split(',') if p.strip()]
    return [value]


def classify_action(value) -> RuleAction:
    action = str(value).strip().lower()
    if action in _ALLOW_ACTIONS:
        return RuleAction.Allow
    if action in _BLOCK_ACTIONS:
        return RuleAction.Block
    return RuleAction.NonAcl


def classify_protocol(value) -> tuple[Protocol, str]:
    """Return the protocol and, for ``Other``, its lower-cased name."""
    if _blank(value):
        return Protocol.Any, ''
    name = str(value).strip().lower()
    protocol = _PROTOCOLS.get(name)
    if protocol is None:
        return Protocol.Other, name
    return protocol, ''


def parse_cidrs(values, what: str, anomalies: list[str]):
    """Parse addresses, CIDRs and ``a-b`` ranges into network blocks.

    Returns None (and records an anomaly) when any item is unparsable or
    the address families are mixed.
    """
    blocks = []
    for value in values:
        text = str(value).strip()
        try:
            if '-' in text:
                first, last = (ipaddress.ip_address(p.strip()) for p in text.split('-', 1))
                blocks.extend(ipaddress.summarize_address_range(first, last))
            else:
                blocks.append(ipaddress.ip_network(text, strict=False))
        except (TypeError, ValueError):
            anomalies.append(f'{what}: unparsable address {text!r}')
            return None
    if len({b.version for b in blocks}) > 1:
        anomalies.append(f'{what}: mixed IPv4 and IPv6 addresses')
        return None
    return blocks


def parse_port_ranges(value, what: str, anomalies: list[str]):
    """Parse ``"80,443,1000-2000"``, integers or lists into closed intervals.

    Returns None (and records an anomaly) on the first unparsable,
    zero-length or out-of-range item.
    """
    ranges = []
    for item in _as_list(value):
        text = str(item).strip()
        parts = text.replace(':', '-').split('-', 1)
        try:
            lo = int(parts[0])
            hi = int(parts[1]) if len(parts) > 1 else lo
        except ValueError:
            anomalies.append(f'{what}: unparsable port {text!r}')
            return None
        if lo > hi or lo < PORT_MIN or hi > PORT_MAX:
            anomalies.append(f'{what}: zero-length or out-of-range port range {text!r}')
            return None
        ranges.append((lo, hi))
    return ranges


def _web_domains(value) -> frozenset[str] | None:
    domains = set()
    for item in _as_list(value):
        domain = str(item).strip().lower().rstrip('.')
        if domain.startswith('*.'):
            domain = domain[2:]
        if domain:
            domains.add(domain)
    return frozenset(domains) or None


def _legacy_side(raw: Mapping, prefix: str) -> dict:
    return {
        'ips': raw.get(f'{prefix}_address'),
        'network_ids': raw.get(f'{prefix}_network_id'),
        'client_macs': raw.get(f'{prefix}_mac_address'),
        'port': raw.get(f'{prefix}_port'),
    }


class RuleNormalizer:
    """Builds canonical rules against a zone/network inventory."""

    def __init__(self, inventory: Inventory | None = None, settings: AuditSettings | None = None) -> None:
        self.inventory = inventory
        self.settings = settings or AuditSettings()

    def normalize(self, raw_rules) -> list[Rule]:
        rules = []
        seen: dict[tuple[str, int], str] = {}
        for position, raw in enumerate(raw_rules):
            rule = self.build_rule(raw, position)
            key = (rule.ruleset, rule.order)
            if key in seen:
                raise RuleStructureError(
                    f'duplicate order {rule.order} in ruleset {rule.ruleset!r} '
                    f'(already used by rule {seen[key]})',
                    position=position,
                    rule_id=rule.id,
                    field='order',
                )
            seen[key] = rule.id
            rules.append(rule)
        rules.sort(key=lambda r: (r.ruleset, r.order))
        logger.info('Normalized %d rules in %d rulesets', len(rules), len({r.ruleset for r in rules}))
        return rules

    def normalize_predicate(self, raw: Mapping, name: str = '') -> Rule:
        """Normalize a traffic predicate that is not part of any ruleset."""
        record = {'ruleset': 'required-paths', 'order': 0, 'action': 'allow', 'id': name}
        record.update(raw)
        return self.build_rule(record)

    def build_rule(self, raw, position: int | None = None) -> Rule:
        if not isinstance(raw, Mapping):
            raise RuleStructureError('record is not a mapping', position=position)
        rule_id = str(raw.get('id') or raw.get('_id') or uuid.uuid4())

        if _blank(raw.get('action')):
            raise RuleStructureError('missing action', position=position, rule_id=rule_id, field='action')
        if _blank(raw.get('ruleset')):
            raise RuleStructureError('missing ruleset', position=position, rule_id=rule_id, field='ruleset')
        ruleset = str(raw['ruleset']).strip()
        order = self._order(raw, position, rule_id)
        action = classify_action(raw['action'])
        protocol, protocol_name = classify_protocol(raw.get('protocol'))

        anomalies: list[str] = []
        unresolved: list[str] = []
        source_side = raw.get('source')
        if not isinstance(source_side, Mapping):
            source_side = _legacy_side(raw, 'src')
        destination_side = raw.get('destination')
        if not isinstance(destination_side, Mapping):
            destination_side = _legacy_side(raw, 'dst')

        source_zone_id = self._zone_id(source_side.get('zone_id') or raw.get('source_zone_id'))
        destination_zone_id = self._zone_id(
            destination_side.get('zone_id') or raw.get('destination_zone_id'),
        )
        if source_zone_id is None and destination_zone_id is None and self.settings.legacy_zone_mapping:
            source_zone_id, destination_zone_id = self._legacy_zones(ruleset)

        source = self._entity(source_side, 'source', anomalies, unresolved)
        destination = self._entity(destination_side, 'destination', anomalies, unresolved)
        source_ports = self._ports(source_side, 'source port', protocol, anomalies, unresolved)
        destination_ports = self._ports(destination_side, 'destination port', protocol, anomalies, unresolved)

        icmp_type = None
        if protocol in (Protocol.ICMP, Protocol.ICMPv6):
            value = raw.get('icmp_typename', raw.get('icmp_type'))
            if not _blank(value) and str(value).strip().upper() != 'ANY':
                icmp_type = str(value).strip().upper()

        web_domains = _web_domains(destination_side.get('web_domains') or raw.get('web_domains'))

        rule = Rule(
            id=rule_id,
            ruleset=ruleset,
            order=order,
            action=action,
            name=str(raw.get('name') or ''),
            enabled=coerce_bool(raw.get('enabled'), default=True),
            predefined=coerce_bool(raw.get('predefined')),
            protocol=protocol,
            protocol_name=protocol_name,
            source_zone_id=source_zone_id,
            destination_zone_id=destination_zone_id,
            source=source,
            destination=destination,
            source_ports=source_ports,
            destination_ports=destination_ports,
            icmp_type=icmp_type,
            web_domains=web_domains,
            unresolved_groups=tuple(unresolved),
            anomalies=tuple(anomalies),
        )
        for anomaly in anomalies:
            logger.warning('Rule %s: %s', rule.label, anomaly)
        for group in unresolved:
            logger.warning('Rule %s: unresolved group %s', rule.label, group)
        logger.debug('Rule %s: %s', rule.label, rule)
        return rule

    @staticmethod
    def _order(raw, position, rule_id) -> int:
        for key in _ORDER_KEYS:
            value = raw.get(key)
            if value is None or isinstance(value, bool):
                continue
            try:
                return int(value)
            except (TypeError, ValueError):
                raise RuleStructureError(
                    f'invalid {key} {value!r}', position=position, rule_id=rule_id, field=key,
                ) from None
        raise RuleStructureError('missing order', position=position, rule_id=rule_id, field='order')

    @staticmethod
    def _zone_id(value) -> str | None:
        if _blank(value):
            return None
        return str(value).strip()

    def _legacy_zones(self, ruleset: str) -> tuple[str | None, str | None]:
        keys = _LEGACY_RULESETS.get(ruleset.upper())
        if keys is None:
            return None, None
        return tuple(self._zone_for_key(key) for key in keys)

    def _zone_for_key(self, key: ZoneKey | None) -> str | None:
        if key is None:
            return None
        if self.inventory is not None:
            zone = self.inventory.zone_by_key(key)
            if zone is not None:
                return zone.id
        return LEGACY_ZONE_IDS[key]

    def _entity(self, side: Mapping, what: str, anomalies: list[str], unresolved: list[str]) -> EntitySpec:
        ips = _as_list(side.get('ips'))
        network_ids = _as_list(side.get('network_ids'))
        macs = _as_list(side.get('client_macs'))
        group = side.get('ip_group_id')
        target = str(side.get('matching_target') or '').strip().upper()
        if not target:
            if ips or not _blank(group):
                target = 'IP'
            elif network_ids:
                target = 'NETWORK'
            elif macs:
                target = 'CLIENT'
            else:
                target = 'ANY'

        match target:
            case 'ANY':
                return ANY_ENTITY
            case 'WEB' if what == 'destination':
                return ANY_ENTITY
            case 'IP':
                if not ips and not _blank(group):
                    unresolved.append(str(group))
                    return EntitySpec.empty(EntityKind.CIDR)
                blocks = parse_cidrs(ips, what, anomalies)
                if blocks is None:
                    return EntitySpec.empty(EntityKind.CIDR)
                return self._spec(EntityKind.CIDR, blocks, side.get('match_opposite_ips'), what, anomalies)
            case 'NETWORK':
                return self._spec(
                    EntityKind.Network, network_ids, side.get('match_opposite_networks'), what, anomalies,
                )
            case 'CLIENT' | 'MAC':
                try:
                    macs = [normalize_mac(m) for m in macs]
                except ValueError as e:
                    anomalies.append(f'{what}: {e}')
                    return EntitySpec.empty(EntityKind.MAC)
                return self._spec(EntityKind.MAC, macs, side.get('match_opposite_macs'), what, anomalies)
        anomalies.append(f'{what}: unsupported matching target {target}')
        return EntitySpec.empty()

    @staticmethod
    def _spec(kind, items, opposite, what, anomalies) -> EntitySpec:
        if coerce_bool(opposite):
            return EntitySpec.exclude(kind, items)
        if not items:
            anomalies.append(f'{what}: empty {kind.name} include set')
            return EntitySpec.empty(kind)
        return EntitySpec.include(kind, items)

    @staticmethod
    def _ports(side: Mapping, what: str, protocol: Protocol, anomalies: list[str], unresolved: list[str]) -> PortSpec:
        value = side.get('port')
        group = side.get('port_group_id')
        if _blank(value) and not _blank(group):
            unresolved.append(str(group))
            return EMPTY_PORTS if protocol in _PORT_PROTOCOLS else ANY_PORTS
        if protocol not in _PORT_PROTOCOLS or _blank(value):
            return ANY_PORTS
        ranges = parse_port_ranges(value, what, anomalies)
        if ranges is None:
            return EMPTY_PORTS
        if coerce_bool(side.get('match_opposite_ports')):
            return PortSpec.exclude(ranges)
        return PortSpec.include(ranges)


def normalize(raw_rules, inventory: Inventory | None = None, settings: AuditSettings | None = None) -> list[Rule]:
    """Normalize *raw_rules* into canonical rules sorted by ruleset and order."""
    return RuleNormalizer(inventory, settings).normalize(raw_rules)


def group_by_ruleset(rules) -> dict[str, list[Rule]]:
    """Group canonical rules by ruleset, each group sorted by order."""
    groups: dict[str, list[Rule]] = {}
    for rule in rules:
        groups.setdefault(rule.ruleset, []).append(rule)
    for group in groups.values():
        group.sort(key=lambda r: r.order)
    return dict(sorted(groups.items()))
