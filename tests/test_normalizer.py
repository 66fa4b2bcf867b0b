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

"""Unit tests for the rule normalizer."""

import ipaddress

import pytest

from firewallaudit.audit import (
    LEGACY_ZONE_IDS,
    Inventory,
    ZoneInfo,
    group_by_ruleset,
    normalize,
)
from firewallaudit.audit._normalizer import RuleNormalizer, parse_port_ranges
from firewallaudit.audit._specs import ANY_PORTS, EntitySpec, PortSpec
from firewallaudit.core import RuleStructureError
from firewallaudit.core.objects import EntityKind, Protocol, RuleAction, SpecMode, ZoneKey
from firewallaudit.core.options import AuditSettings


def _raw(**kwargs):
    raw = {'ruleset': 'policies', 'index': 1, 'action': 'allow'}
    raw.update(kwargs)
    return raw


def _one(raw, inventory=None, settings=None):
    rules = normalize([raw], inventory, settings)
    assert len(rules) == 1
    return rules[0]


class TestStructure:
    def test_missing_action_raises(self):
        raw = _raw()
        del raw['action']
        with pytest.raises(RuleStructureError) as exc:
            normalize([raw])
        assert exc.value.field == 'action'
        assert exc.value.position == 0

    def test_missing_ruleset_raises(self):
        with pytest.raises(RuleStructureError, match='ruleset'):
            normalize([_raw(ruleset='  ')])

    def test_missing_order_raises(self):
        raw = _raw()
        del raw['index']
        with pytest.raises(RuleStructureError, match='order'):
            normalize([raw])

    def test_invalid_order_raises(self):
        with pytest.raises(RuleStructureError) as exc:
            normalize([_raw(index='first')])
        assert exc.value.field == 'index'

    def test_duplicate_order_raises(self):
        with pytest.raises(RuleStructureError, match='duplicate order'):
            normalize([_raw(id='a'), _raw(id='b')])

    def test_same_order_in_other_ruleset_is_fine(self):
        rules = normalize([_raw(id='a'), _raw(id='b', ruleset='other')])
        assert [r.id for r in rules] == ['b', 'a']

    def test_non_mapping_raises(self):
        with pytest.raises(RuleStructureError, match='not a mapping'):
            normalize(['allow all'])

    def test_sorted_by_ruleset_and_order(self):
        rules = normalize([
            _raw(id='c', index=30),
            _raw(id='a', index=10),
            _raw(id='b', index=20, ruleset='a-rules'),
        ])
        assert [r.id for r in rules] == ['b', 'a', 'c']
        assert list(group_by_ruleset(rules)) == ['a-rules', 'policies']

    def test_defaults(self):
        rule = _one(_raw())
        assert rule.enabled
        assert not rule.predefined
        assert rule.id
        assert rule.source.is_any and rule.destination.is_any
        assert rule.source_ports == ANY_PORTS
        assert rule.protocol == Protocol.Any
        assert rule.anomalies == ()

    def test_enabled_string(self):
        assert not _one(_raw(enabled='false')).enabled


class TestActions:
    @pytest.mark.parametrize(('value', 'expected'), [
        ('allow', RuleAction.Allow),
        ('ACCEPT', RuleAction.Allow),
        ('drop', RuleAction.Block),
        ('deny', RuleAction.Block),
        ('reject', RuleAction.Block),
        ('block', RuleAction.Block),
        ('dnat', RuleAction.NonAcl),
        ('masquerade', RuleAction.NonAcl),
    ])
    def test_classification(self, value, expected):
        assert _one(_raw(action=value)).action == expected


class TestProtocols:
    @pytest.mark.parametrize(('value', 'expected'), [
        (None, Protocol.Any),
        ('all', Protocol.Any),
        ('tcp', Protocol.TCP),
        ('6', Protocol.TCP),
        (17, Protocol.UDP),
        ('tcp_udp', Protocol.TCP_UDP),
        ('icmp', Protocol.ICMP),
        ('icmpv6', Protocol.ICMPv6),
        ('ipv6-icmp', Protocol.ICMPv6),
        (58, Protocol.ICMPv6),
    ])
    def test_known(self, value, expected):
        assert _one(_raw(protocol=value)).protocol == expected

    def test_unsupported_is_other(self):
        rule = _one(_raw(protocol='GRE'))
        assert rule.protocol == Protocol.Other
        assert rule.protocol_name == 'gre'
        assert rule.anomalies == ()

    def test_icmp_type_only_for_icmp(self):
        assert _one(_raw(protocol='icmp', icmp_typename='echo-request')).icmp_type == 'ECHO-REQUEST'
        assert _one(_raw(protocol='icmp', icmp_typename='ANY')).icmp_type is None
        assert _one(_raw(protocol='icmpv6', icmp_typename='echo-request')).icmp_type == 'ECHO-REQUEST'
        assert _one(_raw(protocol='tcp', icmp_typename='echo-request')).icmp_type is None

    def test_ports_dropped_without_port_protocol(self):
        rule = _one(_raw(protocol='icmp', destination={'port': '80'}))
        assert rule.destination_ports.is_any


class TestPolicyShape:
    def test_ip_target(self):
        rule = _one(_raw(
            protocol='tcp',
            source={'zone_id': 'z-int', 'matching_target': 'IP', 'ips': ['10.0.0.0/25', '10.0.0.128/25']},
            destination={'zone_id': 'z-ext', 'port': '80,443,1000-2000'},
        ))
        assert rule.source_zone_id == 'z-int'
        assert rule.destination_zone_id == 'z-ext'
        assert rule.source.items == (ipaddress.ip_network('10.0.0.0/24'),)
        assert rule.destination_ports == PortSpec.include([(80, 80), (443, 443), (1000, 2000)])

    def test_address_range_summarised(self):
        rule = _one(_raw(source={'ips': ['10.0.0.0-10.0.0.255']}))
        assert rule.source == EntitySpec.include(EntityKind.CIDR, ['10.0.0.0/24'])

    def test_match_opposite(self):
        rule = _one(_raw(
            protocol='tcp',
            source={'matching_target': 'IP', 'ips': ['10.0.0.0/8'], 'match_opposite_ips': True},
            destination={'port': 22, 'match_opposite_ports': 'true'},
        ))
        assert rule.source.mode == SpecMode.Exclude
        assert rule.destination_ports == PortSpec.exclude([(22, 22)])

    def test_opposite_of_nothing_is_any(self):
        rule = _one(_raw(source={'matching_target': 'NETWORK', 'match_opposite_networks': True}))
        assert rule.source.is_any
        assert rule.anomalies == ()

    def test_network_target(self):
        rule = _one(_raw(destination={'matching_target': 'NETWORK', 'network_ids': ['n2', 'n1']}))
        assert rule.destination == EntitySpec.include(EntityKind.Network, ['n1', 'n2'])

    def test_client_target(self):
        rule = _one(_raw(source={'matching_target': 'CLIENT', 'client_macs': ['AA:BB:CC:DD:EE:FF']}))
        assert rule.source.items == ('aa:bb:cc:dd:ee:ff',)

    def test_web_target(self):
        rule = _one(_raw(destination={'matching_target': 'WEB', 'web_domains': ['UI.com.', '*.ntp.org']}))
        assert rule.destination.is_any
        assert rule.web_domains == frozenset({'ui.com', 'ntp.org'})

    def test_target_inferred(self):
        rule = _one(_raw(source={'network_ids': 'n1'}))
        assert rule.source.kind == EntityKind.Network

    def test_unresolved_groups(self):
        rule = _one(_raw(
            protocol='tcp',
            source={'matching_target': 'IP', 'ip_group_id': 'grp-1'},
            destination={'port_group_id': 'grp-2'},
        ))
        assert rule.unresolved_groups == ('grp-1', 'grp-2')
        assert rule.source.is_empty
        assert rule.destination_ports.is_empty
        assert rule.anomalies == ()

    def test_unknown_references_preserved(self):
        rule = _one(_raw(source={'zone_id': 'nowhere', 'network_ids': ['ghost']}), Inventory())
        assert rule.source_zone_id == 'nowhere'
        assert rule.source.items == ('ghost',)

    def test_unknown_fields_ignored(self):
        rule = _one(_raw(logging=True, schedule={'mode': 'ALWAYS'}))
        assert rule.action == RuleAction.Allow


class TestAnomalies:
    def test_empty_include(self):
        rule = _one(_raw(source={'matching_target': 'IP', 'ips': []}))
        assert rule.source.is_empty
        assert 'empty CIDR include set' in rule.anomalies[0]

    def test_mixed_families(self):
        rule = _one(_raw(source={'ips': ['10.0.0.1', '2001:db8::1']}))
        assert rule.source.is_empty
        assert 'mixed IPv4 and IPv6' in rule.anomalies[0]

    def test_unparsable_address(self):
        rule = _one(_raw(destination={'ips': ['10.0.0.300']}))
        assert rule.destination.is_empty
        assert 'unparsable address' in rule.anomalies[0]

    def test_bad_mac(self):
        rule = _one(_raw(source={'matching_target': 'MAC', 'client_macs': ['nope']}))
        assert rule.source.is_empty
        assert rule.anomalies

    def test_bad_port_range(self):
        rule = _one(_raw(protocol='udp', destination={'port': '2000-1000'}))
        assert rule.destination_ports.is_empty
        assert 'zero-length or out-of-range' in rule.anomalies[0]

    def test_unsupported_target(self):
        rule = _one(_raw(destination={'matching_target': 'APP'}))
        assert rule.destination.is_empty
        assert 'unsupported matching target APP' in rule.anomalies[0]

    def test_parse_port_ranges(self):
        anomalies = []
        assert parse_port_ranges('80, 443,1000:2000', 'p', anomalies) == [(80, 80), (443, 443), (1000, 2000)]
        assert parse_port_ranges(['x'], 'p', anomalies) is None
        assert parse_port_ranges('0', 'p', anomalies) is None
        assert len(anomalies) == 2


class TestLegacyShape:
    def test_flat_fields(self):
        rule = _one({
            'ruleset': 'LAN_IN',
            'rule_index': 2000,
            'action': 'drop',
            'protocol': 'tcp',
            'src_address': '192.168.1.0/24',
            'dst_network_id': 'net-iot',
            'dst_port': '22',
        })
        assert rule.source == EntitySpec.include(EntityKind.CIDR, ['192.168.1.0/24'])
        assert rule.destination == EntitySpec.include(EntityKind.Network, ['net-iot'])
        assert rule.destination_ports == PortSpec.include([(22, 22)])
        assert rule.source_zone_id == LEGACY_ZONE_IDS[ZoneKey.Internal]
        assert rule.destination_zone_id == LEGACY_ZONE_IDS[ZoneKey.Internal]

    def test_legacy_zones_resolved_from_inventory(self):
        inventory = Inventory(zones=(
            ZoneInfo(id='z-ext', key='external'),
            ZoneInfo(id='z-int', key='internal'),
        ))
        rule = _one({'ruleset': 'WAN_IN', 'rule_index': 1, 'action': 'drop'}, inventory)
        assert (rule.source_zone_id, rule.destination_zone_id) == ('z-ext', 'z-int')

    def test_lan_out_destination_is_any(self):
        rule = _one({'ruleset': 'LAN_OUT', 'rule_index': 1, 'action': 'accept'})
        assert rule.source_zone_id == LEGACY_ZONE_IDS[ZoneKey.Internal]
        assert rule.destination_zone_id is None

    def test_legacy_mapping_disabled(self):
        settings = AuditSettings(legacy_zone_mapping=False)
        rule = _one({'ruleset': 'WAN_IN', 'rule_index': 1, 'action': 'drop'}, settings=settings)
        assert rule.source_zone_id is None

    def test_unknown_ruleset_has_no_zones(self):
        rule = _one(_raw(ruleset='custom'))
        assert rule.source_zone_id is None and rule.destination_zone_id is None


class TestPredicate:
    def test_required_path_predicate_defaults(self):
        rule = RuleNormalizer().normalize_predicate(
            {'protocol': 'udp', 'destination': {'port': 123}},
            name='ntp',
        )
        assert rule.id == 'ntp'
        assert rule.action == RuleAction.Allow
        assert rule.destination_ports == PortSpec.include([(123, 123)])
