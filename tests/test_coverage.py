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

"""Tests for the coverage checks: orphans, isolation and required paths."""

import dataclasses
import ipaddress

from firewallaudit.audit import (
    LEGACY_ZONE_IDS,
    Inventory,
    NetworkInfo,
    RequiredPath,
    Rule,
    RulesetAnalyzer,
    ZoneInfo,
    analyze,
    normalize,
)
from firewallaudit.audit._specs import EntitySpec, PortSpec
from firewallaudit.audit.processors._coverage import CoverageChecker, DetectOrphanedReferences
from firewallaudit.audit.processors._generic import Begin
from firewallaudit.core.objects import (
    EntityKind,
    FindingKind,
    NetworkPurpose,
    Protocol,
    RuleAction,
    Severity,
    ZoneKey,
)
from firewallaudit.core.options import AuditSettings

ISOLATION_KINDS = {FindingKind.MissingIsolation, FindingKind.IsolationBypassed}


def _make_rule(order, action=RuleAction.Block, ruleset='rs', **kwargs) -> Rule:
    kwargs.setdefault('id', f'{ruleset}-{order}')
    return Rule(ruleset=ruleset, order=order, action=action, **kwargs)


def _isolation(findings):
    return [f for f in findings if f.kind in ISOLATION_KINDS]


def _orphans(rules, inventory, settings=None):
    analyzer = RulesetAnalyzer('rs', rules, inventory, settings or AuditSettings())
    analyzer.add(Begin())
    analyzer.add(DetectOrphanedReferences())
    analyzer.run_rule_processors()
    return analyzer.get_findings()


class TestOrphanedReferences:
    def test_unknown_zone_and_network(self, isolation_inventory):
        rule = _make_rule(
            1,
            source_zone_id='Z9',
            destination_zone_id='Z2',
            destination=EntitySpec.include(EntityKind.Network, ['net-b', 'net-gone']),
        )
        findings = _orphans([rule], isolation_inventory)
        assert len(findings) == 1
        assert findings[0].kind == FindingKind.OrphanedRule
        assert findings[0].metadata['missing_zones'] == ['Z9']
        assert findings[0].metadata['missing_networks'] == ['net-gone']

    def test_unresolved_groups(self, isolation_inventory):
        rule = _make_rule(1, unresolved_groups=('grp-1',))
        findings = _orphans([rule], isolation_inventory)
        assert findings[0].metadata['missing_groups'] == ['grp-1']

    def test_known_references_are_fine(self, isolation_inventory):
        rule = _make_rule(
            1,
            source_zone_id='Z1',
            source=EntitySpec.include(EntityKind.Network, ['net-a']),
        )
        assert _orphans([rule], isolation_inventory) == []

    def test_legacy_pseudo_zones_are_fine(self, isolation_inventory):
        rule = _make_rule(1, source_zone_id=LEGACY_ZONE_IDS[ZoneKey.External])
        assert _orphans([rule], isolation_inventory) == []

    def test_no_zone_inventory_skips_zone_check(self):
        rule = _make_rule(1, source_zone_id='Z9')
        assert _orphans([rule], Inventory()) == []

    def test_disabled_and_non_acl_rules_checked(self, isolation_inventory):
        rules = [
            _make_rule(1, enabled=False, source_zone_id='Z9'),
            _make_rule(2, RuleAction.NonAcl, destination_zone_id='Z8'),
        ]
        assert len(_orphans(rules, isolation_inventory)) == 2

    def test_disabled_check_can_be_turned_off(self, isolation_inventory):
        rule = _make_rule(1, enabled=False, source_zone_id='Z9')
        settings = AuditSettings(check_disabled_orphans=False)
        assert _orphans([rule], isolation_inventory, settings) == []


class TestIsolationEndToEnd:
    def test_empty_ruleset_is_missing_isolation(self, isolation_inventory):
        findings = _isolation(analyze([], isolation_inventory))
        assert len(findings) == 1
        assert findings[0].kind == FindingKind.MissingIsolation
        assert findings[0].zones_involved == ('Z1', 'Z2')
        assert findings[0].primary_rule_id is None

    def test_blocks_in_both_directions_isolate(self, isolation_inventory):
        rules = [
            _make_rule(1, source_zone_id='Z1', destination_zone_id='Z2'),
            _make_rule(2, source_zone_id='Z2', destination_zone_id='Z1'),
        ]
        assert _isolation(analyze(rules, isolation_inventory)) == []

    def test_block_in_one_direction_is_not_enough(self, isolation_inventory):
        rules = [_make_rule(1, source_zone_id='Z1', destination_zone_id='Z2')]
        findings = _isolation(analyze(rules, isolation_inventory))
        assert [f.kind for f in findings] == [FindingKind.MissingIsolation]
        assert findings[0].metadata['directions'] == ['B -> A']

    def test_earlier_allow_bypasses_isolation(self, isolation_inventory):
        rules = [
            _make_rule(0, RuleAction.Allow, source_zone_id='Z1', destination_zone_id='Z2'),
            _make_rule(1, source_zone_id='Z1', destination_zone_id='Z2'),
            _make_rule(2, source_zone_id='Z2', destination_zone_id='Z1'),
        ]
        findings = _isolation(analyze(rules, isolation_inventory))
        assert len(findings) == 1
        assert findings[0].kind == FindingKind.IsolationBypassed
        assert findings[0].primary_rule_id == 'rs-1'
        assert findings[0].related_rule_id == 'rs-0'
        assert findings[0].zones_involved == ('Z1', 'Z2')

    def test_normalized_rules(self, isolation_inventory):
        rules = normalize([
            {'id': 'a-to-b', 'ruleset': 'policies', 'index': 1, 'action': 'block',
             'source': {'zone_id': 'Z1', 'ips': ['10.0.10.0/24']},
             'destination': {'zone_id': 'Z2', 'ips': ['10.0.20.0/24']}},
            {'id': 'b-to-a', 'ruleset': 'policies', 'index': 2, 'action': 'block',
             'source': {'zone_id': 'Z2', 'matching_target': 'NETWORK', 'network_ids': ['net-b']},
             'destination': {'zone_id': 'Z1'}},
        ], isolation_inventory)
        assert _isolation(analyze(rules, isolation_inventory)) == []

    def test_block_of_other_subnet_does_not_count(self, isolation_inventory):
        rules = [
            _make_rule(1, source_zone_id='Z1', destination_zone_id='Z2',
                       destination=EntitySpec.include(EntityKind.CIDR, ['192.168.0.0/16'])),
            _make_rule(2, source_zone_id='Z2', destination_zone_id='Z1'),
        ]
        findings = _isolation(analyze(rules, isolation_inventory))
        assert [f.kind for f in findings] == [FindingKind.MissingIsolation]

    def test_disabled_block_does_not_isolate(self, isolation_inventory):
        rules = [
            _make_rule(1, source_zone_id='Z1', destination_zone_id='Z2', enabled=False),
            _make_rule(2, source_zone_id='Z2', destination_zone_id='Z1'),
        ]
        assert [f.kind for f in _isolation(analyze(rules, isolation_inventory))] == [
            FindingKind.MissingIsolation,
        ]

    def test_same_zone_and_vlan_is_not_a_pair(self):
        inventory = Inventory(networks=(
            NetworkInfo(id='n1', vlan_id=10, firewall_zone_id='Z1', isolation_required=True),
            NetworkInfo(id='n2', vlan_id=10, firewall_zone_id='Z1', isolation_required=True),
        ))
        assert _isolation(analyze([], inventory)) == []

    def test_no_isolation_required(self):
        inventory = Inventory(networks=(
            NetworkInfo(id='n1', vlan_id=10, firewall_zone_id='Z1'),
            NetworkInfo(id='n2', vlan_id=20, firewall_zone_id='Z2'),
        ))
        assert _isolation(analyze([], inventory)) == []

    def test_critical_purpose_pair(self, isolation_inventory):
        networks = tuple(
            dataclasses.replace(n, purpose=p)
            for n, p in zip(isolation_inventory.networks, (NetworkPurpose.Guest, NetworkPurpose.Corporate), strict=True)
        )
        inventory = dataclasses.replace(isolation_inventory, networks=networks)
        findings = _isolation(analyze([], inventory))
        assert findings[0].severity == Severity.Critical

    def test_non_critical_purpose_pair(self, isolation_inventory):
        findings = _isolation(analyze([], isolation_inventory))
        assert findings[0].severity == Severity.Recommended


def _mgmt_inventory(required_paths=()):
    mgmt = NetworkInfo(
        id='net-mgmt',
        name='Management',
        vlan_id=99,
        subnet=ipaddress.ip_network('10.9.0.0/24'),
        firewall_zone_id='z-int',
        purpose=NetworkPurpose.Management,
    )
    return Inventory(
        zones=(ZoneInfo(id='z-int', key='internal'), ZoneInfo(id='z-ext', key='external')),
        networks=(mgmt,),
        required_paths=required_paths,
    )


def _ntp_path():
    predicate = Rule(
        id='ntp',
        ruleset='required-paths',
        order=0,
        action=RuleAction.Allow,
        protocol=Protocol.UDP,
        destination_zone_id='z-ext',
        destination_ports=PortSpec.include([(123, 123)]),
    )
    return RequiredPath(name='ntp', network_id='net-mgmt', predicate=predicate)


class TestRequiredPaths:
    def _check(self, rules, inventory):
        shadowed_by = {}
        for ruleset in {r.ruleset for r in rules}:
            analyzer = RulesetAnalyzer(
                ruleset, [r for r in rules if r.ruleset == ruleset], inventory, AuditSettings(),
            )
            analyzer.analyze()
            shadowed_by.update(analyzer.shadowed_by)
        return CoverageChecker(rules, inventory, shadowed_by).check()

    def test_missing_access(self):
        inventory = _mgmt_inventory((_ntp_path(),))
        findings = self._check([], inventory)
        assert [f.kind for f in findings] == [FindingKind.MissingRequiredAccess]
        assert findings[0].metadata == {'path': 'ntp', 'network': 'net-mgmt'}
        assert findings[0].zones_involved == ('z-int', 'z-ext')

    def test_allow_grants_access(self):
        inventory = _mgmt_inventory((_ntp_path(),))
        rules = [
            _make_rule(1, RuleAction.Allow, source_zone_id='z-int', destination_zone_id='z-ext',
                       source=EntitySpec.include(EntityKind.CIDR, ['10.9.0.0/16'])),
        ]
        assert self._check(rules, inventory) == []

    def test_allow_for_other_network_does_not_count(self):
        inventory = _mgmt_inventory((_ntp_path(),))
        rules = [
            _make_rule(1, RuleAction.Allow, source=EntitySpec.include(EntityKind.Network, ['net-corp'])),
        ]
        assert [f.kind for f in self._check(rules, inventory)] == [FindingKind.MissingRequiredAccess]

    def test_allow_behind_block_does_not_count(self):
        inventory = _mgmt_inventory((_ntp_path(),))
        rules = [
            _make_rule(1, RuleAction.Block, protocol=Protocol.UDP),
            _make_rule(2, RuleAction.Allow, protocol=Protocol.UDP,
                       destination_ports=PortSpec.include([(123, 123)])),
        ]
        assert [f.kind for f in self._check(rules, inventory)] == [FindingKind.MissingRequiredAccess]

    def test_unknown_network_skipped(self):
        path = dataclasses.replace(_ntp_path(), network_id='net-gone')
        assert self._check([], _mgmt_inventory((path,))) == []
