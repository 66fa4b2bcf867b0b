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

"""Tests for the policy driver: merging, parallelism and deadlines."""

import itertools
import types

import pytest

from firewallaudit import RuleStructureError, audit
from firewallaudit.audit import AuditStatus, PolicyAuditor, _analyzer, normalize
from firewallaudit.core.objects import FindingKind
from firewallaudit.core.options import AuditSettings


def _raw_policy():
    rules = []
    for ruleset in ('LAN_IN', 'WAN_IN', 'policies', 'zz-last'):
        rules.extend([
            {'id': f'{ruleset}-1', 'ruleset': ruleset, 'order': 1, 'action': 'allow',
             'protocol': 'tcp', 'source': {'ips': ['10.0.0.0/8']}},
            {'id': f'{ruleset}-2', 'ruleset': ruleset, 'order': 2, 'action': 'block',
             'protocol': 'tcp', 'source': {'ips': ['10.1.0.0/16']}},
            {'id': f'{ruleset}-3', 'ruleset': ruleset, 'order': 3, 'action': 'allow',
             'protocol': 'tcp', 'source': {'ips': ['10.1.2.0/24']}},
        ])
    return rules


class TestPolicyAuditor:
    def test_findings_grouped_by_ruleset(self):
        result = PolicyAuditor(settings=AuditSettings(max_workers=1)).run(normalize(_raw_policy()))
        assert result.completed_rulesets == ['LAN_IN', 'WAN_IN', 'policies', 'zz-last']
        assert result.skipped_rulesets == []
        assert result.coverage_checked
        shadow = [(f.ruleset, f.primary_rule_id, f.kind) for f in result.findings if f.kind != FindingKind.PermissiveRule]
        assert shadow[:2] == [
            ('LAN_IN', 'LAN_IN-2', FindingKind.ShadowedByAllow),
            ('LAN_IN', 'LAN_IN-3', FindingKind.RedundantRule),
        ]
        assert [r for r, _, _ in shadow] == sorted(r for r, _, _ in shadow)

    def test_parallel_matches_serial(self):
        rules = normalize(_raw_policy())
        serial = PolicyAuditor(settings=AuditSettings(max_workers=1)).run(rules)
        parallel = PolicyAuditor(settings=AuditSettings(max_workers=4)).run(rules)
        assert parallel.findings == serial.findings
        assert parallel.completed_rulesets == serial.completed_rulesets

    def test_deadline_skips_remaining_rulesets(self, monkeypatch):
        clock = itertools.chain([0.0, 1.0], itertools.repeat(100.0))
        monkeypatch.setattr(_analyzer, 'time', types.SimpleNamespace(monotonic=lambda: next(clock)))
        settings = AuditSettings(max_workers=1, deadline_seconds=5)
        result = PolicyAuditor(settings=settings).run(normalize(_raw_policy()))
        assert result.completed_rulesets == ['LAN_IN']
        assert result.skipped_rulesets == ['WAN_IN', 'policies', 'zz-last']
        assert not result.coverage_checked
        assert {f.ruleset for f in result.findings} == {'LAN_IN'}

    def test_status(self):
        assert PolicyAuditor().run([]).status == AuditStatus.AUDIT_CLEAN
        assert PolicyAuditor().run(normalize(_raw_policy())).status == AuditStatus.AUDIT_FINDINGS


class TestAudit:
    def test_audit_normalizes_and_analyzes(self):
        result = audit(_raw_policy())
        kinds = {f.kind for f in result.findings}
        assert FindingKind.ShadowedByAllow in kinds
        assert FindingKind.MalformedMatch not in kinds

    def test_malformed_match_reported(self):
        result = audit([
            {'id': 'bad', 'ruleset': 'rs', 'order': 1, 'action': 'block',
             'protocol': 'udp', 'destination': {'port': '70000'}},
        ])
        assert [f.kind for f in result.findings] == [FindingKind.MalformedMatch]
        assert result.findings[0].primary_rule_id == 'bad'

    def test_structural_error_aborts(self):
        with pytest.raises(RuleStructureError):
            audit([{'ruleset': 'rs', 'order': 1}])

    def test_icmp_does_not_shadow_icmpv6(self):
        result = audit([
            {'id': 'ping', 'ruleset': 'LAN_IN', 'order': 1, 'action': 'allow', 'protocol': 'icmp'},
            {'id': 'ping6', 'ruleset': 'LAN_IN', 'order': 2, 'action': 'block', 'protocol': 'icmpv6'},
        ])
        assert [(f.kind, f.primary_rule_id) for f in result.findings] == [
            (FindingKind.PermissiveRule, 'ping'),
        ]
