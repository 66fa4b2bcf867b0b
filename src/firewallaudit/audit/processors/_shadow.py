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

"""Shadow, redundancy and permissiveness detection.

Both processors expect enabled ACL rules only, in ascending order.
"""

from __future__ import annotations

import logging

from firewallaudit.audit._containment import contains, narrower_dimensions
from firewallaudit.audit._reachability import reaches
from firewallaudit.audit._rule_processor import BasicRuleProcessor, RuleInspector
from firewallaudit.core.objects import FindingKind, Protocol, RuleAction

logger = logging.getLogger(__name__)


def _is_reported(analyzer, rule) -> bool:
    return not (rule.predefined and analyzer.settings.skip_predefined)


class DetectShadowing(BasicRuleProcessor):
    """Detect rules that an earlier rule in the same ruleset completely covers.

    For each rule the earlier rules are scanned in ascending order and the
    first one that contains it is reported (every one of them when
    ``report_all_shadowing`` is set):

    - same action: RedundantRule
    - allow before block: ShadowedByAllow, the block never executes
    - block before allow: AllowException when the allow is strictly
      narrower in some address or port dimension, ShadowedByBlock
      otherwise

    The first containing predecessor of every rule is recorded in the
    analyzer's ``shadowed_by`` map, which the isolation check reuses.
    """

    def __init__(self, name: str = 'Detect shadowing') -> None:
        super().__init__(name)
        self._rules_seen = []

    def process_next(self) -> bool:
        rule = self.get_next()
        if rule is None:
            return False

        self.tmp_queue.append(rule)
        analyzer = self.analyzer

        for prev in self._rules_seen:
            if not contains(prev, rule):
                continue
            kind, message = self._classify(prev, rule)
            if rule.id not in analyzer.shadowed_by:
                analyzer.shadowed_by[rule.id] = (prev, kind)
            logger.debug('Rule %s is covered by %s (%s)', rule.label, prev.label, kind)
            if _is_reported(analyzer, rule):
                analyzer.report(kind, message, rule=rule, related=prev)
            if not analyzer.settings.report_all_shadowing:
                break

        self._rules_seen.append(rule)
        return True

    @staticmethod
    def _classify(prev, rule):
        if prev.action == rule.action:
            return (
                FindingKind.RedundantRule,
                f"Rule '{rule.label}' is redundant: rule '{prev.label}' above it "
                f'already {prev.action.name.lower()}s all of its traffic',
            )
        if prev.action == RuleAction.Allow:
            return (
                FindingKind.ShadowedByAllow,
                f"Block rule '{rule.label}' never takes effect: allow rule "
                f"'{prev.label}' above it accepts all of its traffic first",
            )
        narrower = narrower_dimensions(prev, rule)
        if narrower:
            return (
                FindingKind.AllowException,
                f"Allow rule '{rule.label}' looks like an exception to block rule "
                f"'{prev.label}' (narrower {', '.join(narrower)}) but is placed "
                'below it and never takes effect',
            )
        return (
            FindingKind.ShadowedByBlock,
            f"Allow rule '{rule.label}' never takes effect: block rule "
            f"'{prev.label}' above it drops all of its traffic first",
        )


class DetectPermissiveRules(RuleInspector):
    """Classify allow rules that are broader than a segmented network should have.

    - AnyAny: any source, destination, port and protocol
    - BroadRule: any source or destination, and some traffic it allows
      crosses an isolation boundary of the inventory
    - PermissiveRule: any source and destination but port or protocol
      scoped, or one side any with all ports and protocols
    """

    def __init__(self, name: str = 'Detect permissive rules') -> None:
        super().__init__(name)

    def inspect(self, rule) -> None:
        analyzer = self.analyzer
        if rule.action != RuleAction.Allow or not _is_reported(analyzer, rule):
            return

        source_any = rule.source.is_any
        destination_any = rule.destination.is_any and rule.web_domains is None
        ports_any = rule.source_ports.is_any and rule.destination_ports.is_any
        protocol_any = rule.protocol == Protocol.Any

        if source_any and destination_any and ports_any and protocol_any:
            analyzer.report(
                FindingKind.AnyAny,
                f"Rule '{rule.label}' allows any traffic from any source to any destination",
                rule=rule,
            )
            return
        if not (source_any or destination_any):
            return

        pair = self._isolation_boundary(rule)
        if pair is not None:
            src, dst = pair
            analyzer.report(
                FindingKind.BroadRule,
                f"Rule '{rule.label}' allows traffic from network '{src.name or src.id}' "
                f"to network '{dst.name or dst.id}', which must be isolated",
                rule=rule,
                networks=[src.id, dst.id],
            )
        elif (source_any and destination_any) or (ports_any and protocol_any):
            side = 'source and destination' if source_any and destination_any else (
                'source' if source_any else 'destination'
            )
            analyzer.report(
                FindingKind.PermissiveRule,
                f"Rule '{rule.label}' allows any {side}",
                rule=rule,
            )

    def _isolation_boundary(self, rule):
        for a, b in self.analyzer.inventory.isolation_pairs:
            for src, dst in ((a, b), (b, a)):
                if reaches(rule, src, dst):
                    return src, dst
        return None
