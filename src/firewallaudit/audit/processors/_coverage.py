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

"""Policy coverage checks: orphaned references, isolation and required paths."""

from __future__ import annotations

import dataclasses
import logging

from firewallaudit.audit._base import BaseAnalyzer
from firewallaudit.audit._containment import intersects
from firewallaudit.audit._normalizer import LEGACY_ZONE_IDS
from firewallaudit.audit._reachability import network_spec, reaches
from firewallaudit.audit._rule_processor import RuleInspector
from firewallaudit.core.objects import (
    EntityKind,
    FindingKind,
    NetworkPurpose,
    RuleAction,
    Severity,
)

logger = logging.getLogger(__name__)

_LEGACY_ZONES = frozenset(LEGACY_ZONE_IDS.values())

# Purpose pairs whose missing isolation is critical rather than recommended.
_CRITICAL_PURPOSE_PAIRS = frozenset(
    frozenset(pair) for pair in (
        (NetworkPurpose.Guest, NetworkPurpose.Corporate),
        (NetworkPurpose.Guest, NetworkPurpose.Management),
        (NetworkPurpose.Guest, NetworkPurpose.Security),
        (NetworkPurpose.Management, NetworkPurpose.IoT),
        (NetworkPurpose.Management, NetworkPurpose.Corporate),
        (NetworkPurpose.Management, NetworkPurpose.Home),
        (NetworkPurpose.Management, NetworkPurpose.Security),
    )
)

_BLOCK_WINS = (FindingKind.ShadowedByBlock, FindingKind.AllowException)


def _display(network) -> str:
    return network.name or network.id


class DetectOrphanedReferences(RuleInspector):
    """Report rules that reference zones, networks or groups the inventory lacks.

    Zone references are only checked when the inventory knows any zone, and
    network references only when it knows any network; legacy pseudo-zones
    never count as missing.
    """

    def __init__(self, name: str = 'Detect orphaned references') -> None:
        super().__init__(name)

    def inspect(self, rule) -> None:
        analyzer = self.analyzer
        if not rule.enabled and not analyzer.settings.check_disabled_orphans:
            return
        inventory = analyzer.inventory

        missing_zones = []
        if inventory.zones:
            for zone_id in (rule.source_zone_id, rule.destination_zone_id):
                if zone_id and zone_id not in _LEGACY_ZONES and zone_id not in inventory.zone_ids:
                    missing_zones.append(zone_id)

        missing_networks = []
        if inventory.networks:
            for spec in (rule.source, rule.destination):
                if spec.kind == EntityKind.Network:
                    missing_networks.extend(i for i in spec.items if i not in inventory.network_ids)

        missing_groups = list(rule.unresolved_groups)
        if not (missing_zones or missing_networks or missing_groups):
            return

        parts = []
        if missing_zones:
            parts.append(f'zones {", ".join(dict.fromkeys(missing_zones))}')
        if missing_networks:
            parts.append(f'networks {", ".join(dict.fromkeys(missing_networks))}')
        if missing_groups:
            parts.append(f'groups {", ".join(missing_groups)}')
        logger.warning('Rule %s references unknown %s', rule.label, '; '.join(parts))
        analyzer.report(
            FindingKind.OrphanedRule,
            f"Rule '{rule.label}' references objects that no longer exist: {'; '.join(parts)}",
            rule=rule,
            missing_zones=list(dict.fromkeys(missing_zones)),
            missing_networks=list(dict.fromkeys(missing_networks)),
            missing_groups=missing_groups,
        )


class CoverageChecker(BaseAnalyzer):
    """Inventory-wide checks run after every ruleset has been analyzed.

    *shadowed_by* maps a rule id to its first containing predecessor and
    the kind of that relation, as recorded by DetectShadowing.
    """

    def __init__(self, rules, inventory, shadowed_by) -> None:
        super().__init__()
        self.rules = list(rules)
        self.inventory = inventory
        self.shadowed_by = shadowed_by

    def check(self):
        self.check_isolation()
        self.check_required_paths()
        return self.get_findings()

    def _enabled(self, action):
        return [r for r in self.rules if r.enabled and r.action == action]

    def _bypassed(self, block) -> bool:
        entry = self.shadowed_by.get(block.id)
        return entry is not None and entry[1] == FindingKind.ShadowedByAllow

    def check_isolation(self) -> None:
        blocks = self._enabled(RuleAction.Block)
        for a, b in self.inventory.isolation_pairs:
            missing = []
            bypassed = []
            for src, dst in ((a, b), (b, a)):
                matching = [r for r in blocks if reaches(r, src, dst)]
                if not matching:
                    missing.append((src, dst))
                elif all(self._bypassed(r) for r in matching):
                    bypassed.append((src, dst, matching[0]))

            zones = (a.firewall_zone_id, b.firewall_zone_id)
            if missing:
                directions = [f'{_display(s)} -> {_display(d)}' for s, d in missing]
                severity = Severity.Recommended
                if frozenset((a.purpose, b.purpose)) in _CRITICAL_PURPOSE_PAIRS:
                    severity = Severity.Critical
                self.report(
                    FindingKind.MissingIsolation,
                    f"Networks '{_display(a)}' and '{_display(b)}' must be isolated, "
                    f'but no block rule covers {" and ".join(directions)}',
                    zones=zones,
                    severity=severity,
                    networks=[a.id, b.id],
                    directions=directions,
                )
            elif bypassed:
                src, dst, block = bypassed[0]
                allow = self.shadowed_by[block.id][0]
                self.report(
                    FindingKind.IsolationBypassed,
                    f"Block rule '{block.label}' isolating '{_display(src)}' from "
                    f"'{_display(dst)}' never takes effect: allow rule '{allow.label}' "
                    'above it accepts the traffic first',
                    rule=block,
                    related=allow,
                    zones=zones,
                    networks=[a.id, b.id],
                    directions=[f'{_display(s)} -> {_display(d)}' for s, d, _ in bypassed],
                )

    def _grants(self, rule, network, path) -> bool:
        entry = self.shadowed_by.get(rule.id)
        if entry is not None and entry[1] in _BLOCK_WINS:
            return False
        predicate = path.predicate
        query = dataclasses.replace(
            predicate,
            source=network_spec(network, rule.source),
            source_zone_id=predicate.source_zone_id or network.firewall_zone_id,
        )
        return intersects(rule, query)

    def check_required_paths(self) -> None:
        allows = self._enabled(RuleAction.Allow)
        for path in self.inventory.required_paths:
            network = self.inventory.network(path.network_id)
            if network is None:
                logger.warning(
                    'Required path %s: unknown network %s, skipped', path.name, path.network_id,
                )
                continue
            if any(self._grants(r, network, path) for r in allows):
                continue
            what = path.description or str(path.predicate)
            self.report(
                FindingKind.MissingRequiredAccess,
                f"Network '{_display(network)}' has no allow rule for required "
                f"access '{path.name}' ({what})",
                zones=(network.firewall_zone_id, path.predicate.destination_zone_id),
                path=path.name,
                network=network.id,
            )
