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

"""Canonical Rule and Finding records."""

from __future__ import annotations

import dataclasses

from firewallaudit.core.objects import FindingKind, Protocol, RuleAction, Severity

from ._specs import ANY_ENTITY, ANY_PORTS, EntitySpec, PortSpec


@dataclasses.dataclass(frozen=True, slots=True)
class Rule:
    """A normalized access-control entry.

    Immutable once built; ``order`` is unique within ``ruleset`` and is the
    only meaningful sequence (first match wins). A zone id of None matches
    any zone, ``icmp_type`` None any ICMP type and ``web_domains`` None any
    destination domain.
    """

    id: str
    ruleset: str
    order: int
    action: RuleAction
    name: str = ''
    enabled: bool = True
    predefined: bool = False
    protocol: Protocol = Protocol.Any
    protocol_name: str = ''
    source_zone_id: str | None = None
    destination_zone_id: str | None = None
    source: EntitySpec = ANY_ENTITY
    destination: EntitySpec = ANY_ENTITY
    source_ports: PortSpec = ANY_PORTS
    destination_ports: PortSpec = ANY_PORTS
    icmp_type: str | None = None
    web_domains: frozenset[str] | None = None
    unresolved_groups: tuple[str, ...] = ()
    anomalies: tuple[str, ...] = ()

    @property
    def label(self) -> str:
        return f'{self.ruleset}#{self.order}' + (f' ({self.name})' if self.name else '')

    @property
    def is_acl(self) -> bool:
        return self.action in (RuleAction.Allow, RuleAction.Block)

    def __str__(self):
        zones = f'{self.source_zone_id or "*"}->{self.destination_zone_id or "*"}'
        proto = self.protocol_name or self.protocol.name.lower()
        text = (
            f'{self.action.name} {zones} {proto} '
            f'{self.source}:{self.source_ports} -> {self.destination}:{self.destination_ports}'
        )
        if self.icmp_type:
            text += f' icmp={self.icmp_type}'
        if self.web_domains:
            text += f' domains={",".join(sorted(self.web_domains))}'
        return text


DEFAULT_SEVERITY = {
    FindingKind.ShadowedByAllow: Severity.Critical,
    FindingKind.ShadowedByBlock: Severity.Recommended,
    FindingKind.RedundantRule: Severity.Informational,
    FindingKind.AllowException: Severity.Informational,
    FindingKind.PermissiveRule: Severity.Recommended,
    FindingKind.BroadRule: Severity.Recommended,
    FindingKind.OrphanedRule: Severity.Recommended,
    FindingKind.MissingIsolation: Severity.Recommended,
    FindingKind.IsolationBypassed: Severity.Critical,
    FindingKind.AnyAny: Severity.Critical,
    FindingKind.MalformedMatch: Severity.Informational,
    FindingKind.MissingRequiredAccess: Severity.Recommended,
}


@dataclasses.dataclass(frozen=True, slots=True)
class Finding:
    kind: FindingKind
    message: str
    severity: Severity
    primary_rule_id: str | None = None
    related_rule_id: str | None = None
    zones_involved: tuple[str, ...] = ()
    ruleset: str | None = None
    metadata: dict = dataclasses.field(default_factory=dict, hash=False, compare=False)

    def to_dict(self) -> dict:
        return {
            'kind': str(self.kind),
            'severity': self.severity.name.lower(),
            'ruleset': self.ruleset,
            'primary_rule_id': self.primary_rule_id,
            'related_rule_id': self.related_rule_id,
            'zones_involved': list(self.zones_involved),
            'message': self.message,
            'metadata': dict(self.metadata),
        }
