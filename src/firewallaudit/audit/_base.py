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

"""BaseAnalyzer: finding collection and status tracking for all analyzers."""

from __future__ import annotations

import logging
from enum import IntEnum

from firewallaudit.core.objects import FindingKind, Severity

from ._rule import DEFAULT_SEVERITY, Finding, Rule

logger = logging.getLogger(__name__)


class AuditStatus(IntEnum):
    """Audit exit status codes."""

    AUDIT_CLEAN = 0
    AUDIT_FINDINGS = 1
    AUDIT_ERROR = 2


class BaseAnalyzer:
    """Base class providing finding collection and status tracking."""

    def __init__(self) -> None:
        self._status: AuditStatus = AuditStatus.AUDIT_CLEAN
        self._findings: list[Finding] = []

    @property
    def status(self) -> AuditStatus:
        return self._status

    def report(
            self,
            kind: FindingKind,
            message: str,
            rule: Rule | None = None,
            related: Rule | None = None,
            zones: tuple[str | None, ...] | None = None,
            severity: Severity | None = None,
            ruleset: str | None = None,
            **metadata,
    ) -> Finding:
        """Record a finding about *rule* (or the inventory when *rule* is None).

        *zones* defaults to the rule's zone pair.
        """
        if zones is None and rule is not None:
            zones = (rule.source_zone_id, rule.destination_zone_id)
        zones_involved = tuple(dict.fromkeys(z for z in (zones or ()) if z))
        finding = Finding(
            kind=kind,
            message=message,
            severity=DEFAULT_SEVERITY[kind] if severity is None else severity,
            primary_rule_id=rule.id if rule is not None else None,
            related_rule_id=related.id if related is not None else None,
            zones_involved=zones_involved,
            ruleset=ruleset if ruleset is not None else (rule.ruleset if rule is not None else None),
            metadata=metadata,
        )
        self._findings.append(finding)
        logger.debug('%s: %s', kind, message)
        if self._status == AuditStatus.AUDIT_CLEAN:
            self._status = AuditStatus.AUDIT_FINDINGS
        return finding

    def get_findings(self) -> list[Finding]:
        return list(self._findings)
