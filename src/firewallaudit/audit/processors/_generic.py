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

"""Generic processors: pipeline entry, filters and anomaly reporting."""

from __future__ import annotations

from firewallaudit.audit._rule_processor import (
    BasicRuleProcessor,
    RuleFilter,
    RuleInspector,
)
from firewallaudit.core.objects import FindingKind


class Begin(BasicRuleProcessor):
    """Injects the analyzer's rules into the pipeline, in ascending order."""

    def __init__(self, name: str = 'Begin') -> None:
        super().__init__(name)
        self._init = False

    def process_next(self) -> bool:
        if not self._init:
            self.tmp_queue.extend(sorted(self.analyzer.rules, key=lambda r: r.order))
            self._init = True
            return bool(self.tmp_queue)
        return False


class SkipDisabledRules(RuleFilter):
    """Drops disabled rules: they can neither shadow nor be shadowed."""

    def __init__(self, name: str = 'Skip disabled rules') -> None:
        super().__init__(name)

    def keep(self, rule) -> bool:
        return rule.enabled


class SkipNonAclRules(RuleFilter):
    """Drops NAT and other rules that are neither allow nor block."""

    def __init__(self, name: str = 'Skip non-ACL rules') -> None:
        super().__init__(name)

    def keep(self, rule) -> bool:
        return rule.is_acl


class ReportMatchAnomalies(RuleInspector):
    def __init__(self, name: str = 'Report match anomalies') -> None:
        super().__init__(name)

    def inspect(self, rule) -> None:
        if not rule.anomalies:
            return
        self.analyzer.report(
            FindingKind.MalformedMatch,
            f"Rule '{rule.label}' has malformed match criteria and matches nothing: "
            + '; '.join(rule.anomalies),
            rule=rule,
            anomalies=list(rule.anomalies),
        )
