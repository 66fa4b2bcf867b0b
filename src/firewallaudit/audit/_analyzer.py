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

"""RulesetAnalyzer and PolicyAuditor: drive the analysis of a whole policy.

Each ruleset is analyzed independently by its own processor chain; the
inventory-wide coverage checks run once every ruleset is done, because
they need the shadow results of all of them.
"""

from __future__ import annotations

import concurrent.futures
import dataclasses
import logging
import time

from firewallaudit.core.options import AuditSettings

from ._base import AuditStatus, BaseAnalyzer
from ._inventory import Inventory
from ._normalizer import group_by_ruleset, normalize
from ._rule import Finding, Rule
from .processors._coverage import CoverageChecker, DetectOrphanedReferences
from .processors._generic import (
    Begin,
    ReportMatchAnomalies,
    SkipDisabledRules,
    SkipNonAclRules,
)
from .processors._shadow import DetectPermissiveRules, DetectShadowing

logger = logging.getLogger(__name__)


class RulesetAnalyzer(BaseAnalyzer):
    """Runs the processor chain over the rules of one ruleset."""

    def __init__(
            self,
            ruleset: str,
            rules: list[Rule],
            inventory: Inventory,
            settings: AuditSettings,
    ) -> None:
        super().__init__()
        self.ruleset = ruleset
        self.rules = list(rules)
        self.inventory = inventory
        self.settings = settings
        self.rule_processors = []
        # rule id -> (first containing predecessor, FindingKind)
        self.shadowed_by: dict[str, tuple[Rule, str]] = {}

    def add(self, rp) -> None:
        """Add a processor to the chain."""
        self.rule_processors.append(rp)

    def run_rule_processors(self) -> None:
        """Link and execute the processor pipeline."""
        if not self.rule_processors:
            return

        self.rule_processors[0].set_context(self)
        for i in range(1, len(self.rule_processors)):
            self.rule_processors[i].set_context(self)
            self.rule_processors[i].set_data_source(self.rule_processors[i - 1])

        # Execute: call process_next() on the LAST processor
        last = self.rule_processors[-1]
        while last.process_next():
            pass

    def analyze(self) -> list[Finding]:
        self.add(Begin())
        self.add(DetectOrphanedReferences())
        self.add(ReportMatchAnomalies())
        self.add(SkipDisabledRules())
        self.add(SkipNonAclRules())
        self.add(DetectPermissiveRules())
        self.add(DetectShadowing())
        self.run_rule_processors()
        logger.debug(
            'Ruleset %s: %d rules, %d findings',
            self.ruleset,
            len(self.rules),
            len(self._findings),
        )
        return self.get_findings()


@dataclasses.dataclass
class AuditResult:
    findings: list[Finding] = dataclasses.field(default_factory=list)
    completed_rulesets: list[str] = dataclasses.field(default_factory=list)
    skipped_rulesets: list[str] = dataclasses.field(default_factory=list)
    coverage_checked: bool = False

    @property
    def status(self) -> AuditStatus:
        return AuditStatus.AUDIT_FINDINGS if self.findings else AuditStatus.AUDIT_CLEAN


class PolicyAuditor:
    """Analyzes every ruleset of a policy and merges the findings.

    Rulesets run on a thread pool (``max_workers`` of 1 runs them in the
    calling thread). Once ``deadline_seconds`` have passed no further
    ruleset is started; the rulesets already analyzed are kept and the
    rest are reported as skipped. The coverage checks need every ruleset
    and are skipped as well in that case.
    """

    def __init__(self, inventory: Inventory | None = None, settings: AuditSettings | None = None) -> None:
        self.inventory = inventory or Inventory()
        self.settings = settings or AuditSettings()

    def run(self, rules) -> AuditResult:
        rules = list(rules)
        groups = group_by_ruleset(rules)
        deadline = None
        if self.settings.deadline_seconds is not None:
            deadline = time.monotonic() + self.settings.deadline_seconds

        def work(ruleset):
            if deadline is not None and time.monotonic() > deadline:
                return None
            analyzer = RulesetAnalyzer(ruleset, groups[ruleset], self.inventory, self.settings)
            analyzer.analyze()
            return analyzer

        names = list(groups)
        if self.settings.max_workers == 1 or len(names) <= 1:
            analyzers = [work(name) for name in names]
        else:
            with concurrent.futures.ThreadPoolExecutor(max_workers=self.settings.max_workers) as executor:
                futures = {executor.submit(work, name): name for name in names}
                done = {}
                for future in concurrent.futures.as_completed(futures):
                    done[futures[future]] = future.result()
            analyzers = [done[name] for name in names]

        result = AuditResult()
        shadowed_by = {}
        for name, analyzer in zip(names, analyzers, strict=True):
            if analyzer is None:
                result.skipped_rulesets.append(name)
                continue
            result.completed_rulesets.append(name)
            result.findings.extend(analyzer.get_findings())
            shadowed_by.update(analyzer.shadowed_by)

        if result.skipped_rulesets:
            logger.warning(
                'Deadline of %ss exceeded, skipped rulesets: %s; coverage checks not run',
                self.settings.deadline_seconds,
                ', '.join(result.skipped_rulesets),
            )
        else:
            checker = CoverageChecker(rules, self.inventory, shadowed_by)
            result.findings.extend(checker.check())
            result.coverage_checked = True

        logger.info(
            'Audited %d rulesets (%d skipped): %d findings',
            len(result.completed_rulesets),
            len(result.skipped_rulesets),
            len(result.findings),
        )
        return result


def analyze(rules, inventory: Inventory | None = None, settings: AuditSettings | None = None) -> list[Finding]:
    """Analyze canonical *rules* against *inventory* and return the findings."""
    return PolicyAuditor(inventory, settings).run(rules).findings


def audit(raw_rules, inventory: Inventory | None = None, settings: AuditSettings | None = None) -> AuditResult:
    """Normalize *raw_rules* and analyze them in one go.

    Raises RuleStructureError when a raw rule is structurally malformed.
    """
    rules = normalize(raw_rules, inventory, settings)
    return PolicyAuditor(inventory, settings).run(rules)
