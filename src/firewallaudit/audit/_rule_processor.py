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

"""Rule processor pipeline base classes.

Implements the pull-based chain pattern:
- Each processor has a tmp_queue and a prev_processor reference.
- get_next_rule() calls process_next() until tmp_queue is non-empty.
- The analyzer drives the chain by pulling from the last processor, so
  each rule passes through every processor before the next one enters,
  which keeps findings in ascending-order discovery sequence.
"""

from __future__ import annotations

from collections import deque
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from firewallaudit.audit._analyzer import RulesetAnalyzer
    from firewallaudit.audit._rule import Rule


class BasicRuleProcessor:
    """Base class for all rule processors in the analysis pipeline."""

    def __init__(self, name: str = '') -> None:
        self.analyzer: RulesetAnalyzer | None = None
        self.prev_processor: BasicRuleProcessor | None = None
        self.tmp_queue: deque[Rule] = deque()
        self.name: str = name

    def set_context(self, analyzer: RulesetAnalyzer) -> None:
        """Set the analyzer context for this processor."""
        self.analyzer = analyzer

    def set_data_source(self, src: BasicRuleProcessor) -> None:
        """Link this processor to its upstream data source."""
        self.prev_processor = src

    def get_next_rule(self) -> Rule | None:
        """Pull-based: keep calling process_next() until queue has data."""
        while not self.tmp_queue and self.process_next():
            pass
        if self.tmp_queue:
            return self.tmp_queue.popleft()
        return None

    def process_next(self) -> bool:
        """Process next rule(s). Must be overridden by subclasses.

        Returns True if more rules may be available, False when done.
        Implementation should put processed rules into self.tmp_queue.
        """
        raise NotImplementedError

    def get_next(self) -> Rule | None:
        """Pull the next rule from upstream, None when exhausted."""
        assert self.prev_processor is not None
        return self.prev_processor.get_next_rule()


class RuleFilter(BasicRuleProcessor):
    """Convenience base for processors that drop or pass single rules."""

    def keep(self, rule: Rule) -> bool:
        raise NotImplementedError

    def process_next(self) -> bool:
        rule = self.get_next()
        if rule is None:
            return False
        if self.keep(rule):
            self.tmp_queue.append(rule)
        return True


class RuleInspector(BasicRuleProcessor):
    """Convenience base for processors that report on rules and pass them all on."""

    def inspect(self, rule: Rule) -> None:
        raise NotImplementedError

    def process_next(self) -> bool:
        rule = self.get_next()
        if rule is None:
            return False
        self.inspect(rule)
        self.tmp_queue.append(rule)
        return True
