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

from firewallaudit.core import AuditError, RuleStructureError, SnapshotError

from ._analyzer import AuditResult, PolicyAuditor, RulesetAnalyzer, analyze, audit
from ._base import AuditStatus, BaseAnalyzer
from ._containment import contains, intersects
from ._inventory import Inventory, NetworkInfo, RequiredPath, ZoneInfo, load_inventory
from ._normalizer import LEGACY_ZONE_IDS, RuleNormalizer, group_by_ruleset, normalize
from ._rule import Finding, Rule
from ._specs import ANY_ENTITY, ANY_PORTS, EntitySpec, PortSpec

__all__ = [
    'ANY_ENTITY',
    'ANY_PORTS',
    'LEGACY_ZONE_IDS',
    'AuditError',
    'AuditResult',
    'AuditStatus',
    'BaseAnalyzer',
    'EntitySpec',
    'Finding',
    'Inventory',
    'NetworkInfo',
    'PolicyAuditor',
    'PortSpec',
    'RequiredPath',
    'Rule',
    'RuleNormalizer',
    'RuleStructureError',
    'RulesetAnalyzer',
    'SnapshotError',
    'ZoneInfo',
    'analyze',
    'audit',
    'contains',
    'group_by_ruleset',
    'intersects',
    'load_inventory',
    'normalize',
]
