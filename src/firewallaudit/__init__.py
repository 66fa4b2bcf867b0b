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

"""FirewallAudit: firewall policy analysis engine.

``normalize()`` turns raw rule records into canonical rules, ``analyze()``
reports shadowed, redundant and overly permissive rules as well as gaps in
network isolation, and ``audit()`` does both in one call.
"""

__version__ = '0.1.0'

from firewallaudit.audit import (  # noqa: E402
    AuditResult,
    Finding,
    Inventory,
    NetworkInfo,
    RequiredPath,
    Rule,
    ZoneInfo,
    analyze,
    audit,
    normalize,
)
from firewallaudit.core import AuditError, RuleStructureError, SnapshotError  # noqa: E402

__all__ = [
    'AuditError',
    'AuditResult',
    'Finding',
    'Inventory',
    'NetworkInfo',
    'RequiredPath',
    'Rule',
    'RuleStructureError',
    'SnapshotError',
    'ZoneInfo',
    '__version__',
    'analyze',
    'audit',
    'normalize',
]
