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

from ._database import InventoryDatabase
from ._errors import AuditError, RuleStructureError, SnapshotError
from ._util import ParseResult, coerce_bool, parse_bool
from ._yaml_reader import SnapshotReader

__all__ = [
    'AuditError',
    'InventoryDatabase',
    'ParseResult',
    'RuleStructureError',
    'SnapshotError',
    'SnapshotReader',
    'coerce_bool',
    'parse_bool',
]
