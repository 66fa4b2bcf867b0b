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

"""Canonical audit option keys using StrEnum.

The keys double as the names accepted in the ``options`` section of a
snapshot file, so a typo in code fails at import time while a typo in a
snapshot is reported as an unknown option.
"""

from enum import StrEnum


class AuditOption(StrEnum):
    """Option keys controlling an audit run."""

    # Shadow analysis
    REPORT_ALL_SHADOWING = 'report_all_shadowing'
    SKIP_PREDEFINED = 'skip_predefined'

    # Coverage checks
    CHECK_DISABLED_ORPHANS = 'check_disabled_orphans'

    # Normalization
    LEGACY_ZONE_MAPPING = 'legacy_zone_mapping'

    # Execution
    MAX_WORKERS = 'max_workers'
    DEADLINE_SECONDS = 'deadline_seconds'
