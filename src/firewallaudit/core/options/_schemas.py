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

"""Typed option schemas with shared defaults.

``AuditDefaults`` is the single source of truth for what options exist,
their types and default values. ``AuditSettings`` adds the coercion of
loosely-typed values as they come out of a snapshot file or the command
line.
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Mapping

from firewallaudit.core import parse_bool

from ._keys import AuditOption

logger = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True)
class AuditDefaults:
    """Default values for audit options.

    ``max_workers`` of None lets the executor pick its default, 1 runs
    rulesets serially. ``deadline_seconds`` of None means no deadline.
    """

    # Shadow analysis
    report_all_shadowing: bool = False
    skip_predefined: bool = True

    # Coverage checks
    check_disabled_orphans: bool = True

    # Normalization
    legacy_zone_mapping: bool = True

    # Execution
    max_workers: int | None = None
    deadline_seconds: float | None = None


def _to_bool(key, value):
    result = parse_bool(value)
    if result is None:
        raise ValueError(f'Option {key}: expected a boolean, got {value!r}')
    return result


def _to_optional(key, value, kind):
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    try:
        result = kind(value)
    except (TypeError, ValueError):
        raise ValueError(f'Option {key}: expected a number, got {value!r}') from None
    if result <= 0:
        raise ValueError(f'Option {key}: must be positive, got {value!r}')
    return result


@dataclasses.dataclass(frozen=True)
class AuditSettings(AuditDefaults):
    """Effective settings of one audit run."""

    @classmethod
    def from_options(cls, options: Mapping | None = None, **overrides) -> AuditSettings:
        """Build settings from an option mapping.

        Unknown keys are ignored with a warning. Keyword *overrides* win
        over *options*; an override of None keeps the option value.
        """
        merged = dict(options or {})
        merged.update({k: v for k, v in overrides.items() if v is not None})
        values = {}
        known = {o.value for o in AuditOption}
        for key, value in merged.items():
            key = str(key)
            if key not in known:
                logger.warning('Ignoring unknown audit option %r', key)
                continue
            match AuditOption(key):
                case AuditOption.MAX_WORKERS:
                    values[key] = _to_optional(key, value, int)
                case AuditOption.DEADLINE_SECONDS:
                    values[key] = _to_optional(key, value, float)
                case _:
                    values[key] = _to_bool(key, value)
        return cls(**values)


AUDIT_DEFAULTS = AuditDefaults()
