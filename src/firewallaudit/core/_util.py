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

"""Shared helpers for the snapshot loader."""

from __future__ import annotations

import dataclasses

SECTIONS = ('zones', 'networks', 'required_paths', 'rules', 'options')


@dataclasses.dataclass
class ParseResult:
    """Raw sections of a snapshot file, still loosely typed."""

    zones: list[dict] = dataclasses.field(default_factory=list)
    networks: list[dict] = dataclasses.field(default_factory=list)
    required_paths: list[dict] = dataclasses.field(default_factory=list)
    rules: list[dict] = dataclasses.field(default_factory=list)
    options: dict = dataclasses.field(default_factory=dict)


TRUE_STRINGS = frozenset({'true', 'yes', 'on', '1'})
FALSE_STRINGS = frozenset({'false', 'no', 'off', '0', ''})


def parse_bool(value):
    """Return *value* as bool, or None if it is not a recognised boolean."""
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value != 0
    if isinstance(value, str):
        low = value.strip().lower()
        if low in TRUE_STRINGS:
            return True
        if low in FALSE_STRINGS:
            return False
    return None


def coerce_bool(value, default=False):
    """Coerce YAML/JSON booleans, including quoted ``"true"``, to bool."""
    if value is None:
        return default
    result = parse_bool(value)
    return bool(value) if result is None else result


def coerce_bools(d):
    """Coerce string booleans in a dict to Python bools.

    YAML normally handles this, but quoted values like ``"true"`` remain
    strings. Nested mappings are left alone.
    """
    if not isinstance(d, dict):
        return d
    coerced = {}
    for k, v in d.items():
        if isinstance(v, str) and v.lower() in ('true', 'false'):
            coerced[k] = v.lower() == 'true'
        else:
            coerced[k] = v
    return coerced
