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

"""Exceptions raised by the loaders and the audit engine."""

from __future__ import annotations


class AuditError(Exception):
    """Base class for errors that abort an audit run."""


class RuleStructureError(AuditError):
    """A raw rule record is structurally malformed.

    Partial analysis would be misleading, so the whole run is aborted.
    """

    def __init__(
            self,
            msg: str,
            *,
            position: int | None = None,
            rule_id: str | None = None,
            field: str | None = None,
    ) -> None:
        self.position = position
        self.rule_id = rule_id
        self.field = field
        where = []
        if position is not None:
            where.append(f'#{position}')
        if rule_id:
            where.append(f'id={rule_id}')
        if where:
            msg = f'Rule {" ".join(where)}: {msg}'
        super().__init__(msg)


class SnapshotError(AuditError):
    """A snapshot file cannot be read or has the wrong shape."""
