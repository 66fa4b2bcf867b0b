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

"""Zone, Network and RequiredPathRecord inventory models."""

from __future__ import (
    annotations,  # This is needed since SQLAlchemy does not support forward references yet
)

import sqlalchemy
import sqlalchemy.orm

from ._base import Base
from ._types import NetworkPurpose


class Zone(Base):
    """Firewall zone (external, internal, dmz, ...)."""

    __tablename__ = 'zones'

    id: sqlalchemy.orm.Mapped[str] = sqlalchemy.orm.mapped_column(
        sqlalchemy.String,
        primary_key=True,
    )
    key: sqlalchemy.orm.Mapped[str] = sqlalchemy.orm.mapped_column(
        sqlalchemy.String,
        default='',
    )
    name: sqlalchemy.orm.Mapped[str] = sqlalchemy.orm.mapped_column(
        sqlalchemy.String,
        default='',
    )


class Network(Base):
    """Network segment (VLAN) with its zone membership.

    ``firewall_zone_id`` is deliberately not a foreign key: snapshots may
    reference zones that are missing from the zone inventory, and such
    networks must still load.
    """

    __tablename__ = 'networks'

    id: sqlalchemy.orm.Mapped[str] = sqlalchemy.orm.mapped_column(
        sqlalchemy.String,
        primary_key=True,
    )
    name: sqlalchemy.orm.Mapped[str] = sqlalchemy.orm.mapped_column(
        sqlalchemy.String,
        default='',
    )
    vlan_id: sqlalchemy.orm.Mapped[int | None] = sqlalchemy.orm.mapped_column(
        sqlalchemy.Integer,
        nullable=True,
    )
    subnet: sqlalchemy.orm.Mapped[str | None] = sqlalchemy.orm.mapped_column(
        sqlalchemy.String,
        nullable=True,
    )
    firewall_zone_id: sqlalchemy.orm.Mapped[str | None] = sqlalchemy.orm.mapped_column(
        sqlalchemy.String,
        nullable=True,
        index=True,
    )
    isolation_required: sqlalchemy.orm.Mapped[bool] = sqlalchemy.orm.mapped_column(
        sqlalchemy.Boolean,
        default=False,
    )
    purpose: sqlalchemy.orm.Mapped[str] = sqlalchemy.orm.mapped_column(
        sqlalchemy.String,
        default=NetworkPurpose.Unknown.value,
    )


class RequiredPathRecord(Base):
    """Traffic a network must keep being allowed to send.

    ``predicate`` holds the raw rule mapping; it is normalized when the
    inventory is exported to the audit engine.
    """

    __tablename__ = 'required_paths'

    id: sqlalchemy.orm.Mapped[int] = sqlalchemy.orm.mapped_column(
        sqlalchemy.Integer,
        primary_key=True,
        autoincrement=True,
    )
    name: sqlalchemy.orm.Mapped[str] = sqlalchemy.orm.mapped_column(
        sqlalchemy.String,
    )
    network_id: sqlalchemy.orm.Mapped[str] = sqlalchemy.orm.mapped_column(
        sqlalchemy.String,
    )
    description: sqlalchemy.orm.Mapped[str] = sqlalchemy.orm.mapped_column(
        sqlalchemy.Text,
        default='',
    )
    predicate: sqlalchemy.orm.Mapped[dict] = sqlalchemy.orm.mapped_column(
        sqlalchemy.JSON,
        default=dict,
    )
