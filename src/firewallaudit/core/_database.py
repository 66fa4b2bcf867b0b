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

import contextlib
import logging
import pathlib

import sqlalchemy
import sqlalchemy.exc
import sqlalchemy.orm

from . import objects
from ._errors import SnapshotError
from ._util import ParseResult, coerce_bool
from ._yaml_reader import SnapshotReader

logger = logging.getLogger(__name__)


class InventoryDatabase:
    """In-memory object database holding the zone/network inventory of a snapshot.

    Rules and options are not persisted; they are kept as the raw records
    of the last loaded snapshot in ``raw_rules`` and ``options``.
    """

    def __init__(self, connection_string='sqlite:///:memory:'):
        self.engine = sqlalchemy.create_engine(connection_string, echo=False)
        self._session_factory = sqlalchemy.orm.sessionmaker(self.engine)
        self.raw_rules = []
        self.options = {}
        self._reset_db(True)

    @contextlib.contextmanager
    def session(self):
        """Create a new database session. The transaction is committed when the contextmanager exits and rolled back on error."""
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def load(self, path):
        path = pathlib.Path(path)
        logger.debug('Loading snapshot from %s', path)
        match path.suffix:
            case '.yml' | '.yaml' | '.json':
                data = SnapshotReader().parse(path)
            case _:
                raise SnapshotError(f'Unsupported file extension: {path}')
        self._reset_db(True)
        self._import(data)
        return data

    def load_data(self, data):
        """Load an already parsed snapshot mapping (as produced by ``yaml.safe_load``)."""
        result = SnapshotReader().parse_data(data)
        self._reset_db(True)
        self._import(result)
        return result

    def _import(self, data: ParseResult):
        zones = {}
        for raw in data.zones:
            zone_id = _require_id(raw, 'zone')
            if zone_id in zones:
                raise SnapshotError(f'Duplicate zone id {zone_id!r}')
            zones[zone_id] = objects.Zone(
                id=zone_id,
                key=str(raw.get('key') or raw.get('zone_key') or '').lower(),
                name=str(raw.get('name') or ''),
            )

        networks = {}
        for raw in data.networks:
            network_id = _require_id(raw, 'network')
            if network_id in networks:
                raise SnapshotError(f'Duplicate network id {network_id!r}')
            networks[network_id] = objects.Network(
                id=network_id,
                name=str(raw.get('name') or ''),
                vlan_id=_optional_int(raw.get('vlan_id', raw.get('vlan')), network_id),
                subnet=(str(raw['subnet']) if raw.get('subnet') else None),
                firewall_zone_id=(
                    str(raw['firewall_zone_id']) if raw.get('firewall_zone_id') else None
                ),
                isolation_required=coerce_bool(raw.get('isolation_required')),
                purpose=str(raw.get('purpose') or objects.NetworkPurpose.Unknown).lower(),
            )

        paths = []
        for i, raw in enumerate(data.required_paths):
            if not raw.get('network_id'):
                raise SnapshotError(f'required_paths[{i}]: missing network_id')
            predicate = raw.get('predicate') or {}
            if not isinstance(predicate, dict):
                raise SnapshotError(f'required_paths[{i}]: predicate must be a mapping')
            paths.append(objects.RequiredPathRecord(
                name=str(raw.get('name') or f'required-path-{i}'),
                network_id=str(raw['network_id']),
                description=str(raw.get('description') or ''),
                predicate=predicate,
            ))

        try:
            with self.session() as session:
                session.add_all(zones.values())
                session.add_all(networks.values())
                session.add_all(paths)
        except sqlalchemy.exc.SQLAlchemyError as e:
            raise SnapshotError(f'Cannot import inventory: {e}') from e

        self.raw_rules = list(data.rules)
        self.options = dict(data.options)
        logger.info(
            'Loaded %d zones, %d networks, %d required paths and %d rules',
            len(zones),
            len(networks),
            len(paths),
            len(self.raw_rules),
        )

    def _reset_db(self, recreate_schema):
        logger.debug('Resetting database')
        objects.Base.metadata.drop_all(self.engine)
        if recreate_schema:
            objects.Base.metadata.create_all(self.engine)


def _require_id(raw, what):
    value = raw.get('id') or raw.get('_id')
    if not value:
        raise SnapshotError(f'{what.capitalize()} record without id: {raw!r}')
    return str(value)


def _optional_int(value, network_id):
    if value is None or value == '':
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise SnapshotError(f'Network {network_id!r}: invalid VLAN id {value!r}') from None
