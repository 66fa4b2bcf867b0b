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

"""YAML reader for device snapshots (zones, networks, rules, options).

JSON is a subset of YAML, so exported JSON snapshots load through the
same reader.
"""

import logging
import pathlib

import yaml

from ._errors import SnapshotError
from ._util import SECTIONS, ParseResult, coerce_bools

logger = logging.getLogger(__name__)


class SnapshotReader:
    """Parses a single snapshot file into a ParseResult."""

    def parse(self, input_path):
        input_path = pathlib.Path(input_path)
        try:
            with pathlib.Path.open(input_path, encoding='utf-8') as f:
                data = yaml.safe_load(f)
        except OSError as e:
            raise SnapshotError(f'Cannot read snapshot {input_path}: {e}') from e
        except yaml.YAMLError as e:
            raise SnapshotError(f'Invalid YAML in {input_path}: {e}') from e
        return self.parse_data(data, source=str(input_path))

    def parse_data(self, data, source='<data>'):
        """Validate the top-level shape of already loaded snapshot *data*."""
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise SnapshotError(f'{source}: top level must be a mapping')

        for key in data:
            if key not in SECTIONS:
                logger.debug('%s: ignoring unknown section %r', source, key)

        result = ParseResult()
        for section in ('zones', 'networks', 'required_paths', 'rules'):
            items = data.get(section) or []
            if not isinstance(items, list):
                raise SnapshotError(f'{source}: section {section!r} must be a list')
            for i, item in enumerate(items):
                if not isinstance(item, dict):
                    raise SnapshotError(
                        f'{source}: {section}[{i}] must be a mapping',
                    )
            # Rule records keep nested source/destination mappings as-is.
            if section == 'rules':
                getattr(result, section).extend(items)
            else:
                getattr(result, section).extend(coerce_bools(item) for item in items)

        options = data.get('options') or {}
        if not isinstance(options, dict):
            raise SnapshotError(f'{source}: section \'options\' must be a mapping')
        result.options = dict(options)

        logger.debug(
            '%s: %d zones, %d networks, %d required paths, %d rules',
            source,
            len(result.zones),
            len(result.networks),
            len(result.required_paths),
            len(result.rules),
        )
        return result
