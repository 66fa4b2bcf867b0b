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

"""CLI entry point for auditing a device snapshot."""

import argparse
import json
import logging
import sys
import time

import firewallaudit
import firewallaudit.core
from firewallaudit.audit import AuditStatus, audit, load_inventory
from firewallaudit.core.options import AUDIT_DEFAULTS, AuditSettings

__author__ = 'Linuxfabrik GmbH, Zurich/Switzerland'

DESCRIPTION = """FirewallAudit policy analyzer. Loads a device snapshot (zones, networks,
required paths and firewall rules) and reports shadowed, redundant and overly
permissive rules as well as missing network isolation."""

logger = logging.getLogger(__name__)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        prog='fwa-audit',
        description=DESCRIPTION,
    )

    parser.add_argument(
        'snapshot',
        help='path to the .yml / .yaml / .json snapshot file',
    )

    parser.add_argument(
        '-f',
        '--format',
        choices=['text', 'json'],
        default='text',
        dest='FORMAT',
        help='output format. Default: %(default)s',
    )

    parser.add_argument(
        '-j',
        '--jobs',
        type=int,
        default=None,
        dest='JOBS',
        help='number of rulesets analyzed in parallel, 1 = serial. '
        'Default: snapshot option, else executor default',
    )

    parser.add_argument(
        '--deadline',
        type=float,
        default=None,
        dest='DEADLINE',
        help='stop starting new rulesets after this many seconds',
    )

    parser.add_argument(
        '--all-shadows',
        action='store_true',
        default=None,
        dest='ALL_SHADOWS',
        help='report every earlier rule that covers a rule, not only the first. '
        f'Default: {AUDIT_DEFAULTS.report_all_shadowing}',
    )

    parser.add_argument(
        '-v',
        '--verbose',
        action='count',
        default=0,
        dest='VERBOSE',
        help='verbose output (repeat for higher verbosity)',
    )

    parser.add_argument(
        '-V',
        '--version',
        action='version',
        version=f'%(prog)s: v{firewallaudit.__version__} by {__author__}',
    )

    return parser.parse_args(argv)


def setup_logging(verbose):
    level = logging.WARNING
    if verbose == 1:
        level = logging.INFO
    elif verbose >= 2:
        level = logging.DEBUG
    logging.basicConfig(
        level=level,
        format='%(levelname)s %(name)s: %(message)s',
        stream=sys.stderr,
    )


def format_text(result):
    lines = []
    for finding in result.findings:
        where = finding.ruleset or 'inventory'
        if finding.primary_rule_id:
            where = f'{where}/{finding.primary_rule_id}'
        lines.append(
            f'[{finding.severity.name.lower()}] {finding.kind} {where}: {finding.message}',
        )
    if result.skipped_rulesets:
        lines.append(f'Skipped rulesets: {", ".join(result.skipped_rulesets)}')
    lines.append(
        f'{len(result.findings)} finding(s) in {len(result.completed_rulesets)} ruleset(s)',
    )
    return '\n'.join(lines)


def format_json(result):
    return json.dumps(
        {
            'findings': [f.to_dict() for f in result.findings],
            'completed_rulesets': result.completed_rulesets,
            'skipped_rulesets': result.skipped_rulesets,
            'coverage_checked': result.coverage_checked,
        },
        indent=2,
    )


def main(argv=None):
    args = parse_args(argv)
    setup_logging(args.VERBOSE)
    t_start = time.monotonic()

    try:
        db = firewallaudit.core.InventoryDatabase()
        db.load(args.snapshot)
        settings = AuditSettings.from_options(
            db.options,
            max_workers=args.JOBS,
            deadline_seconds=args.DEADLINE,
            report_all_shadowing=args.ALL_SHADOWS,
        )
        inventory = load_inventory(db, settings)
        result = audit(db.raw_rules, inventory, settings)
    except (firewallaudit.core.AuditError, ValueError) as e:
        print(f'Error: {e}', file=sys.stderr)
        return AuditStatus.AUDIT_ERROR

    if args.FORMAT == 'json':
        print(format_json(result))
    else:
        print(format_text(result))

    logger.info('Audit time: %.2fs', time.monotonic() - t_start)
    return result.status


if __name__ == '__main__':
    sys.exit(main())
