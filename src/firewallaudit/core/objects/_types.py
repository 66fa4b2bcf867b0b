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

"""Enumerations shared by the inventory models and the audit engine."""

import enum


class RuleAction(enum.IntEnum):
    """Actions of a normalized rule.

    NonAcl covers NAT, redirect and every other record that is neither
    allow-like nor block-like.
    """

    NonAcl = 0
    Allow = 1
    Block = 2


class Protocol(enum.IntEnum):
    """Protocol dimension of a rule predicate."""

    Any = 0
    TCP = 1
    UDP = 2
    TCP_UDP = 3
    ICMP = 4
    Other = 5
    ICMPv6 = 6


class SpecMode(enum.IntEnum):
    """Variant tag of an EntitySpec or PortSpec."""

    Any = 0
    Include = 1
    Exclude = 2


class EntityKind(enum.IntEnum):
    """Kind of the items held by an EntitySpec."""

    CIDR = 1
    MAC = 2
    Network = 3


class FindingKind(enum.StrEnum):
    ShadowedByAllow = 'ShadowedByAllow'
    ShadowedByBlock = 'ShadowedByBlock'
    RedundantRule = 'RedundantRule'
    AllowException = 'AllowException'
    PermissiveRule = 'PermissiveRule'
    BroadRule = 'BroadRule'
    OrphanedRule = 'OrphanedRule'
    MissingIsolation = 'MissingIsolation'
    IsolationBypassed = 'IsolationBypassed'
    AnyAny = 'AnyAny'
    MalformedMatch = 'MalformedMatch'
    MissingRequiredAccess = 'MissingRequiredAccess'


class Severity(enum.IntEnum):
    """Finding severity, ordered so that higher means more urgent."""

    Informational = 0
    Recommended = 1
    Critical = 2


class ZoneKey(enum.StrEnum):
    External = 'external'
    Internal = 'internal'
    Gateway = 'gateway'
    DMZ = 'dmz'
    Hotspot = 'hotspot'
    VPN = 'vpn'


class NetworkPurpose(enum.StrEnum):
    Corporate = 'corporate'
    Home = 'home'
    Guest = 'guest'
    IoT = 'iot'
    Security = 'security'
    Management = 'management'
    Unknown = 'unknown'
