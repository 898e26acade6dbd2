#!/usr/bin/env python3
# -*-coding: utf-8-*-
"""
NSP Patcher - Core Package

Package handles, content unit classification, ticket parsing and
scoped cleanup of temporary directories.
"""

from .ticket import TitleKey, read_title_key
from .content import (
    CONTENT_UNIT_EXTENSION,
    ContentType,
    ContentUnit,
    classify,
    parse_report,
)
from .package import PACKAGE_EXTENSION, TICKET_EXTENSION, Package, find_first_file
from .cleanup import ResourceGuard
from .keyfile import clear_title_keys, store_title_keys

__all__ = [
    "TitleKey",
    "read_title_key",
    "CONTENT_UNIT_EXTENSION",
    "ContentType",
    "ContentUnit",
    "classify",
    "parse_report",
    "PACKAGE_EXTENSION",
    "TICKET_EXTENSION",
    "Package",
    "find_first_file",
    "ResourceGuard",
    "clear_title_keys",
    "store_title_keys",
]
