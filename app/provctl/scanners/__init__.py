"""Fact scanners for package, service, file, tree and guard state.

This module exports the scanner classes the Fact Collector queries.
"""

from provctl.scanners.apt import AptScanner
from provctl.scanners.base import Scanner
from provctl.scanners.checks import CheckScanner
from provctl.scanners.files import FileScanner, TreeScanner
from provctl.scanners.systemd import SystemdScanner

__all__ = [
    "AptScanner",
    "CheckScanner",
    "FileScanner",
    "Scanner",
    "SystemdScanner",
    "TreeScanner",
]
