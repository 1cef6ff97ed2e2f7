#=============================================================================
# File        : heapguard/errors.py
# Project     : HeapGuard v1.0
# Component   : Errors - Exception Hierarchy
# Description : Exceptions raised across the analysis core
# Author      : Kyle Clouthier
# Version     : 1.0.0
# License     : MIT License
#=============================================================================

from __future__ import annotations

from typing import Optional


class HeapGuardError(Exception):
    """Base class for all HeapGuard errors."""


class ConfigError(HeapGuardError, ValueError):
    """Invalid configuration value."""


class ProviderError(HeapGuardError):
    """The object data provider failed for a lookup (not an unknown id)."""

    def __init__(self, snapshot_id: str, node_id: Optional[str], cause: BaseException):
        self.snapshot_id = snapshot_id
        self.node_id = node_id
        self.cause = cause
        target = f"node @{node_id}" if node_id is not None else "warm-up"
        super().__init__(f"Provider failed for {target} in {snapshot_id!r}: {cause}")
