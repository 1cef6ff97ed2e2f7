#=============================================================================
# File        : heapguard/config.py
# Project     : HeapGuard v1.0
# Component   : Configuration - Traversal Options and Scoring Thresholds
# Description : Central configuration with validation and env overrides
#               • Explorer budgets (depth, children, nodes, time)
#               • Size thresholds shared by the leak classifiers
#               • Environment variable overrides for ops
# Author      : Kyle Clouthier
# Version     : 1.0.0
# Technology  : Python 3.8+, Dataclasses
# Standards   : PEP 8, Type Hints, Immutable Configuration
# Created     : 2025-09-02
# Modified    : 2025-09-02 (Initial creation)
# Dependencies: dataclasses, typing, os
# License     : MIT License
# Copyright   : © 2025 Kyle Clouthier. All rights reserved.
#=============================================================================

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from typing import Optional

from .errors import ConfigError

KB = 1024
MB = 1024 * 1024


def _env_bool(name: str, default: bool) -> bool:
    v = os.getenv(name)
    if v is None: return default
    return v.strip().lower() in {"1", "true", "yes", "on"}

def _env_int(name: str, default: Optional[int]) -> Optional[int]:
    v = os.getenv(name)
    if v is None: return default
    try:
        return int(v)
    except ValueError:
        return default


@dataclass(frozen=True)
class ExploreOptions:
    """Budgets and filters for one deep-dive traversal."""
    max_depth: int = 2
    max_children_per_level: int = 5
    follow_arrays: bool = True
    follow_objects: bool = True
    show_primitives: bool = True
    detect_patterns: bool = True
    max_nodes: int = 100
    time_budget_ms: float = 15000
    batch_size: int = 5

    def __post_init__(self):
        if self.max_depth < 0:
            raise ConfigError(f"max_depth must be >= 0, got {self.max_depth}")
        if self.max_children_per_level < 0:
            raise ConfigError(f"max_children_per_level must be >= 0, got {self.max_children_per_level}")
        if self.max_nodes < 0:
            raise ConfigError(f"max_nodes must be >= 0, got {self.max_nodes}")
        if self.time_budget_ms < 0:
            raise ConfigError(f"time_budget_ms must be >= 0, got {self.time_budget_ms}")
        if self.batch_size < 1:
            raise ConfigError(f"batch_size must be >= 1, got {self.batch_size}")

    def merge(self, **overrides) -> "ExploreOptions":
        """Return a copy with provided fields overridden (immutably)."""
        return replace(self, **overrides)


@dataclass(frozen=True)
class Thresholds:
    """Size thresholds (bytes) used by the classifiers."""
    suspicious_object: int = 100 * KB
    large_object: int = 1 * MB
    very_large_object: int = 5 * MB
    critical_object: int = 10 * MB
    suspicious_global: int = 50 * KB
    listener_min_size: int = 100

    # Growth ratios for the leak-confidence model
    suspicious_growth_ratio: float = 0.5
    critical_growth_ratio: float = 2.0
    massive_growth_ratio: float = 5.0

    def __post_init__(self):
        sizes = (self.suspicious_object, self.large_object, self.very_large_object, self.critical_object)
        if any(s < 0 for s in sizes):
            raise ConfigError("Size thresholds cannot be negative")
        if list(sizes) != sorted(sizes):
            raise ConfigError("Size thresholds must be non-decreasing "
                              "(suspicious <= large <= very_large <= critical)")


@dataclass
class HeapGuardConfig:
    """
    HeapGuard runtime configuration.

    Safety defaults:
      - small traversal budgets (100 nodes, 15s)
      - unbounded snapshot cache for short-lived analysis runs
      - WARNING-level logging
    """
    explore: ExploreOptions = field(default_factory=ExploreOptions)
    thresholds: Thresholds = field(default_factory=Thresholds)
    cache_max_snapshots: Optional[int] = None   # None = keep every snapshot warm
    log_level: str = "WARNING"

    def __post_init__(self):
        if self.cache_max_snapshots is not None and self.cache_max_snapshots < 1:
            raise ConfigError(f"cache_max_snapshots must be >= 1 or None, got {self.cache_max_snapshots}")
        self.log_level = (self.log_level or "WARNING").upper()

    # --------- Factory helpers ---------

    @staticmethod
    def from_env(base: Optional["HeapGuardConfig"] = None) -> "HeapGuardConfig":
        """
        Build config from environment variables, overlaying a base config.
        Supported envs:
          HEAPGUARD_MAX_DEPTH
          HEAPGUARD_MAX_CHILDREN
          HEAPGUARD_MAX_NODES
          HEAPGUARD_TIME_BUDGET_MS
          HEAPGUARD_SHOW_PRIMITIVES (0|1)
          HEAPGUARD_CACHE_MAX_SNAPSHOTS
          HEAPGUARD_LOG_LEVEL
        """
        base = base or HeapGuardConfig()
        explore = base.explore.merge(
            max_depth=_env_int("HEAPGUARD_MAX_DEPTH", base.explore.max_depth),
            max_children_per_level=_env_int("HEAPGUARD_MAX_CHILDREN", base.explore.max_children_per_level),
            max_nodes=_env_int("HEAPGUARD_MAX_NODES", base.explore.max_nodes),
            time_budget_ms=_env_int("HEAPGUARD_TIME_BUDGET_MS", base.explore.time_budget_ms),
            show_primitives=_env_bool("HEAPGUARD_SHOW_PRIMITIVES", base.explore.show_primitives),
        )
        return replace(
            base,
            explore=explore,
            cache_max_snapshots=_env_int("HEAPGUARD_CACHE_MAX_SNAPSHOTS", base.cache_max_snapshots),
            log_level=os.getenv("HEAPGUARD_LOG_LEVEL", base.log_level),
        )

    def merge(self, **overrides) -> "HeapGuardConfig":
        """Return a copy with provided fields overridden."""
        return replace(self, **overrides)

    def __repr__(self) -> str:
        e = self.explore
        return (f"HeapGuardConfig(max_depth={e.max_depth}, "
                f"max_children_per_level={e.max_children_per_level}, max_nodes={e.max_nodes}, "
                f"time_budget_ms={e.time_budget_ms}, cache_max_snapshots={self.cache_max_snapshots}, "
                f"log_level='{self.log_level}')")
