#=============================================================================
# File        : heapguard/report.py
# Project     : HeapGuard v1.0
# Component   : Report - Finding and Trace Data Structures
# Description : Data structures returned by the classifiers and the tracer
#               • ScoredFinding dataclass with validation and serialization
#               • TraceResult / RetainerInfo for retention explanations
#               • GlobalScopeReport, ComparisonReport and BatchTraceReport aggregates
# Author      : Kyle Clouthier
# Version     : 1.0.0
# Technology  : Python 3.8+, Dataclasses, JSON
# Standards   : PEP 8, Type Hints, Immutable Data Structures
# Created     : 2025-09-02
# Modified    : 2025-09-02 (Initial creation)
# Dependencies: json, dataclasses, typing, enum, model
# License     : MIT License
# Copyright   : © 2025 Kyle Clouthier. All rights reserved.
#=============================================================================

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from .config import Thresholds
from .model import HeapNode


# Severity ranking for proper comparison
SEVERITY_RANK = {
    'LOW': 1,
    'MEDIUM': 2,
    'HIGH': 3,
    'CRITICAL': 4
}


class SeverityLevel(Enum):
    """Severity levels for leak findings."""
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"

    @property
    def rank(self) -> int:
        """Get numeric rank for proper severity comparison."""
        return SEVERITY_RANK[self.value]

    def __lt__(self, other: "SeverityLevel") -> bool:
        return self.rank < other.rank

    def __le__(self, other: "SeverityLevel") -> bool:
        return self.rank <= other.rank

    def __gt__(self, other: "SeverityLevel") -> bool:
        return self.rank > other.rank

    def __ge__(self, other: "SeverityLevel") -> bool:
        return self.rank >= other.rank


def severity_for_size(size: int, thresholds: Optional[Thresholds] = None) -> SeverityLevel:
    """Coarse impact bucket from a byte size (monotonic in size)."""
    t = thresholds or Thresholds()
    if size > t.critical_object:
        return SeverityLevel.CRITICAL
    if size > t.large_object:
        return SeverityLevel.HIGH
    if size > t.suspicious_object:
        return SeverityLevel.MEDIUM
    return SeverityLevel.LOW


def format_bytes(size: float) -> str:
    """Human-readable byte count ('1.5MB', '12.0KB', '512B')."""
    if size >= 1024 * 1024 * 1024:
        return f"{size / (1024 * 1024 * 1024):.1f}GB"
    if size >= 1024 * 1024:
        return f"{size / (1024 * 1024):.1f}MB"
    if size >= 1024:
        return f"{size / 1024:.1f}KB"
    return f"{int(size)}B"


@dataclass(frozen=True)
class ScoredFinding:
    """
    Immutable representation of a suspected leak source.

    Confidence is a heuristic 0-100 score, never a proof of a leak.
    """
    name: str
    type: str
    self_size: int
    retained_size: int
    confidence: int
    severity: SeverityLevel
    description: str
    suggested_fix: str

    # Enhanced metadata
    category: str = "global_variable"
    location: str = "unknown"
    edge_type: str = "property"
    object_count: int = 1
    objects: Tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self):
        """Validate finding data on creation."""
        if not 0 <= self.confidence <= 100:
            raise ValueError(f"Confidence must be between 0 and 100, got {self.confidence}")
        if self.self_size < 0 or self.retained_size < 0:
            raise ValueError("Sizes cannot be negative")
        object.__setattr__(self, 'objects', tuple(self.objects))

    @property
    def impact_score(self) -> float:
        """Retained bytes weighted by confidence."""
        return self.retained_size * self.confidence / 100.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'type': self.type,
            'selfSize': self.self_size,
            'retainedSize': self.retained_size,
            'confidence': self.confidence,
            'severity': self.severity.value,
            'description': self.description,
            'suggestedFix': self.suggested_fix,
            'category': self.category,
            'location': self.location,
            'edgeType': self.edge_type,
            'objectCount': self.object_count,
            'objects': list(self.objects),
        }


@dataclass(frozen=True)
class RetainerInfo:
    """Where a retainer path ends and what it passes through."""
    root_type: str
    path_length: int
    is_detached: bool
    retainer_count: int = 0
    has_circular_refs: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            'rootType': self.root_type,
            'pathLength': self.path_length,
            'isDetached': self.is_detached,
            'retainerCount': self.retainer_count,
            'hasCircularRefs': self.has_circular_refs,
        }


@dataclass(frozen=True)
class TraceResult:
    """Explanation of why a node is retained."""
    node: HeapNode
    is_likely_leak: bool
    confidence: float
    explanation: str
    root_path: Tuple[str, ...]
    actionable_advice: str
    retainer_info: RetainerInfo

    def __post_init__(self):
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"Confidence must be between 0.0 and 1.0, got {self.confidence}")
        object.__setattr__(self, 'root_path', tuple(self.root_path))

    def to_dict(self) -> Dict[str, Any]:
        return {
            'nodeId': self.node.id,
            'name': self.node.name,
            'isLikelyLeak': self.is_likely_leak,
            'confidence': round(self.confidence, 3),
            'explanation': self.explanation,
            'rootPath': list(self.root_path),
            'actionableAdvice': self.actionable_advice,
            'retainerInfo': self.retainer_info.to_dict(),
        }


@dataclass(frozen=True)
class GlobalScopeReport:
    """Outcome of one global-scope classification run."""
    total_global_variables: int
    suspicious: List[ScoredFinding]
    total_memory_impact: int
    summary: str
    recommendations: List[str]

    @property
    def top_leaks(self) -> List[ScoredFinding]:
        return self.suspicious[:10]

    @property
    def is_healthy(self) -> bool:
        return not self.suspicious

    def to_dict(self) -> Dict[str, Any]:
        return {
            'totalGlobalVariables': self.total_global_variables,
            'suspiciousGlobals': [f.to_dict() for f in self.suspicious],
            'totalMemoryImpact': self.total_memory_impact,
            'summary': self.summary,
            'recommendations': list(self.recommendations),
        }

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)


@dataclass(frozen=True)
class ComparisonReport:
    """Outcome of a before/after snapshot comparison."""
    findings: List[ScoredFinding]
    recommendations: List[str]
    before_size: int
    after_size: int

    @property
    def total_growth(self) -> int:
        return self.after_size - self.before_size

    @property
    def percentage_growth(self) -> float:
        if self.before_size <= 0:
            return 0.0 if self.after_size <= 0 else 100.0
        return (self.after_size - self.before_size) / self.before_size * 100.0

    @property
    def summary(self) -> str:
        if not self.findings:
            return "No growth patterns detected between snapshots."
        worst = max(f.severity for f in self.findings)
        return (f"{len(self.findings)} growth pattern(s) detected, worst severity {worst.value}; "
                f"heap {format_bytes(self.before_size)} -> {format_bytes(self.after_size)}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            'findings': [f.to_dict() for f in self.findings],
            'recommendations': list(self.recommendations),
            'memoryGrowth': {
                'beforeSize': self.before_size,
                'afterSize': self.after_size,
                'totalGrowth': self.total_growth,
                'percentageGrowth': round(self.percentage_growth, 2),
            },
            'summary': self.summary,
        }

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)


@dataclass(frozen=True)
class BatchTraceReport:
    """Traces for several nodes plus leak totals across them."""
    traces: List[TraceResult]

    @property
    def likely_leaks(self) -> List[TraceResult]:
        return [t for t in self.traces if t.is_likely_leak]

    @property
    def total_likely_leaks(self) -> int:
        return len(self.likely_leaks)

    @property
    def high_confidence_leaks(self) -> int:
        return sum(1 for t in self.traces if t.confidence > 0.7)

    @property
    def total_retained_by_leaks(self) -> int:
        return sum(t.node.self_size for t in self.likely_leaks)

    @property
    def leak_categories(self) -> Dict[str, int]:
        categories: Dict[str, int] = {}
        for trace in self.likely_leaks:
            root_type = trace.retainer_info.root_type
            categories[root_type] = categories.get(root_type, 0) + 1
        return categories

    def to_dict(self) -> Dict[str, Any]:
        return {
            'traces': [t.to_dict() for t in self.traces],
            'summary': {
                'totalLikelyLeaks': self.total_likely_leaks,
                'highConfidenceLeaks': self.high_confidence_leaks,
                'totalRetainedByLeaks': self.total_retained_by_leaks,
                'leakCategories': self.leak_categories,
            },
        }
