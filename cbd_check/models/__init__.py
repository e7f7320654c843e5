"""Domain models for the cost breakdown checker.

Rule tables describe what a brand expects; result models carry what one
validation run found. Both are immutable.
"""

from .batch_result import BatchResult, FileStat
from .error_record import ErrorRecord
from .results import (
    FieldResult,
    ItemResult,
    ItemStatus,
    RunStatus,
    SectionResult,
    ValidationRun,
    Verdict,
)
from .rules import (
    CellRule,
    Expectation,
    ExpectKind,
    FieldRule,
    HeaderColumn,
    ItemOverride,
    LookupRule,
    Marker,
    MatchMode,
    ReferenceField,
    ReferenceItem,
    ReferenceItemRule,
    RuleSet,
    SectionRule,
    SheetPolicy,
)

__all__ = [
    # Rule tables
    "MatchMode",
    "Marker",
    "ExpectKind",
    "Expectation",
    "FieldRule",
    "ItemOverride",
    "SectionRule",
    "CellRule",
    "LookupRule",
    "HeaderColumn",
    "ReferenceItem",
    "ReferenceField",
    "ReferenceItemRule",
    "SheetPolicy",
    "RuleSet",
    # Results
    "Verdict",
    "FieldResult",
    "SectionResult",
    "ItemStatus",
    "ItemResult",
    "RunStatus",
    "ValidationRun",
    "FileStat",
    "BatchResult",
    "ErrorRecord",
]
