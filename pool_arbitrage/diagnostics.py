"""
Structured diagnostics for records dropped during a scan.

Every per-record problem that the pipeline recovers from locally (a pool that
fails to decode, a reserve that fails to parse, a cycle with a missing edge)
is recorded here instead of only being logged, so callers can assert on how
many records were dropped and why.
"""

from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .exceptions import PoolArbitrageError
from .utils import get_logger

logger = get_logger(__name__)

# Issue kinds
TRANSPORT = "transport"
DECODE = "decode"
PARSE = "parse"
GRAPH_INCONSISTENCY = "graph_inconsistency"
INVALID_POOL = "invalid_pool"
LOW_LIQUIDITY = "low_liquidity"
INVALID_RATE = "invalid_rate"
INVALID_CYCLE = "invalid_cycle"


@dataclass(frozen=True)
class RecordIssue:
    """A single dropped record and the reason it was dropped."""

    kind: str
    record_id: str
    message: str
    stage: str = ""


@dataclass
class Diagnostics:
    """Collects classified, counted issues across the stages of one run."""

    issues: List[RecordIssue] = field(default_factory=list)

    def record(
        self, kind: str, record_id: str, message: str, stage: str = ""
    ) -> RecordIssue:
        """Record an issue and log it at debug level."""
        issue = RecordIssue(kind=kind, record_id=record_id, message=message, stage=stage)
        self.issues.append(issue)
        logger.debug("[%s] skipped %s (%s): %s", stage or "-", record_id, kind, message)
        return issue

    def record_error(
        self, kind: str, record_id: str, error: Exception, stage: str = ""
    ) -> RecordIssue:
        """Record an exception raised while handling a single record."""
        message = str(error)
        if isinstance(error, PoolArbitrageError) and error.details:
            message = f"{message} {error.details}"
        return self.record(kind, record_id, message, stage)

    def count(self, kind: Optional[str] = None) -> int:
        if kind is None:
            return len(self.issues)
        return sum(1 for issue in self.issues if issue.kind == kind)

    def by_kind(self) -> Dict[str, int]:
        return dict(Counter(issue.kind for issue in self.issues))

    def record_ids(self, kind: Optional[str] = None) -> List[str]:
        return [
            issue.record_id
            for issue in self.issues
            if kind is None or issue.kind == kind
        ]

    def summary(self) -> str:
        if not self.issues:
            return "no records dropped"
        parts = [f"{kind}={count}" for kind, count in sorted(self.by_kind().items())]
        return ", ".join(parts)

    def __len__(self) -> int:
        return len(self.issues)
