"""
Result types for explicit success/failure tracking in a voting run.

Every voter processed by the bot ends in exactly one VoteOutcome. Skips are
not failures: they are reported separately so a run summary can tell
"nothing to do" apart from "something went wrong".
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Generic, List, Optional, TypeVar

T = TypeVar("T")


class ErrorSeverity(Enum):
    """Severity levels for processing errors."""

    WARNING = "warning"  # Continue processing, log issue
    ERROR = "error"  # Skip this voter, continue others
    CRITICAL = "critical"  # Stop processing entirely


class VoteOutcome(Enum):
    """Final state of one voter in a run."""

    SUBMITTED = "submitted"
    SKIPPED = "skipped"
    FAILED = "failed"
    DRY_RUN = "dry_run"


@dataclass
class ProcessingError:
    """
    Represents a single processing error with context.

    Attributes:
        source: Component that generated the error (e.g., "submitter", "assembler")
        message: Human-readable error description
        severity: How severe the error is (affects control flow)
        context: Additional context like owner, epoch, signature
        exception: Original exception if available
    """

    source: str
    message: str
    severity: ErrorSeverity
    context: Dict[str, Any] = field(default_factory=dict)
    exception: Optional[Exception] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "source": self.source,
            "message": self.message,
            "severity": self.severity.value,
            "context": self.context,
        }


@dataclass
class Result(Generic[T]):
    """
    Result type that carries success/failure information.

    Attributes:
        success: Whether the operation succeeded
        data: The result data if successful
        errors: List of errors encountered (warnings may be present on success)
    """

    success: bool
    data: Optional[T] = None
    errors: List[ProcessingError] = field(default_factory=list)

    @classmethod
    def ok(cls, data: T) -> "Result[T]":
        """Create a successful result with data."""
        return cls(success=True, data=data)

    @classmethod
    def fail_with_message(
        cls,
        source: str,
        message: str,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: Optional[Dict[str, Any]] = None,
        exception: Optional[Exception] = None,
    ) -> "Result[T]":
        """Create a failed result with a message (convenience method)."""
        error = ProcessingError(
            source=source,
            message=message,
            severity=severity,
            context=context or {},
            exception=exception,
        )
        return cls(success=False, errors=[error])

    def get_error_messages(self) -> List[str]:
        """Get all error messages as strings."""
        return [e.message for e in self.errors]


@dataclass
class VoterReport:
    """What happened to one voter during a run."""

    owner: str
    outcome: VoteOutcome
    reason: str = ""
    signature: Optional[str] = None
    instruction_count: int = 0
    compute_units: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "owner": self.owner,
            "outcome": self.outcome.value,
            "reason": self.reason,
            "signature": self.signature,
            "instruction_count": self.instruction_count,
            "compute_units": self.compute_units,
        }


@dataclass
class RunSummary:
    """
    Summary of one voting run.

    `ran` is False when the run short-circuited before touching any voter
    (unreadable gaugemeister, epoch already processed). That is a no-op,
    not a failure.
    """

    epoch: Optional[int] = None
    target_epoch: Optional[int] = None
    ran: bool = False
    reason: str = ""
    voters_total: int = 0
    gauges_total: int = 0
    checkpoint_written: bool = False

    reports: List[VoterReport] = field(default_factory=list)
    errors: List[ProcessingError] = field(default_factory=list)

    def add_report(self, report: VoterReport) -> None:
        """Record a voter's outcome; failures are also kept as errors."""
        self.reports.append(report)
        if report.outcome == VoteOutcome.FAILED:
            self.errors.append(
                ProcessingError(
                    source="voter",
                    message=report.reason,
                    severity=ErrorSeverity.ERROR,
                    context={"owner": report.owner, "epoch": self.target_epoch},
                )
            )

    def count(self, outcome: VoteOutcome) -> int:
        return sum(1 for r in self.reports if r.outcome == outcome)

    @property
    def submitted(self) -> int:
        return self.count(VoteOutcome.SUBMITTED)

    @property
    def skipped(self) -> int:
        return self.count(VoteOutcome.SKIPPED)

    @property
    def failed(self) -> int:
        return self.count(VoteOutcome.FAILED)

    def has_errors(self) -> bool:
        """Check if any errors (not just warnings) occurred."""
        return any(
            e.severity in (ErrorSeverity.ERROR, ErrorSeverity.CRITICAL)
            for e in self.errors
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert summary to dictionary for JSON serialization."""
        return {
            "epoch": self.epoch,
            "target_epoch": self.target_epoch,
            "ran": self.ran,
            "reason": self.reason,
            "counts": {
                "voters": self.voters_total,
                "gauges": self.gauges_total,
                "submitted": self.submitted,
                "skipped": self.skipped,
                "failed": self.failed,
                "dry_run": self.count(VoteOutcome.DRY_RUN),
            },
            "checkpoint_written": self.checkpoint_written,
            "errors": [e.to_dict() for e in self.errors],
            "voters": [r.to_dict() for r in self.reports],
        }
