"""Error taxonomy for the course pipeline.

Domain code raises these; only the HTTP layer turns them into responses.
"""

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from coursegen.models import RetryState


class CourseGenError(Exception):
    """Base class for all pipeline errors."""


class ValidationError(CourseGenError, ValueError):
    """Malformed input. Nothing was changed."""


class NotFoundError(CourseGenError, LookupError):
    """Unknown job, stage or artifact."""


class StageNotReadyError(CourseGenError):
    """The stage has no artifact yet, so it cannot be approved."""


class StageOutOfOrderError(CourseGenError):
    """A command targeted a stage or state that is not the active one."""


class StepExecutionError(CourseGenError):
    """A stage step failed and will not be retried automatically."""

    def __init__(self, message: str, retry_state: Optional["RetryState"] = None):
        super().__init__(message)
        self.retry_state = retry_state


class PersistenceError(CourseGenError):
    """A durable write failed. The in-flight operation is abandoned."""
