"""Import pipeline error classes."""

from __future__ import annotations


class ImportPipelineError(Exception):
    """Base exception for the calendar import pipeline."""

    pass


class ICalFormatError(ImportPipelineError):
    """Raised when calendar content is not usable text at all."""

    pass


class MemberLookupError(ImportPipelineError):
    """Raised by roster search when the member store cannot be queried."""

    pass


class DuplicateCheckError(ImportPipelineError):
    """Raised in strict mode when a duplicate lookup fails."""

    pass


class StageValidationError(ImportPipelineError):
    """Raised when a workflow transition is attempted from an incomplete stage."""

    pass


class UnknownItemError(ImportPipelineError):
    """Raised when a preview item or conflict id is not part of the staged preview."""

    pass


class WaitlistPositionError(ImportPipelineError):
    """Raised when new waitlist positions collide with existing ones."""

    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__("; ".join(errors))
