"""
Errors raised by the result workflow.

Every error carries a short message that is safe to show to the user and an
HTTP status the portal views answer with.
"""


class ResultWorkflowError(Exception):
    status_code = 400

    def __init__(self, message):
        super().__init__(message)
        self.message = message

    def __str__(self):
        return self.message


class ScoreValidationError(ResultWorkflowError):
    """A value is out of range or a required field is empty."""


class NotAuthorizedError(ResultWorkflowError):
    status_code = 403


class IncompleteResultError(ResultWorkflowError):
    """Submission attempted before every score and rating is in."""

    def __init__(self, student_name, missing):
        self.missing = list(missing)
        super().__init__(
            f"Result for {student_name} is incomplete: {'; '.join(self.missing)}."
        )


class InvalidTransitionError(ResultWorkflowError):
    status_code = 409


class StaleRecordError(ResultWorkflowError):
    status_code = 409

    def __init__(self, label):
        super().__init__(
            f"{label} was changed by someone else. Reload it and try again."
        )
