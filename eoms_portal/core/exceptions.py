"""
Portal-wide exception hierarchy.

Services raise these types; blueprints register handlers against them once
and get consistent HTTP status codes everywhere.

Usage:
    from eoms_portal.core.exceptions import NotFoundError, ValidationError

    raise NotFoundError(resource="Submission", resource_id="3f0c...")
    raise ValidationError("likelihood must be between 1 and 5", details={"likelihood": 7})
"""


class NotFoundError(Exception):
    """Raised when a requested resource does not exist within the viewer's scope.

    Used for BOTH genuinely missing records AND out-of-scope reads, so a
    unit user cannot probe for another unit's submission ids.

    Args:
        resource: Human-readable entity name (e.g. "Submission", "Unit").
        resource_id: The key that was looked up. Included in logs.
    """

    def __init__(self, resource: str, resource_id: int | str | None = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" id={resource_id}"
        msg += " not found"
        super().__init__(msg)


class ValidationError(Exception):
    """Raised when input violates a caller contract or business rule.

    Out-of-range likelihood/consequence, malformed cycle ids and invalid
    status transitions all land here. Maps to HTTP 422.

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown for structured API responses.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class ForbiddenError(Exception):
    """Raised when the viewer's role does not permit the requested action.

    Maps to HTTP 403.
    """

    def __init__(self, message: str, *, role: str | None = None) -> None:
        self.role = role
        super().__init__(message)


class ConflictError(Exception):
    """Raised when an operation would duplicate a unique value.

    Maps to HTTP 409.

    Args:
        resource: Model name.
        field: The unique field that would be duplicated.
        value: The conflicting value.
    """

    def __init__(self, resource: str, field: str, value: str | None = None) -> None:
        self.resource = resource
        self.field = field
        self.value = value
        msg = f"{resource} with {field}={value!r} already exists"
        super().__init__(msg)


class CarryOverRefusedError(Exception):
    """Raised when a carry-over precondition does not hold.

    Kept separate from store failures so the UI can show a specific message
    instead of a generic "could not submit".

    Args:
        reason: Machine-readable reason, one of ``CarryOverRefusedError.REASONS``.
        report_type: Catalog code of the report type involved.
    """

    NOT_ELIGIBLE = "not_eligible"
    NO_FIRST_CYCLE_SUBMISSION = "no_first_cycle_submission"
    FINAL_CYCLE_SUBMISSION_EXISTS = "final_cycle_submission_exists"
    REASONS = (NOT_ELIGIBLE, NO_FIRST_CYCLE_SUBMISSION, FINAL_CYCLE_SUBMISSION_EXISTS)

    _MESSAGES = {
        NOT_ELIGIBLE: "{label} cannot be carried over to the final cycle",
        NO_FIRST_CYCLE_SUBMISSION: "No first-cycle submission of {label} exists to carry over",
        FINAL_CYCLE_SUBMISSION_EXISTS: "A final-cycle submission of {label} already exists",
    }

    def __init__(self, reason: str, report_type: str, label: str | None = None) -> None:
        self.reason = reason
        self.report_type = report_type
        template = self._MESSAGES.get(reason, "Carry-over refused for {label}")
        super().__init__(template.format(label=label or report_type))
