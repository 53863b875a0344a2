"""Domain errors raised by the assignment core.

All of them are validation failures the caller is expected to present or retry
with corrected input. Infrastructure failures are never wrapped in these.
"""

from __future__ import annotations

from typing import Any

from fieldops.domain.value_objects.enums import AssignmentStatus


class AssignmentError(Exception):
    """Base class for assignment domain errors."""

    code = "ASSIGNMENT_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class AssignmentNotFound(AssignmentError):
    code = "ASSIGNMENT_NOT_FOUND"

    def __init__(self, assignment_id: int):
        super().__init__(
            f"Assignment {assignment_id} not found",
            {"assignment_id": assignment_id},
        )


class ServiceOrderNotFound(AssignmentError):
    code = "SERVICE_ORDER_NOT_FOUND"

    def __init__(self, service_order_id: int):
        super().__init__(
            f"Service order {service_order_id} not found",
            {"service_order_id": service_order_id},
        )


class NoQualifiedProvider(AssignmentError):
    code = "NO_QUALIFIED_PROVIDER"

    def __init__(self, service_order_id: int, evaluated: int = 0):
        super().__init__(
            f"No qualified provider for service order {service_order_id} "
            f"({evaluated} evaluated)",
            {"service_order_id": service_order_id, "evaluated": evaluated},
        )


class DuplicateActiveAssignment(AssignmentError):
    code = "DUPLICATE_ACTIVE_ASSIGNMENT"

    def __init__(self, service_order_id: int, existing_id: int | None = None):
        super().__init__(
            f"Service order {service_order_id} already has a pending assignment",
            {"service_order_id": service_order_id, "existing_assignment_id": existing_id},
        )


class WorkTeamMismatch(AssignmentError):
    code = "WORK_TEAM_MISMATCH"

    def __init__(self, work_team_id: int, provider_id: int):
        super().__init__(
            f"Work team {work_team_id} is not an active team of provider {provider_id}",
            {"work_team_id": work_team_id, "provider_id": provider_id},
        )


class InvalidStateTransition(AssignmentError):
    code = "INVALID_STATE_TRANSITION"

    def __init__(
        self,
        transition: str,
        current_status: AssignmentStatus,
        reason: str | None = None,
    ):
        message = f"Cannot {transition} assignment in status {current_status.value}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(
            message,
            {"transition": transition, "current_status": current_status.value, "reason": reason},
        )
        self.transition = transition
        self.current_status = current_status


class MaxRoundsExceeded(AssignmentError):
    code = "MAX_ROUNDS_EXCEEDED"

    def __init__(self, assignment_id: int | None, max_rounds: int):
        super().__init__(
            f"Maximum negotiation rounds ({max_rounds}) exceeded for assignment "
            f"{assignment_id}. Manual resolution required.",
            {"assignment_id": assignment_id, "max_rounds": max_rounds},
        )
