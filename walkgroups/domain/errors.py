"""
Error taxonomy for the grouping engine.

INVALID_INPUT is raised (and isolated per record by the caller).
CONSTRAINT_VIOLATION is returned as a RejectionReason, never raised.
NO_FEASIBLE_GROUP is not an error: it is reported as "ungroupable".
"""

from enum import Enum


class GroupingError(Exception):
    """Base class for every error raised by walkgroups."""


class InvalidInputError(GroupingError, ValueError):
    """Malformed candidate or slot data (bad coordinate, non-positive duration, ...)."""


class SlotStateError(GroupingError):
    """Membership change attempted on a slot whose status does not allow it."""


class MemberNotFoundError(GroupingError):
    """Leave requested for a booking that is not a member of the slot."""


class RejectionReason(str, Enum):
    CAPACITY_EXCEEDED = "CAPACITY_EXCEEDED"
    INCOMPATIBLE_DOG = "INCOMPATIBLE_DOG"
    OUT_OF_RADIUS = "OUT_OF_RADIUS"
    OUTSIDE_TIME_WINDOW = "OUTSIDE_TIME_WINDOW"
    SLOT_NOT_JOINABLE = "SLOT_NOT_JOINABLE"


UNGROUPABLE_INELIGIBLE_DOG = "ineligible_dog"
UNGROUPABLE_NO_FEASIBLE_GROUP = "no_feasible_group"
UNGROUPABLE_SOLO_ONLY = "solo_only"
