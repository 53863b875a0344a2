"""Domain enums — pure Python, no external dependencies."""

from enum import Enum


class AssignmentStatus(str, Enum):
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    REFUSED = "REFUSED"
    TIMEOUT = "TIMEOUT"

    @property
    def is_terminal(self) -> bool:
        return self != AssignmentStatus.PENDING


class AssignmentMode(str, Enum):
    DIRECT = "DIRECT"
    OFFER = "OFFER"
    BROADCAST = "BROADCAST"
    AUTO_ACCEPT = "AUTO_ACCEPT"


class ProposedBy(str, Enum):
    PROVIDER = "PROVIDER"
    CUSTOMER = "CUSTOMER"


class RiskStatus(str, Enum):
    OK = "OK"
    ON_WATCH = "ON_WATCH"
    SUSPENDED = "SUSPENDED"


class ManualOutcome(str, Enum):
    ACCEPT = "ACCEPT"
    REFUSE = "REFUSE"
