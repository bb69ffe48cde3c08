"""Status and classification enums shared by the tenant-scoped models."""

import enum


class Priority(str, enum.Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    URGENT = "URGENT"


class Complexity(str, enum.Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    VERY_HIGH = "VERY_HIGH"


class ProjectStatus(str, enum.Enum):
    PLANNING = "PLANNING"
    IN_PROGRESS = "IN_PROGRESS"
    TESTING = "TESTING"
    COMPLETED = "COMPLETED"
    ARCHIVED = "ARCHIVED"


class RequirementType(str, enum.Enum):
    FUNCTIONAL = "FUNCTIONAL"
    NON_FUNCTIONAL = "NON_FUNCTIONAL"
    BUSINESS = "BUSINESS"
    TECHNICAL = "TECHNICAL"


class RequirementStatus(str, enum.Enum):
    PENDING = "PENDING"
    ANALYZING = "ANALYZING"
    ANALYZED = "ANALYZED"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class ModuleType(str, enum.Enum):
    FEATURE = "FEATURE"
    COMPONENT = "COMPONENT"
    SERVICE = "SERVICE"
    UTILITY = "UTILITY"
    INTEGRATION = "INTEGRATION"


class ModuleStatus(str, enum.Enum):
    TODO = "TODO"
    IN_PROGRESS = "IN_PROGRESS"
    TESTING = "TESTING"
    COMPLETED = "COMPLETED"
    BLOCKED = "BLOCKED"


class TaskType(str, enum.Enum):
    DEVELOPMENT = "DEVELOPMENT"
    TESTING = "TESTING"
    DOCUMENTATION = "DOCUMENTATION"
    DEPLOYMENT = "DEPLOYMENT"
    REFACTORING = "REFACTORING"


class TaskStatus(str, enum.Enum):
    TODO = "TODO"
    IN_PROGRESS = "IN_PROGRESS"
    REVIEW = "REVIEW"
    TESTING = "TESTING"
    COMPLETED = "COMPLETED"
    BLOCKED = "BLOCKED"


def coerce_enum(enum_cls, value, default):
    """Map a loose string (e.g. from an AI reply) onto an enum member."""
    if isinstance(value, enum_cls):
        return value
    if isinstance(value, str):
        try:
            return enum_cls(value.strip().upper())
        except ValueError:
            pass
    return default
