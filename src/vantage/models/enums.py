"""String enums shared by the API models and the ORM layer."""

from enum import StrEnum


class Classifier(StrEnum):
    APPLICATION = "APPLICATION"
    FRAMEWORK = "FRAMEWORK"
    LIBRARY = "LIBRARY"
    CONTAINER = "CONTAINER"
    OPERATING_SYSTEM = "OPERATING_SYSTEM"
    DEVICE = "DEVICE"
    FIRMWARE = "FIRMWARE"
    FILE = "FILE"
    PLATFORM = "PLATFORM"
    DEVICE_DRIVER = "DEVICE_DRIVER"
    MACHINE_LEARNING_MODEL = "MACHINE_LEARNING_MODEL"
    DATA = "DATA"


class Permission(StrEnum):
    VIEW_PORTFOLIO = "VIEW_PORTFOLIO"
    PORTFOLIO_MANAGEMENT = "PORTFOLIO_MANAGEMENT"
    ACCESS_MANAGEMENT = "ACCESS_MANAGEMENT"
    PORTFOLIO_ACCESS_CONTROL_BYPASS = "PORTFOLIO_ACCESS_CONTROL_BYPASS"


class PrincipalKind(StrEnum):
    USER = "user"
    API_KEY = "api_key"


class JobType(StrEnum):
    CLONE_PROJECT = "clone_project"


class JobStatus(StrEnum):
    QUEUED = "queued"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class ReferenceKind(StrEnum):
    PROJECT = "project"
    DEFERRED = "deferred"
