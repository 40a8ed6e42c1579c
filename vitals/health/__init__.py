"""Health subsystem: registry, concurrent probing, status aggregation."""

from .checker import CallableChecker, Checker
from .deadline import Deadline
from .engine import HealthEngine
from .errors import AlreadyRegistered, ComponentConfigError, HealthError
from .probe import RetryPolicy
from .registry import Component, Registry
from .status import (
    ComponentReport,
    ComponentResult,
    ComponentStatus,
    OverallReport,
    OverallStatus,
    Presence,
)
