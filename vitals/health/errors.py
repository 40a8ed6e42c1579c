"""Exceptions raised by the health subsystem."""

from __future__ import annotations


class HealthError(Exception):
    """Base error for the health subsystem."""


class AlreadyRegistered(HealthError):
    """A component with the same name is already in the registry."""

    def __init__(self, name: str) -> None:
        super().__init__(f"component {name} already registered")
        self.name = name


class ComponentConfigError(HealthError):
    """The components file could not be read or parsed."""
