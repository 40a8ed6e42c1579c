"""Component registry: name → checker + presence, guarded by a reader/writer lock."""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass

from .checker import Checker
from .errors import AlreadyRegistered
from .status import Presence

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Component:
    """A registered checker plus its presence requirement."""

    name: str
    checker: Checker
    presence: Presence = Presence.REQUIRED

    @property
    def required(self) -> bool:
        return self.presence is Presence.REQUIRED


class ReadWriteLock:
    """Many concurrent readers or one writer; waiting writers block new readers."""

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def read(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if not self._readers:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


class Registry:
    """Thread-safe mapping from component name to checker and presence."""

    def __init__(self) -> None:
        self._lock = ReadWriteLock()
        self._components: dict[str, Component] = {}

    def register(
        self,
        name: str,
        checker: Checker,
        presence: Presence = Presence.REQUIRED,
    ) -> None:
        """Add a component. Raises AlreadyRegistered if the name is taken."""
        presence = Presence(presence)
        with self._lock.write():
            if name in self._components:
                raise AlreadyRegistered(name)
            self._components[name] = Component(name=name, checker=checker, presence=presence)
        logger.info("Registered component %s (%s)", name, presence.value)

    def unregister(self, name: str) -> None:
        """Remove a component. No-op if it isn't registered."""
        with self._lock.write():
            removed = self._components.pop(name, None)
        if removed is not None:
            logger.info("Unregistered component %s", name)

    def snapshot(self) -> list[Component]:
        """Copy of the current components, safe to iterate without the lock."""
        with self._lock.read():
            return list(self._components.values())

    def presence(self, name: str) -> Presence | None:
        with self._lock.read():
            component = self._components.get(name)
        return component.presence if component else None

    def names(self) -> list[str]:
        with self._lock.read():
            return sorted(self._components)

    def __len__(self) -> int:
        with self._lock.read():
            return len(self._components)
