from __future__ import annotations

from contextlib import contextmanager
from typing import ContextManager, Iterator, Protocol


class UnitOfWork(Protocol):
    def transaction(self) -> ContextManager[None]:
        """Run the enclosed repository calls on one connection, committed together."""

        raise NotImplementedError


class NoTransaction:
    """Unit of work for in-memory repositories (each call is already atomic)."""

    @contextmanager
    def transaction(self) -> Iterator[None]:
        yield
