"""Port for persisting the last known working embed domain."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class WorkingDomainStore(Protocol):
    """Durable storage for a single ``{domain, timestamp}`` marker."""

    async def load(self) -> tuple[str, float] | None:
        """Return ``(domain, timestamp)`` or None when absent/expired."""
        ...

    async def save(self, domain: str) -> None: ...

    async def invalidate(self) -> None: ...
