"""Cosmetic pacing between AI decision stages."""

from __future__ import annotations

import asyncio


class PacingToken:
    """Awaitable pause that a controller can shorten or skip.

    ``scale`` multiplies every requested delay; ``0`` turns pauses into no-ops.
    Calling :meth:`skip` releases any pending pause and makes later ones
    return immediately. Decisions never depend on the token.
    """

    def __init__(self, scale: float = 1.0) -> None:
        if scale < 0:
            raise ValueError("scale cannot be negative")
        self.scale = scale
        self._skipped = False
        self._event: asyncio.Event | None = None

    @classmethod
    def instant(cls) -> "PacingToken":
        return cls(scale=0.0)

    @property
    def skipped(self) -> bool:
        return self._skipped

    def skip(self) -> None:
        self._skipped = True
        if self._event is not None:
            self._event.set()

    async def wait(self, seconds: float) -> None:
        delay = seconds * self.scale
        if self._skipped or delay <= 0:
            return
        self._event = asyncio.Event()
        try:
            await asyncio.wait_for(self._event.wait(), timeout=delay)
        except asyncio.TimeoutError:
            pass
