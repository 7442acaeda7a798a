import threading
import time
import typing

import attr

from .utils import Cancelled


@attr.s(frozen=True, kw_only=True)
class Context:
    """
    Carries cancellation, an optional deadline and a correlation token
    through a single operation on a store.
    """

    correlation: typing.Optional[str] = attr.ib(default=None)
    deadline: typing.Optional[float] = attr.ib(default=None)
    event: threading.Event = attr.ib(factory=threading.Event, repr=False)

    @classmethod
    def with_timeout(
            cls,
            seconds: float,
            correlation: typing.Optional[str] = None) -> 'Context':
        return cls(correlation=correlation, deadline=time.monotonic() + seconds)

    def cancel(self) -> None:
        self.event.set()

    def check(self) -> None:
        if self.event.is_set():
            raise Cancelled("Operation was cancelled")
        if self.deadline is not None and time.monotonic() >= self.deadline:
            raise Cancelled("Operation ran past its deadline")

    def describe(self, description: str) -> str:
        """Add the correlation token to a change description."""
        if not self.correlation:
            return description
        return f"{description}\n\nCorrelation-Id: {self.correlation}"
