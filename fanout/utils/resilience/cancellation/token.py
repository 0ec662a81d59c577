from __future__ import annotations

import asyncio
import weakref
from typing import Any, List, Optional

from fanout.utils.error_handler import DeadlineExceededError, OperationCancelledError
from fanout.utils.logger import get_logger

logger = get_logger(__name__)


class CancellationToken:
    """
    Cooperative, monotonic abort signal.

    - trigger(): untriggered -> triggered, once; later calls are no-ops.
    - Triggering propagates to every linked child, transitively.
    - Parents track children in a WeakSet and children keep weak
      back-references, so neither side owns the other's lifetime.

    Holders are expected to check `is_triggered()` (or await `wait()`) at
    their suspension points. Nothing is interrupted forcibly.
    """

    def __init__(self, name: Optional[str] = None):
        self.name = name
        self._triggered = False
        self._reason: Any = None
        self._children: "weakref.WeakSet[CancellationToken]" = weakref.WeakSet()
        self._parents: List["weakref.ref[CancellationToken]"] = []
        self._event: Optional[asyncio.Event] = None

    @classmethod
    def linked(cls, *parents: "CancellationToken", name: Optional[str] = None):
        token = cls(name=name)
        for parent in parents:
            token.link(parent)
        return token

    @property
    def triggered(self) -> bool:
        return self._triggered

    @property
    def reason(self) -> Any:
        return self._reason

    def is_triggered(self) -> bool:
        return self._triggered

    def trigger(self, reason: Any = None) -> bool:
        """
        Trigger this token and all linked descendants.

        Returns True if this call performed the transition.
        """
        if self._triggered:
            return False

        stack: List[CancellationToken] = [self]
        while stack:
            token = stack.pop()
            if token._triggered:
                continue
            token._triggered = True
            token._reason = reason
            if token._event is not None:
                token._event.set()
            stack.extend(token._children)

        logger.debug("cancellation_triggered", token=self.name, reason=repr(reason))
        return True

    def link(self, parent: "CancellationToken") -> None:
        """Register this token as a child of `parent`."""
        if parent is self:
            raise ValueError("A token cannot be linked to itself")
        parent._children.add(self)
        self._parents.append(weakref.ref(parent))
        if parent._triggered:
            self.trigger(parent._reason)

    def unlink(self, parent: "CancellationToken") -> None:
        parent._children.discard(self)
        self._parents = [
            ref for ref in self._parents if ref() is not None and ref() is not parent
        ]

    @property
    def parents(self) -> List["CancellationToken"]:
        return [p for p in (ref() for ref in self._parents) if p is not None]

    async def wait(self) -> None:
        """Suspend until the token is triggered."""
        if self._triggered:
            return
        if self._event is None:
            self._event = asyncio.Event()
        await self._event.wait()

    def cancelled_error(self) -> OperationCancelledError:
        """Build the error surfaced to code that observed this token."""
        if isinstance(self._reason, DeadlineExceededError):
            return DeadlineExceededError(self._reason.seconds, reason=self._reason)
        label = f"'{self.name}' " if self.name else ""
        return OperationCancelledError(
            f"Cancellation token {label}triggered", reason=self._reason
        )

    def raise_if_triggered(self) -> None:
        if self._triggered:
            raise self.cancelled_error()

    def __repr__(self) -> str:
        state = "triggered" if self._triggered else "pending"
        return f"<CancellationToken {self.name or hex(id(self))} {state}>"
