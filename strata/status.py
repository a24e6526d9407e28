"""
Status of one asynchronous fetch.

A Status wraps the asyncio future of a fetch started by a resolver and
reports where that fetch is (pending, success or error) for synchronous
inspection. It does not drive the fetch: continuations registered with
``then()`` and ``catch()`` are attached to the wrapped future, so they run
from the event loop, after the future settles, in the order they were
registered, and only one of the fulfilled/rejected handlers ever runs.

A Status is replaced rather than changed: once the future settles the
resolver publishes ``status.refresh()`` (or ``status.replace(...)``).

Example:
    future = loop.create_future()
    status = Status(future)
    assert status.is_pending()

    status.then(lambda result: print('loaded', result),
                lambda exc: print('failed', exc))
    future.set_result({'id': 1})
"""

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, Optional, Union

from .consts import State
from .errors import StatusError

logger = logging.getLogger(__name__)

_UNCHANGED = object()

OnFulfilled = Optional[Callable[[Any], Any]]
OnRejected = Optional[Callable[[BaseException], Any]]


def _copy_outcome(source: "asyncio.Future", target: "asyncio.Future") -> None:
    if target.done():
        return
    if source.cancelled():
        target.cancel()
        return
    exc = source.exception()
    if exc is not None:
        target.set_exception(exc)
    else:
        target.set_result(source.result())


def _resolve(target: "asyncio.Future", value: Any) -> None:
    """Settle ``target`` with ``value``, following it first if it is awaitable."""
    if isinstance(value, Status):
        value = value.promise
    if inspect.isawaitable(value):
        inner = asyncio.ensure_future(value, loop=target.get_loop())
        inner.add_done_callback(lambda fut: _copy_outcome(fut, target))
        return
    target.set_result(value)


class Status:
    """Tri-state wrapper around the future of one fetch.

    Args:
        promise: the asyncio future (or task) of the fetch.
        status: initial State, or its string value. Default: PENDING.
        status_code: transport status code, if any.
        err: the error of a failed fetch, if any.

    Raises:
        StatusError: if ``promise`` is not an asyncio future.
    """

    __slots__ = ('status', 'status_code', 'err', 'promise')

    def __init__(
        self,
        promise: Any = None,
        status: Union[State, str, None] = None,
        status_code: Optional[int] = None,
        err: Any = None,
    ) -> None:
        if not asyncio.isfuture(promise):
            raise StatusError('A future must be provided to the Status constructor')

        self.status = State.coerce(status) if status else State.PENDING
        self.status_code = status_code
        self.err = err
        self.promise = promise

    @classmethod
    def track(cls, awaitable: Awaitable[Any], **kwargs: Any) -> "Status":
        """Schedule ``awaitable`` on the running loop and wrap it in a pending Status."""
        return cls(asyncio.ensure_future(awaitable), **kwargs)

    def is_pending(self) -> bool:
        return self.status is State.PENDING

    def is_success(self) -> bool:
        return self.status is State.SUCCESS

    def is_error(self) -> bool:
        return self.status is State.ERROR

    def done(self) -> bool:
        """True once the wrapped future has settled, whatever ``status`` says."""
        return self.promise.done()

    def replace(
        self,
        status: Any = _UNCHANGED,
        status_code: Any = _UNCHANGED,
        err: Any = _UNCHANGED,
    ) -> "Status":
        """Return a new Status over the same future with some values changed."""
        return type(self)(
            self.promise,
            status=self.status if status is _UNCHANGED else status,
            status_code=self.status_code if status_code is _UNCHANGED else status_code,
            err=self.err if err is _UNCHANGED else err,
        )

    def refresh(self) -> "Status":
        """Return a Status reflecting the wrapped future's outcome.

        Returns ``self`` while the future is still pending.
        """
        if not self.promise.done():
            return self
        if self.promise.cancelled():
            return self.replace(status=State.ERROR, err=asyncio.CancelledError())
        exc = self.promise.exception()
        if exc is not None:
            return self.replace(status=State.ERROR, err=exc)
        return self.replace(status=State.SUCCESS, err=None)

    def then(self, on_fulfilled: OnFulfilled = None, on_rejected: OnRejected = None) -> "asyncio.Future":
        """Attach continuations to the wrapped future.

        Returns a new future settled with the result of whichever handler
        runs. A missing handler passes the outcome through unchanged. A
        handler may return an awaitable, which is followed. A cancelled
        fetch is passed to ``on_rejected`` as ``asyncio.CancelledError``.
        """
        source = self.promise
        derived = source.get_loop().create_future()

        def _settle(fut: "asyncio.Future") -> None:
            if derived.cancelled():
                return
            if fut.cancelled():
                if on_rejected is None:
                    derived.cancel()
                    return
                handler, arg = on_rejected, asyncio.CancelledError()
            else:
                exc = fut.exception()
                if exc is not None:
                    logger.debug("Fetch rejected with %r", exc)
                    if on_rejected is None:
                        derived.set_exception(exc)
                        return
                    handler, arg = on_rejected, exc
                else:
                    if on_fulfilled is None:
                        derived.set_result(fut.result())
                        return
                    handler, arg = on_fulfilled, fut.result()

            try:
                value = handler(arg)
            except asyncio.CancelledError:
                derived.cancel()
                return
            except Exception as exc:
                derived.set_exception(exc)
                return
            _resolve(derived, value)

        source.add_done_callback(_settle)
        return derived

    def catch(self, on_rejected: OnRejected) -> "asyncio.Future":
        """Attach a rejection handler; fulfilled results pass through."""
        return self.then(None, on_rejected)

    def __await__(self):
        return self.promise.__await__()

    def __repr__(self) -> str:
        parts = [f"status={self.status.value}"]
        if self.status_code is not None:
            parts.append(f"status_code={self.status_code}")
        if self.err is not None:
            parts.append(f"err={self.err!r}")
        return f"Status({', '.join(parts)})"


__all__ = ["Status"]
