"""Single-value promise with chainable continuations.

Continuations never run inside the stack that settles the promise: they are
queued on the owning asyncio event loop, in registration order, so a long
chain of steps does not grow the call stack.
"""

from __future__ import annotations

import asyncio
import inspect
from enum import Enum
from typing import Any, Awaitable, Callable, Generator, Generic, TypeAlias, TypeVar, cast

from cerebra_chain.errors import AbortedError

T = TypeVar("T")
R = TypeVar("R")

ResolveFn: TypeAlias = Callable[[Any], None]
RejectFn: TypeAlias = Callable[[BaseException], None]
Executor: TypeAlias = Callable[[ResolveFn, RejectFn], None]

# Tasks started by Promise.from_awaitable; the loop only keeps weak references.
_background_tasks: set[asyncio.Future[Any]] = set()


class PromiseState(str, Enum):
    PENDING = "pending"
    FULFILLED = "fulfilled"
    REJECTED = "rejected"


def _running_loop() -> asyncio.AbstractEventLoop | None:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None


class Promise(Generic[T]):
    def __init__(self, executor: Executor, *, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._state: PromiseState = PromiseState.PENDING
        self._value: T | None = None
        self._error: BaseException | None = None
        self._on_fulfilled: list[Callable[[T], None]] = []
        self._on_rejected: list[RejectFn] = []
        self._loop: asyncio.AbstractEventLoop | None = loop if loop is not None else _running_loop()
        try:
            executor(self._resolve, self._reject)
        except Exception as exc:
            self._reject(exc)

    @classmethod
    def resolved(cls, value: T, *, loop: asyncio.AbstractEventLoop | None = None) -> "Promise[T]":
        return cls(lambda resolve, _reject: resolve(value), loop=loop)

    @classmethod
    def rejected(cls, error: BaseException, *, loop: asyncio.AbstractEventLoop | None = None) -> "Promise[T]":
        return cls(lambda _resolve, reject: reject(error), loop=loop)

    @classmethod
    def from_awaitable(
        cls,
        awaitable: Awaitable[T],
        *,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> "Promise[T]":
        """
        Run a coroutine (or any awaitable) as a task and settle with its outcome.
        A cancelled task rejects with AbortedError.
        """

        def executor(resolve: ResolveFn, reject: RejectFn) -> None:
            task = asyncio.ensure_future(awaitable, loop=loop)
            _background_tasks.add(task)

            def done(finished: asyncio.Future[Any]) -> None:
                _background_tasks.discard(finished)
                if finished.cancelled():
                    reject(AbortedError())
                    return
                error = finished.exception()
                if error is not None:
                    reject(error)
                else:
                    resolve(finished.result())

            task.add_done_callback(done)

        return cls(executor, loop=loop)

    @property
    def state(self) -> PromiseState:
        return self._state

    @property
    def value(self) -> T | None:
        return self._value

    @property
    def error(self) -> BaseException | None:
        return self._error

    def done(self) -> bool:
        return self._state is not PromiseState.PENDING

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def _dispatch(self, handler: Callable[[Any], None], argument: Any) -> None:
        self._get_loop().call_soon_threadsafe(handler, argument)

    def _resolve(self, value: T) -> None:
        if self._state is not PromiseState.PENDING:
            return
        self._state = PromiseState.FULFILLED
        self._value = value
        handlers = self._on_fulfilled
        self._on_fulfilled = []
        self._on_rejected = []
        for handler in handlers:
            self._dispatch(handler, value)

    def _reject(self, error: BaseException) -> None:
        if self._state is not PromiseState.PENDING:
            return
        self._state = PromiseState.REJECTED
        self._error = error
        handlers = self._on_rejected
        self._on_fulfilled = []
        self._on_rejected = []
        for handler in handlers:
            self._dispatch(handler, error)

    def _subscribe(self, on_fulfilled: Callable[[T], None], on_rejected: RejectFn) -> None:
        if self._state is PromiseState.PENDING:
            self._on_fulfilled.append(on_fulfilled)
            self._on_rejected.append(on_rejected)
        elif self._state is PromiseState.FULFILLED:
            self._dispatch(on_fulfilled, cast(T, self._value))
        else:
            self._dispatch(on_rejected, self._error)

    def then(self, on_fulfilled: Callable[[T], object]) -> "Promise[T]":
        """Run a side effect on fulfilment and pass the value through unchanged."""

        def passthrough(value: T) -> T:
            on_fulfilled(value)
            return value

        return self.then_map(passthrough)

    def then_map(self, on_fulfilled: Callable[[T], R]) -> "Promise[R]":
        def executor(resolve: ResolveFn, reject: RejectFn) -> None:
            def fulfilled(value: T) -> None:
                try:
                    result = on_fulfilled(value)
                except Exception as exc:
                    reject(exc)
                    return
                resolve(result)

            self._subscribe(fulfilled, reject)

        return Promise(executor, loop=self._loop)

    def then_compose(self, on_fulfilled: Callable[[T], "Promise[R] | Awaitable[R]"]) -> "Promise[R]":
        """Chain to another asynchronous operation; settles when the inner one settles."""

        def executor(resolve: ResolveFn, reject: RejectFn) -> None:
            def fulfilled(value: T) -> None:
                try:
                    inner = as_promise(on_fulfilled(value), loop=self._loop)
                except Exception as exc:
                    reject(exc)
                    return
                inner._subscribe(resolve, reject)

            self._subscribe(fulfilled, reject)

        return Promise(executor, loop=self._loop)

    def catch(self, on_rejected: Callable[[BaseException], object]) -> "Promise[T]":
        """
        Observe a rejection. The returned promise is still rejected with the same
        error once the observer has run; an exception raised by the observer
        replaces it.
        """

        def executor(resolve: ResolveFn, reject: RejectFn) -> None:
            def rejected(error: BaseException) -> None:
                try:
                    on_rejected(error)
                except Exception as exc:
                    reject(exc)
                    return
                reject(error)

            self._subscribe(resolve, rejected)

        return Promise(executor, loop=self._loop)

    def __await__(self) -> Generator[Any, None, T]:
        waiter: asyncio.Future[T] = self._get_loop().create_future()

        def fulfilled(value: T) -> None:
            if not waiter.done():
                waiter.set_result(value)

        def rejected(error: BaseException) -> None:
            if not waiter.done():
                waiter.set_exception(error)

        self._subscribe(fulfilled, rejected)
        return (yield from waiter.__await__())

    def __repr__(self) -> str:
        if self._state is PromiseState.FULFILLED:
            return f"<Promise fulfilled value={self._value!r}>"
        if self._state is PromiseState.REJECTED:
            return f"<Promise rejected error={self._error!r}>"
        return "<Promise pending>"


def as_promise(result: "Promise[R] | Awaitable[R]", *, loop: asyncio.AbstractEventLoop | None = None) -> Promise[R]:
    if isinstance(result, Promise):
        return result
    if inspect.isawaitable(result):
        return Promise.from_awaitable(result, loop=loop)
    raise TypeError(f"Expected a Promise or awaitable, got {type(result).__name__}.")
