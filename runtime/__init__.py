"""Host runtime for contract calls.

This module provides the execution model the contract relies on:
- One call at a time, each inside a single storage transaction
- Atomic failure: any exception reverts the call's writes and drops its promises
- Promises (outgoing RPC effects) dispatched only after the call commits
- Continuations run later as separate calls that cannot undo the issuing call
"""

import asyncio
import itertools
import logging
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Annotated, Any, Awaitable, Callable, Deque, List, Optional, Set

from pydantic import Field

from database.store import Store, StorageSession

logger = logging.getLogger(__name__)

MAX_AMOUNT = 2 ** 128 - 1

# Unsigned 128-bit amount for pydantic models
U128 = Annotated[int, Field(ge=0, le=MAX_AMOUNT)]

class ContractError(Exception):
    """Base class for errors that abort a contract call.

    Raising one reverts every write made earlier in the same call.
    """
    status_code = 400

class Unauthorized(ContractError):
    """Raised when the caller lacks the privilege an operation requires."""
    status_code = 403

class InvalidAccount(ContractError):
    """Raised when an account id argument is malformed."""
    status_code = 400

class ViewMutationError(ContractError):
    """Raised when a view call tries to schedule an external effect."""
    status_code = 500

def ensure_amount(value: int, name: str = 'amount') -> int:
    """Validate an unsigned 128-bit amount."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{name} must be an integer, got {type(value).__name__}")
    if value < 0 or value > MAX_AMOUNT:
        raise ValueError(f"{name} out of range for an unsigned 128-bit amount: {value}")
    return value

@dataclass
class PromiseResult:
    """Outcome of an executed promise"""
    ok: bool
    value: Any = None
    error: Optional[BaseException] = None

@dataclass
class Promise:
    """An outgoing effect scheduled by a call.

    Args:
        description: Human-readable summary used in logs and receipts
        action: Blocking callable performing the effect, run in a worker thread
        callback: Optional continuation run as a new call with the result
    """
    description: str
    action: Callable[[], Any]
    callback: Optional[Callable[['CallContext', PromiseResult], Awaitable[Any]]] = None
    id: int = 0

@dataclass
class Receipt:
    """Record of a settled promise"""
    promise_id: int
    description: str
    ok: bool
    error: Optional[str] = None
    callback_result: Any = None

@dataclass
class CallContext:
    """Environment of a single contract call"""
    caller: str
    contract_id: str
    timestamp: int
    session: StorageSession
    attached_payment: int = 0
    readonly: bool = False
    promises: List[Promise] = field(default_factory=list)

    def schedule(self, promise: Promise) -> Promise:
        """Queue a promise to be dispatched once this call commits."""
        if self.readonly:
            raise ViewMutationError(f"View call cannot schedule: {promise.description}")
        self.promises.append(promise)
        return promise

class Runtime:
    """Executes contract calls and their asynchronous effects."""

    def __init__(
        self,
        store: Store,
        contract_id: str,
        clock: Optional[Callable[[], int]] = None,
        receipt_log_size: int = 1000
    ) -> None:
        """Initialize the runtime.

        Args:
            store: Storage backend holding the contract state
            contract_id: Account id of the contract itself
            clock: Returns the current timestamp in nanoseconds
            receipt_log_size: Number of receipts kept in memory
        """
        self.store = store
        self.contract_id = contract_id
        self.clock = clock or time.time_ns
        self.receipts: Deque[Receipt] = deque(maxlen=receipt_log_size)
        self._lock = asyncio.Lock()
        self._tasks: Set[asyncio.Task] = set()
        self._promise_ids = itertools.count(1)

    async def call(
        self,
        fn: Callable[..., Awaitable[Any]],
        caller: str,
        attached_payment: int = 0,
        **kwargs: Any
    ) -> Any:
        """Run a mutating call.

        Args:
            fn: Coroutine function taking the CallContext and kwargs
            caller: Account id of the caller
            attached_payment: Native currency attached to the call
            **kwargs: Call arguments

        Returns:
            Whatever fn returns

        Raises:
            ContractError: If the call aborts; nothing it did is kept
        """
        if not caller:
            raise InvalidAccount("Caller account id is empty")
        ensure_amount(attached_payment, 'attached_payment')

        async with self._lock:
            async with self.store.transaction() as session:
                ctx = CallContext(
                    caller=caller,
                    contract_id=self.contract_id,
                    timestamp=self.clock(),
                    session=session,
                    attached_payment=attached_payment
                )
                result = await fn(ctx, **kwargs)

        for promise in ctx.promises:
            self._dispatch(promise)
        return result

    async def view(
        self,
        fn: Callable[..., Awaitable[Any]],
        caller: Optional[str] = None,
        **kwargs: Any
    ) -> Any:
        """Run a read-only call against the committed state."""
        async with self.store.transaction(readonly=True) as session:
            ctx = CallContext(
                caller=caller or '',
                contract_id=self.contract_id,
                timestamp=self.clock(),
                session=session,
                readonly=True
            )
            return await fn(ctx, **kwargs)

    def _dispatch(self, promise: Promise) -> None:
        promise.id = next(self._promise_ids)
        logger.debug(f"Dispatching promise {promise.id}: {promise.description}")
        task = asyncio.create_task(self._execute(promise), name=f"promise-{promise.id}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _execute(self, promise: Promise) -> None:
        try:
            value = await asyncio.to_thread(promise.action)
            result = PromiseResult(ok=True, value=value)
        except Exception as e:
            result = PromiseResult(ok=False, error=e)

        receipt = Receipt(
            promise_id=promise.id,
            description=promise.description,
            ok=result.ok,
            error=str(result.error) if result.error else None
        )

        if promise.callback is None:
            if not result.ok:
                logger.error(f"Promise {promise.id} ({promise.description}) failed: {result.error}")
        else:
            try:
                receipt.callback_result = await self.call(
                    promise.callback,
                    caller=self.contract_id,
                    result=result
                )
            except Exception as e:
                logger.error(f"Continuation of promise {promise.id} ({promise.description}) failed: {e}")

        self.receipts.append(receipt)

    @property
    def pending(self) -> int:
        """Number of promises still in flight."""
        return len(self._tasks)

    async def drain(self) -> None:
        """Wait until every dispatched promise and its continuation settled."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

__all__ = [
    'MAX_AMOUNT',
    'U128',
    'ContractError',
    'Unauthorized',
    'InvalidAccount',
    'ViewMutationError',
    'ensure_amount',
    'Promise',
    'PromiseResult',
    'Receipt',
    'CallContext',
    'Runtime',
]
