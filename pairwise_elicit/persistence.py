"""
Background persistence with per-key ordering.

Writes run on a thread pool so the respondent never waits on the record
store. Work submitted under the same key runs strictly in submission
order: each call waits for the previous call on that key to finish, success
or failure, before it starts. Different keys run concurrently.
"""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Any, Callable, Dict, Hashable, List, Optional

logger = logging.getLogger(__name__)

DEFAULT_MAX_WORKERS = 4


class PersistenceDispatcher:
    """
    Runs record store calls in the background, serialized per key.
    
    Attributes:
        max_workers: Size of the worker pool
    """
    
    def __init__(self, max_workers: int = DEFAULT_MAX_WORKERS):
        self.max_workers = max_workers
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="persist"
        )
        # key -> most recently submitted future for that key
        self._tails: Dict[Hashable, Future] = {}
        self._lock = threading.Lock()
        self._closed = False
    
    def submit(self, key: Hashable, fn: Callable[..., Any], *args: Any) -> Future:
        """
        Schedule `fn(*args)` after every earlier call submitted under `key`.
        
        Returns:
            Future resolving to fn's return value or raising its exception
            
        Raises:
            RuntimeError: If the dispatcher has been shut down
        """
        with self._lock:
            if self._closed:
                raise RuntimeError("Persistence dispatcher is shut down")
            previous = self._tails.get(key)
            # The pool queue is FIFO, so `previous` is always picked up by a
            # worker before this call is; waiting on it cannot starve the pool.
            future = self._executor.submit(self._run_after, previous, fn, *args)
            self._tails[key] = future
        future.add_done_callback(lambda f: self._release(key, f))
        return future
    
    @staticmethod
    def _run_after(previous: Optional[Future], fn: Callable[..., Any], *args: Any) -> Any:
        if previous is not None:
            wait([previous])
        return fn(*args)
    
    def _release(self, key: Hashable, future: Future) -> None:
        with self._lock:
            if self._tails.get(key) is future:
                del self._tails[key]
    
    def is_pending(self, key: Hashable) -> bool:
        """True while any call submitted under `key` has not finished."""
        with self._lock:
            future = self._tails.get(key)
        return future is not None and not future.done()
    
    def pending_keys(self) -> List[Hashable]:
        with self._lock:
            return [key for key, future in self._tails.items() if not future.done()]
    
    def wait(self, timeout: Optional[float] = None) -> bool:
        """
        Block until all submitted calls have finished.
        
        Returns:
            True if everything finished, False if the timeout expired first
        """
        with self._lock:
            futures = list(self._tails.values())
        if not futures:
            return True
        # The tail of each key finishes last, so the tails cover every call.
        _, not_done = wait(futures, timeout=timeout)
        return not not_done
    
    def shutdown(self, wait_for_pending: bool = True) -> None:
        """
        Stop accepting work.
        
        In-flight and queued calls are never cancelled; with
        `wait_for_pending=False` they finish on their own.
        """
        with self._lock:
            self._closed = True
        logger.debug("Shutting down persistence dispatcher (wait=%s)", wait_for_pending)
        self._executor.shutdown(wait=wait_for_pending)
