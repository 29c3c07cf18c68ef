"""
Interruptible foreign calls.

An interruptible call runs on a worker thread while the calling thread
waits. If the waiting thread is interrupted (KeyboardInterrupt or any other
exception raised while it waits), the worker is sent a signal so that a
blocking system call in the foreign code returns EINTR. The foreign code
decides how to react; nothing is preempted.
"""

import signal
import threading
from concurrent import futures
from typing import Any, Callable, Optional

from ..utils.logging import get_logger

logger = get_logger(__name__)


def _ignore_signal(signum, frame) -> None:
    pass


def resolve_signal(name: str) -> int:
    """Map a signal name such as "SIGUSR2" to its number."""
    try:
        return int(getattr(signal, name))
    except AttributeError:
        raise ValueError(f"Unknown signal '{name}'")


class InterruptibleExecutor:
    """Runs foreign calls on worker threads that can be signalled."""

    def __init__(self, signal_name: str = "SIGUSR2", poll_interval: float = 0.05):
        """
        Args:
            signal_name: Signal sent to a worker whose caller was interrupted
            poll_interval: Seconds between checks while waiting for a result
        """
        self.signum = resolve_signal(signal_name)
        self.poll_interval = poll_interval
        self._pool = futures.ThreadPoolExecutor(thread_name_prefix="inline-rust-interruptible")
        self._install_handler()

    def _install_handler(self) -> None:
        # The worker only needs its system call interrupted; the handler itself
        # does nothing. Handlers can only be installed from the main thread.
        if threading.current_thread() is not threading.main_thread():
            logger.warning(
                f"Interruptible executor created off the main thread; "
                f"no handler installed for signal {self.signum}"
            )
            return
        if signal.getsignal(self.signum) in (signal.SIG_DFL, None):
            signal.signal(self.signum, _ignore_signal)
        signal.siginterrupt(self.signum, True)

    def call(self, function: Callable[..., Any], *args: Any) -> Any:
        """
        Call `function(*args)` on a worker thread and wait for the result.

        Raises:
            Whatever the function raises, or the exception that interrupted
            the wait (after the worker was signalled)
        """
        started = threading.Event()
        worker = {}

        def run():
            worker["ident"] = threading.get_ident()
            started.set()
            return function(*args)

        future = self._pool.submit(run)
        while True:
            try:
                return future.result(timeout=self.poll_interval)
            except futures.TimeoutError:
                continue
            except BaseException:
                if not future.done() and started.is_set():
                    self._interrupt(worker["ident"])
                raise

    def can_interrupt(self) -> bool:
        """Whether signalling a worker is safe, i.e. the signal has a handler."""
        return signal.getsignal(self.signum) not in (signal.SIG_DFL, None)

    def _interrupt(self, ident: int) -> None:
        # The default action of the usual signals terminates the process.
        if not self.can_interrupt():
            logger.warning(
                f"Not interrupting worker thread {ident}: signal {self.signum} has no handler "
                f"(install inline_rust.runtime.interrupt on the main thread first)"
            )
            return
        logger.debug(f"Interrupting worker thread {ident} with signal {self.signum}")
        signal.pthread_kill(ident, self.signum)

    def shutdown(self) -> None:
        self._pool.shutdown(wait=False)


# Global instance for reuse
_global_executor: Optional[InterruptibleExecutor] = None
_executor_lock = threading.Lock()


def get_executor() -> InterruptibleExecutor:
    """Get the process-wide executor, created from the runtime configuration."""
    global _global_executor
    with _executor_lock:
        if _global_executor is None:
            from ..utils.config import get_config

            runtime = get_config().runtime
            _global_executor = InterruptibleExecutor(runtime.interrupt_signal, runtime.interrupt_poll_interval)
        return _global_executor
