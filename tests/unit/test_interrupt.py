"""
Unit tests for interruptible calls.
"""

import os
import signal
import subprocess
import sys
import textwrap
import threading
from pathlib import Path
from unittest.mock import Mock, patch

import pytest

from inline_rust.runtime.interrupt import InterruptibleExecutor, resolve_signal

PROJECT_ROOT = Path(__file__).resolve().parents[2]

pytestmark = pytest.mark.skipif(not hasattr(signal, "pthread_kill"), reason="requires POSIX signals")


class TestResolveSignal:
    def test_known_signal(self):
        assert resolve_signal("SIGUSR2") == signal.SIGUSR2

    def test_unknown_signal(self):
        with pytest.raises(ValueError):
            resolve_signal("SIGNOTREAL")


class TestInterruptibleExecutor:
    """Test worker-thread execution and interruption."""

    def setup_method(self):
        """Set up test fixtures."""
        self.executor = InterruptibleExecutor("SIGUSR2", poll_interval=0.01)

    def teardown_method(self):
        """Clean up test fixtures."""
        self.executor.shutdown()

    def test_returns_result(self):
        assert self.executor.call(lambda a, b: a + b, 2, 3) == 5

    def test_runs_on_worker_thread(self):
        caller = threading.get_ident()
        worker = self.executor.call(threading.get_ident)
        assert worker != caller

    def test_propagates_exceptions(self):
        def fail():
            raise ValueError("boom")

        with pytest.raises(ValueError, match="boom"):
            self.executor.call(fail)

    def test_handler_installed(self):
        assert signal.getsignal(signal.SIGUSR2) not in (signal.SIG_DFL, None)

    def test_interrupted_wait_signals_worker(self):
        """Test that an exception in the waiting thread signals the worker."""
        entered = threading.Event()
        release = threading.Event()

        def blocking():
            entered.set()
            release.wait(5)
            return "done"

        real_submit = self.executor._pool.submit

        def submit(fn):
            future = real_submit(fn)
            proxy = Mock(wraps=future)

            def interrupted_result(timeout=None):
                entered.wait(5)
                raise KeyboardInterrupt

            proxy.result.side_effect = interrupted_result
            proxy.done.side_effect = future.done
            return proxy

        with patch.object(self.executor._pool, "submit", side_effect=submit), patch.object(
            self.executor, "_interrupt", side_effect=lambda ident: release.set()
        ) as mock_interrupt:
            with pytest.raises(KeyboardInterrupt):
                self.executor.call(blocking)

        mock_interrupt.assert_called_once()
        assert release.is_set()

    def test_no_signal_without_handler(self):
        with patch("signal.getsignal", return_value=signal.SIG_DFL), patch("signal.pthread_kill") as mock_kill:
            assert not self.executor.can_interrupt()
            self.executor._interrupt(threading.get_ident())
        mock_kill.assert_not_called()

    def test_signal_sent_with_handler(self):
        with patch("signal.pthread_kill") as mock_kill:
            self.executor._interrupt(1234)
        mock_kill.assert_called_once_with(1234, signal.SIGUSR2)

    def test_no_signal_after_completion(self):
        with patch.object(self.executor, "_interrupt") as mock_interrupt:
            self.executor.call(lambda: None)
        mock_interrupt.assert_not_called()


def _run_script(script, timeout=30):
    env = dict(os.environ)
    env["PYTHONPATH"] = os.pathsep.join(filter(None, [str(PROJECT_ROOT), env.get("PYTHONPATH")]))
    return subprocess.run(
        [sys.executable, "-c", textwrap.dedent(script)],
        capture_output=True,
        text=True,
        env=env,
        timeout=timeout,
    )


class TestInterruptInSubprocess:
    """Test real interruption, in a fresh interpreter with default signal dispositions."""

    def test_executor_created_off_main_thread_does_not_kill_process(self):
        result = _run_script(
            """\
            import _thread
            import threading
            import time

            from inline_rust.runtime.interrupt import InterruptibleExecutor

            holder = []
            creator = threading.Thread(target=lambda: holder.append(InterruptibleExecutor("SIGUSR2", 0.01)))
            creator.start()
            creator.join()
            executor = holder[0]
            assert not executor.can_interrupt()

            threading.Timer(0.2, _thread.interrupt_main).start()
            try:
                executor.call(time.sleep, 1)
            except KeyboardInterrupt:
                print("interrupted")
            print("process survived")
            """
        )
        assert result.returncode == 0, result.stderr
        assert "interrupted" in result.stdout
        assert "process survived" in result.stdout

    def test_blocking_foreign_call_is_interrupted(self):
        result = _run_script(
            """\
            import _thread
            import ctypes
            import threading
            import time

            from inline_rust.runtime.interrupt import InterruptibleExecutor

            executor = InterruptibleExecutor("SIGUSR2", 0.01)
            libc_sleep = ctypes.CDLL(None).sleep
            libc_sleep.argtypes = [ctypes.c_uint]
            libc_sleep.restype = ctypes.c_uint

            start = time.monotonic()
            threading.Timer(0.2, _thread.interrupt_main).start()
            try:
                executor.call(libc_sleep, 5)
            except KeyboardInterrupt:
                print("interrupted")
            executor.shutdown()
            print(f"elapsed {time.monotonic() - start:.2f}")
            """
        )
        assert result.returncode == 0, result.stderr
        assert "interrupted" in result.stdout
        elapsed = float(result.stdout.split("elapsed ")[1])
        assert elapsed < 4
