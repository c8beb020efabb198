"""Measure how fast ovs-vsctl adds internal ports under a request rate limit."""

from __future__ import annotations

import logging
import subprocess
import sys
import threading
import time
import uuid
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor

log = logging.getLogger(__name__)

_MAX_WORKERS = 256

Runner = Callable[[list[str]], tuple[bool, str]]


class RateLimiter:
    """Token bucket allowing ``rate`` events per second with bursts of ``burst``."""

    def __init__(
        self,
        rate: float,
        burst: int,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if rate <= 0:
            raise ValueError("rate must be positive")
        if burst <= 0:
            raise ValueError("burst must be positive")
        self.rate = float(rate)
        self.burst = burst
        self._clock = clock
        self._sleep = sleep
        self._tokens = float(burst)
        self._last = clock()
        self._lock = threading.Lock()

    def wait(self) -> float:
        """Block until an event may happen; return the seconds waited."""
        with self._lock:
            now = self._clock()
            elapsed = max(0.0, now - self._last)
            self._tokens = min(float(self.burst), self._tokens + elapsed * self.rate)
            self._last = now
            self._tokens -= 1
            delay = -self._tokens / self.rate if self._tokens < 0 else 0.0
        if delay > 0:
            self._sleep(delay)
        return delay


def _run_command(argv: list[str]) -> tuple[bool, str]:
    try:
        proc = subprocess.run(argv, capture_output=True, text=True)
    except OSError as exc:
        return False, str(exc)
    return proc.returncode == 0, proc.stdout or ""


def add_port(port_id: str, runner: Runner | None = None) -> bool:
    """Add internal port ``port_id`` to br-int; return whether it succeeded."""
    run = runner or _run_command
    log.info("Adding tap %s to br-int!", port_id)
    command = (
        f"ovs-vsctl add-port br-int {port_id} --  set Interface {port_id} type=internal"
    )
    ok, output = run(["bash", "-c", command])
    if not ok:
        log.warning("ovs-vsctl failed for id %s%s", port_id, output)
    return ok


def run_benchmark(num_calls: int, rps: int, runner: Runner | None = None) -> int:
    """Add ``num_calls`` ports concurrently at ``rps`` per second; return elapsed ms."""
    limiter = RateLimiter(rps, rps)
    begin = time.monotonic()

    def _call(_: int) -> bool:
        port_id = str(uuid.uuid4())[:10]
        limiter.wait()
        return add_port(port_id, runner)

    if num_calls > 0:
        workers = min(num_calls, _MAX_WORKERS)
        with ThreadPoolExecutor(max_workers=workers) as pool:
            list(pool.map(_call, range(num_calls)))

    elapsed_ms = int((time.monotonic() - begin) * 1000)
    log.info("Finished %d ovs calls. Time elapsed is %d ms", num_calls, elapsed_ms)
    return elapsed_ms


def main(argv: Sequence[str] | None = None) -> int:
    """Command entry point: ``ovsbench NUM_CALLS RPS``."""
    args = list(sys.argv[1:] if argv is None else argv)
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(message)s")
    if len(args) < 2:
        log.critical("Not enough arguments")
        raise SystemExit(1)
    try:
        num_calls = int(args[0])
    except ValueError:
        log.critical("numCalls: %s is not a valid number!", args[0])
        raise SystemExit(1) from None
    try:
        rps = int(args[1])
    except ValueError:
        log.critical("RPS: %s is not a valid number!", args[1])
        raise SystemExit(1) from None
    try:
        run_benchmark(num_calls, rps)
    except ValueError as exc:
        log.critical("%s", exc)
        raise SystemExit(1) from None
    return 0