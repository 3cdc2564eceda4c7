"""
TCP connect scanner using plain connect() without crafting raw packets.
Concurrency is admission-gated by a counting semaphore so the number of
in-flight connection attempts never exceeds the gate capacity.
"""

import logging
import socket
import threading
import time
from typing import Callable, Dict, Iterable, List, Optional

from core.models import PortScanResult

log = logging.getLogger(__name__)

Dialer = Callable[[str, int, float], bool]

DEFAULT_CONCURRENCY = 100


def tcp_connect(host: str, port: int, timeout: float = 2.0) -> bool:
    """Open and immediately close a TCP connection; True when it completed within timeout."""
    try:
        with socket.create_connection((host, port), timeout=timeout):
            return True
    except (socket.timeout, OSError):
        return False


def scan_ports(
    host: str,
    ports: Iterable[int],
    timeout: float = 2.0,
    max_concurrency: int = DEFAULT_CONCURRENCY,
    dialer: Optional[Dialer] = None,
    deadline_s: Optional[float] = None,
) -> PortScanResult:
    """
    Classify every requested port as open or closed/filtered.

    Blocks until all ports are classified. Failures are not retried. When
    deadline_s is given, ports not yet started once it elapses are recorded
    as closed without being dialled; by default the scan always runs to
    completion.
    """
    if max_concurrency < 1:
        raise ValueError("max_concurrency must be >= 1")

    dialer = dialer or tcp_connect
    port_list: List[int] = list(dict.fromkeys(ports))
    results: Dict[int, bool] = {}
    open_ports: List[int] = []
    lock = threading.Lock()
    gate = threading.BoundedSemaphore(max_concurrency)
    stop_at = time.monotonic() + deadline_s if deadline_s else None

    def record(port: int, is_open: bool) -> None:
        with lock:
            results[port] = is_open
            if is_open:
                open_ports.append(port)

    def worker(port: int) -> None:
        try:
            try:
                is_open = bool(dialer(host, port, timeout))
            except Exception:  # noqa: BLE001
                log.debug("dialer failed for %s:%s", host, port, exc_info=True)
                is_open = False
            record(port, is_open)
        finally:
            gate.release()

    log.info("scanning %d ports on %s (gate=%d, timeout=%.1fs)", len(port_list), host, max_concurrency, timeout)
    threads: List[threading.Thread] = []
    for port in port_list:
        gate.acquire()
        if stop_at is not None and time.monotonic() >= stop_at:
            gate.release()
            record(port, False)
            continue
        t = threading.Thread(target=worker, args=(port,), name=f"scan-{port}", daemon=True)
        t.start()
        threads.append(t)

    for t in threads:
        t.join()

    open_ports.sort()
    log.info("scan of %s complete: %d/%d open", host, len(open_ports), len(port_list))
    return PortScanResult(host=host, results=results, open_ports=open_ports)
