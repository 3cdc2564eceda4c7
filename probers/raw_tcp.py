"""
Minimal raw TCP helpers for protocol handshakes: connect, write a short
sequence of buffers, read one bounded reply after each. Every transport
failure reads as an empty reply.
"""

import logging
import socket
from typing import Callable, List, Optional, Sequence, Union

log = logging.getLogger(__name__)

# A step is either a fixed buffer or a function of the replies received so far.
Step = Union[bytes, None, Callable[[List[bytes]], Optional[bytes]]]


def recv_some(sock: socket.socket, n: int = 4096) -> bytes:
    try:
        return sock.recv(n)
    except (socket.timeout, OSError):
        return b""


def converse(
    host: str, port: int, steps: Sequence[Step], timeout: float = 3.0, read_size: int = 4096
) -> List[bytes]:
    """
    Run a short scripted conversation on one connection.

    For each step the payload (if any) is written, then one reply is read.
    The conversation ends at the first empty reply; replies gathered up to
    that point are returned.
    """
    replies: List[bytes] = []
    try:
        with socket.create_connection((host, port), timeout=timeout) as sock:
            sock.settimeout(timeout)
            for step in steps:
                payload = step(replies) if callable(step) else step
                if payload:
                    sock.sendall(payload)
                reply = recv_some(sock, read_size)
                replies.append(reply)
                if not reply:
                    break
    except (socket.timeout, OSError) as exc:
        log.debug("raw conversation with %s:%s failed: %s", host, port, exc)
    return replies


def exchange(host: str, port: int, payload: Optional[bytes], timeout: float = 3.0, read_size: int = 4096) -> bytes:
    """One connection, one write (if payload), one bounded read."""
    replies = converse(host, port, [payload], timeout=timeout, read_size=read_size)
    return replies[0] if replies else b""
