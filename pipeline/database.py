"""
Database exposure probes.

Policy shared by every family:
    1. try each default credential pair in order, stop at the first success
    2. otherwise try one unauthenticated attempt where the protocol allows it
    3. while connected, run cheap follow-up checks and escalate severity

MySQL and PostgreSQL go through their DB-API drivers. MongoDB and Redis
are spoken to at the raw transport level with a minimal command buffer;
only a reply carrying the expected markers counts as access.

Every failure degrades to "no finding for this step"; each check always
returns a DatabaseProbeResult.
"""

from __future__ import annotations

import logging
import os
import re
import struct
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import psycopg2
import pymysql

from core.config import settings
from core.models import DatabaseProbeResult, Severity
from policy.policy_engine import DATABASE_PORTS
from policy.risk_scoring import escalate
from probers import raw_tcp

log = logging.getLogger(__name__)

Credential = Tuple[str, str]
# (username, password) -> session object, or None / raise when refused
Attempt = Callable[[str, str], Any]
Converse = Callable[..., List[bytes]]

MYSQL_CREDENTIALS: Tuple[Credential, ...] = (
    ("root", ""),
    ("root", "root"),
    ("root", "password"),
    ("admin", "admin"),
    ("mysql", "mysql"),
    ("test", "test"),
)

POSTGRES_CREDENTIALS: Tuple[Credential, ...] = (
    ("postgres", ""),
    ("postgres", "postgres"),
    ("postgres", "password"),
    ("admin", "admin"),
)

# Redis AUTH takes a bare password before 6.0; the username only labels the finding.
REDIS_CREDENTIALS: Tuple[Credential, ...] = (
    ("default", "foobared"),
    ("default", "redis"),
    ("default", "password"),
)

# SCRAM is out of reach for a minimal handshake, so MongoDB only gets the anonymous attempt.
MONGODB_CREDENTIALS: Tuple[Credential, ...] = ()

OUTDATED_MYSQL_PREFIXES = ("5.0.", "5.1.", "5.5.", "5.6.")
OUTDATED_POSTGRES_MAJOR = 9
OUTDATED_REDIS_MAJOR = 4
OUTDATED_MONGODB_MAJOR = 3

OP_REPLY = 1
OP_MSG = 2013


def _try(attempt: Attempt, username: str, password: str) -> Any:
    try:
        return attempt(username, password)
    except Exception as exc:  # noqa: BLE001
        log.debug("auth attempt as %r refused: %s", username or "<anonymous>", exc)
        return None


def _flag(result: DatabaseProbeResult, warning: str, severity: Severity) -> None:
    result.warnings.append(warning)
    result.severity = escalate(result.severity, severity)


def probe_credentials(
    result: DatabaseProbeResult,
    attempt: Attempt,
    credentials: Sequence[Credential],
    allow_anonymous: bool = True,
) -> Any:
    """
    Run the credential policy and return the open session, if any.
    Iteration stops at the first accepted pair.
    """
    for username, password in credentials:
        session = _try(attempt, username, password)
        if session is not None:
            result.accessible = True
            result.credentials = f"{username}:{password}"
            _flag(result, f"{result.service} accessible with default credentials: {username}:{password}", Severity.CRITICAL)
            return session

    if not allow_anonymous:
        return None
    session = _try(attempt, "", "")
    if session is not None:
        result.accessible = True
        _flag(result, f"{result.service} accessible without authentication", Severity.CRITICAL)
    return session


def _scalar(conn: Any, sql: str) -> Any:
    try:
        cur = conn.cursor()
        try:
            cur.execute(sql)
            row = cur.fetchone()
        finally:
            cur.close()
    except Exception as exc:  # noqa: BLE001
        log.debug("follow-up query failed (%s): %s", sql, exc)
        return None
    return row[0] if row else None


def _count(conn: Any, sql: str) -> int:
    value = _scalar(conn, sql)
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


def _close(conn: Any) -> None:
    try:
        conn.close()
    except Exception:  # noqa: BLE001
        pass


# MySQL


def _mysql_attempt(host: str, port: int, timeout: float) -> Attempt:
    def attempt(username: str, password: str):
        conn = pymysql.connections.Connection(
            host=host,
            port=port,
            user=username,
            password=password,
            connect_timeout=timeout,
            read_timeout=timeout,
            write_timeout=timeout,
            defer_connect=True,
        )
        # PyMySQL substitutes the local OS login for an empty user name
        conn.user = username
        conn.connect()
        return conn

    return attempt


def _mysql_followups(conn: Any, result: DatabaseProbeResult) -> None:
    if _count(conn, "SELECT COUNT(*) FROM mysql.user WHERE user = ''") > 0:
        _flag(result, "Anonymous users found in MySQL", Severity.CRITICAL)

    empty = _count(
        conn,
        "SELECT COUNT(*) FROM mysql.user WHERE authentication_string = '' "
        "AND plugin NOT IN ('auth_socket', 'unix_socket')",
    )
    if empty > 0:
        _flag(result, f"Users with empty passwords found: {empty}", Severity.CRITICAL)

    version = _scalar(conn, "SELECT VERSION()")
    if version and str(version).startswith(OUTDATED_MYSQL_PREFIXES):
        _flag(result, f"Outdated MySQL version: {version}", Severity.MEDIUM)


def check_mysql(
    host: str,
    port: int = 3306,
    timeout: Optional[float] = None,
    credentials: Sequence[Credential] = MYSQL_CREDENTIALS,
    attempt: Optional[Attempt] = None,
) -> DatabaseProbeResult:
    result = DatabaseProbeResult(service="MySQL", host=host, port=port)
    attempt = attempt or _mysql_attempt(host, port, timeout or settings.db_timeout_s)
    conn = probe_credentials(result, attempt, credentials)
    if conn is not None:
        try:
            _mysql_followups(conn, result)
        finally:
            _close(conn)
    return result


# PostgreSQL


def _postgres_attempt(host: str, port: int, timeout: float) -> Attempt:
    def attempt(username: str, password: str):
        conn = psycopg2.connect(
            host=host,
            port=port,
            user=username,
            password=password,
            dbname="postgres",
            connect_timeout=max(1, int(round(timeout))),
            # an empty password must not fall back to the auditor's own ~/.pgpass
            passfile=os.devnull,
        )
        conn.autocommit = True
        return conn

    return attempt


def _postgres_followups(conn: Any, result: DatabaseProbeResult) -> None:
    version = _scalar(conn, "SELECT version()")
    if version:
        m = re.search(r"PostgreSQL (\d+)\.", str(version))
        if m and int(m.group(1)) <= OUTDATED_POSTGRES_MAJOR:
            _flag(result, f"Outdated PostgreSQL version: {version}", Severity.MEDIUM)

    supers = _count(conn, "SELECT COUNT(*) FROM pg_roles WHERE rolsuper")
    if supers > 1:
        _flag(result, f"Multiple superuser accounts found: {supers}", Severity.MEDIUM)


def check_postgresql(
    host: str,
    port: int = 5432,
    timeout: Optional[float] = None,
    credentials: Sequence[Credential] = POSTGRES_CREDENTIALS,
    attempt: Optional[Attempt] = None,
) -> DatabaseProbeResult:
    result = DatabaseProbeResult(service="PostgreSQL", host=host, port=port)
    attempt = attempt or _postgres_attempt(host, port, timeout or settings.db_timeout_s)
    # the startup message always names a role; "postgres" with no password covers the open case
    conn = probe_credentials(result, attempt, credentials, allow_anonymous=False)
    if conn is not None:
        try:
            _postgres_followups(conn, result)
        finally:
            _close(conn)
    return result


# MongoDB (OP_MSG over raw TCP)


def build_op_msg(command: str, request_id: int = 1, db: str = "admin") -> bytes:
    """Encode {command: 1, "$db": db} as a single-section OP_MSG."""
    db_bytes = db.encode() + b"\x00"
    elements = (
        b"\x10" + command.encode() + b"\x00" + struct.pack("<i", 1)
        + b"\x02" + b"$db\x00" + struct.pack("<i", len(db_bytes)) + db_bytes
    )
    document = struct.pack("<i", len(elements) + 5) + elements + b"\x00"
    payload = struct.pack("<I", 0) + b"\x00" + document
    header = struct.pack("<iiii", 16 + len(payload), request_id, 0, OP_MSG)
    return header + payload


def reply_opcode(data: bytes) -> Optional[int]:
    if len(data) < 16:
        return None
    _, _, _, opcode = struct.unpack("<iiii", data[:16])
    return opcode


def mongo_reply_grants_access(data: bytes) -> bool:
    """A listDatabases reply that lists databases and carries no error message."""
    if reply_opcode(data) not in (OP_MSG, OP_REPLY):
        return False
    return b"databases\x00" in data and b"errmsg\x00" not in data


def _bson_string(data: bytes, name: str) -> Optional[str]:
    marker = b"\x02" + name.encode() + b"\x00"
    idx = data.find(marker)
    if idx < 0:
        return None
    start = idx + len(marker)
    if len(data) < start + 4:
        return None
    (length,) = struct.unpack("<i", data[start : start + 4])
    raw = data[start + 4 : start + 4 + length - 1]
    if length <= 0 or len(raw) != length - 1:
        return None
    return raw.decode(errors="ignore")


def _mongo_attempt(host: str, port: int, timeout: float, converse: Converse) -> Attempt:
    def attempt(username: str, password: str):
        if username:
            return None
        replies = converse(host, port, [build_op_msg("listDatabases")], timeout=timeout)
        if replies and mongo_reply_grants_access(replies[0]):
            return replies[0]
        return None

    return attempt


def _mongo_followups(host: str, port: int, timeout: float, converse: Converse, result: DatabaseProbeResult) -> None:
    replies = converse(host, port, [build_op_msg("buildInfo", request_id=2)], timeout=timeout)
    if not replies or reply_opcode(replies[0]) not in (OP_MSG, OP_REPLY):
        return
    version = _bson_string(replies[0], "version")
    if not version:
        return
    m = re.match(r"(\d+)\.", version)
    if m and int(m.group(1)) <= OUTDATED_MONGODB_MAJOR:
        _flag(result, f"Outdated MongoDB version: {version}", Severity.MEDIUM)


def check_mongodb(
    host: str,
    port: int = 27017,
    timeout: Optional[float] = None,
    credentials: Sequence[Credential] = MONGODB_CREDENTIALS,
    converse: Optional[Converse] = None,
) -> DatabaseProbeResult:
    result = DatabaseProbeResult(service="MongoDB", host=host, port=port)
    converse = converse or raw_tcp.converse
    timeout = timeout or settings.db_timeout_s
    session = probe_credentials(result, _mongo_attempt(host, port, timeout, converse), credentials)
    if session is not None:
        _mongo_followups(host, port, timeout, converse, result)
    return result


# Redis (RESP over raw TCP)


def resp_command(*parts: str) -> bytes:
    out = [b"*%d\r\n" % len(parts)]
    for part in parts:
        enc = part.encode()
        out.append(b"$%d\r\n%s\r\n" % (len(enc), enc))
    return b"".join(out)


def _redis_attempt(host: str, port: int, timeout: float, converse: Converse) -> Attempt:
    def attempt(username: str, password: str):
        if password:
            replies = converse(host, port, [resp_command("AUTH", password), resp_command("INFO")], timeout=timeout)
            if len(replies) < 2 or not replies[0].startswith(b"+OK"):
                return None
            info = replies[1]
        else:
            replies = converse(host, port, [resp_command("INFO")], timeout=timeout)
            info = replies[0] if replies else b""
        if b"redis_version" not in info:
            return None
        return info.decode(errors="ignore")

    return attempt


def _redis_followups(info: str, result: DatabaseProbeResult) -> None:
    m = re.search(r"redis_version:(\d+)\.([\d.]*)", info)
    if m and int(m.group(1)) <= OUTDATED_REDIS_MAJOR:
        _flag(result, f"Outdated Redis version: {m.group(1)}.{m.group(2)}", Severity.MEDIUM)


def check_redis(
    host: str,
    port: int = 6379,
    timeout: Optional[float] = None,
    credentials: Sequence[Credential] = REDIS_CREDENTIALS,
    converse: Optional[Converse] = None,
) -> DatabaseProbeResult:
    result = DatabaseProbeResult(service="Redis", host=host, port=port)
    converse = converse or raw_tcp.converse
    timeout = timeout or settings.db_timeout_s
    info = probe_credentials(result, _redis_attempt(host, port, timeout, converse), credentials)
    if info is not None:
        _redis_followups(info, result)
    return result


DATABASE_CHECKS: Dict[str, Callable[..., DatabaseProbeResult]] = {
    "MySQL": check_mysql,
    "PostgreSQL": check_postgresql,
    "MongoDB": check_mongodb,
    "Redis": check_redis,
}


def check_database(host: str, port: int, timeout: Optional[float] = None) -> Optional[DatabaseProbeResult]:
    family = DATABASE_PORTS.get(port)
    if not family:
        return None
    log.debug("probing %s on %s:%s", family, host, port)
    return DATABASE_CHECKS[family](host, port, timeout=timeout)
