"""Audit trail of App Proxy gate decisions."""

import json
import threading
from dataclasses import dataclass, asdict
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from starlette.requests import Request


@dataclass
class GateAuditEntry:
    """
    One proxied request as seen by the gate.

    Only the route template and decoded shop are kept. Query strings,
    signatures and customer ids are never recorded.
    """
    ts: str
    request_id: str
    method: str
    route: str
    status: int
    latency_ms: int
    outcome: Optional[str]
    shop: Optional[str]
    client_ip: Optional[str]


def entry_for_request(request: Request, route: str, status: int, latency_ms: int) -> GateAuditEntry:
    """Build an entry from request state set by the gate dependency."""
    return GateAuditEntry(
        ts=datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        request_id=getattr(request.state, "request_id", "unknown"),
        method=request.method,
        route=route,
        status=status,
        latency_ms=latency_ms,
        outcome=getattr(request.state, "reason", None),
        shop=getattr(request.state, "shop", None),
        client_ip=request.client.host if request.client else None,
    )


class AuditLogger:
    """JSONL sink; write() blocks on file I/O so callers run it off the event loop."""

    def __init__(self, log_path: str):
        self.log_path = Path(log_path)
        self.log_path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    def write(self, entry: GateAuditEntry) -> None:
        line = json.dumps(asdict(entry), default=str) + "\n"
        with self._lock:
            with open(self.log_path, "a") as f:
                f.write(line)
