"""
FastAPI front for the audit pipeline. Input errors map to 400, anything
else to 500; probe-level failures never reach this layer.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Union

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel

from pipeline.orchestrator import Orchestrator

log = logging.getLogger(__name__)

app = FastAPI(title="Host Audit API", version="0.1")
orch = Orchestrator()


class ScanPayload(BaseModel):
    target: str
    ports: Optional[Union[str, List[int]]] = None
    timeout_s: Optional[float] = None


class AuditPayload(ScanPayload):
    local_checks: Optional[bool] = None
    skip_recon: bool = False
    skip_exploits: bool = False


@app.post("/api/scan")
def api_scan(payload: ScanPayload):
    try:
        target = orch.build_target(payload.target, payload.ports, payload.timeout_s)
        return orch.scan(target).model_dump(mode="json")
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except Exception as exc:  # noqa: BLE001
        log.exception("scan failed")
        raise HTTPException(status_code=500, detail="scan failed") from exc


@app.post("/api/audit")
def api_audit(payload: AuditPayload):
    try:
        return orch.run(
            payload.target,
            payload.ports,
            timeout_s=payload.timeout_s,
            include_local=payload.local_checks,
            skip_recon=payload.skip_recon,
            skip_exploits=payload.skip_exploits,
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except Exception as exc:  # noqa: BLE001
        log.exception("audit failed")
        raise HTTPException(status_code=500, detail="audit failed") from exc


@app.get("/api/health")
def api_health():
    s = orch.settings
    return {
        "status": "ok",
        "allowlist": bool(s.allowlist_cidrs or s.allowlist_domains),
        "require_allowlist": s.require_allowlist,
        "local_checks": s.local_checks,
    }
