from typing import Dict, List, Optional

from fastapi import FastAPI, HTTPException, Query
from pydantic import BaseModel

from xfs_mcp import mcp_app

app = FastAPI(title="xfs-stat-mcp-shim")

# ----------------- API Models -----------------

class HealthResponse(BaseModel):
    status: str
    time: int
    stat_path: str
    stat_present: bool

class StatResponse(BaseModel):
    path: str
    ts_ms: int
    extent_allocation: Dict[str, int]
    allocation_btree: Dict[str, int]
    block_mapping: Dict[str, int]
    block_map_btree: Dict[str, int]
    directory_operations: Dict[str, int]
    transactions: Dict[str, int]
    inode_operations: Dict[str, int]
    log_operations: Dict[str, int]
    tail_pushing_stats: Dict[str, int]

class Sample(BaseModel):
    name: str
    value: float
    ts_ms: int
    labels: Dict[str, str]

class MetricsResponse(BaseModel):
    path: str
    ts_ms: int
    count: int
    samples: List[Sample]

class MetricSchemaResponse(BaseModel):
    name: str
    record_type: str
    field: str
    description: str
    type: str
    bits: int


def _raise_for_error(body: dict):
    err = body.get('error')
    if not err:
        return
    if err in ('FileNotFoundError', 'unknown_metric'):
        raise HTTPException(status_code=404, detail=body)
    raise HTTPException(status_code=400, detail=body)


@app.get("/")
def root():
    return {"status": "ok", "service": "xfs-stat-mcp-shim"}

@app.get("/healthz", response_model=HealthResponse)
def healthz():
    return mcp_app._healthz_impl()

@app.get("/xfs/stat", response_model=StatResponse)
def xfs_stat(path: Optional[str] = None):
    body = mcp_app._xfs_stat_impl(path)
    _raise_for_error(body)
    return body

@app.get("/xfs/metrics", response_model=MetricsResponse)
def xfs_metrics(path: Optional[str] = None, record_type: Optional[List[str]] = Query(default=None)):
    body = mcp_app._xfs_metrics_impl(path, record_type)
    _raise_for_error(body)
    return body

@app.get("/xfs/schema/{metric_name}", response_model=MetricSchemaResponse)
def metric_schema(metric_name: str):
    body = mcp_app._metric_schema_impl(metric_name)
    _raise_for_error(body)
    return body
