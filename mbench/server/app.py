"""mbench FastAPI server — REST API over the benchmark pipeline."""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from mbench import __version__
from mbench.api.dispatch import dispatch as api_dispatch

app = FastAPI(title="mbench", version=__version__)


# ---------------------------------------------------------------------------
# Request/Response models
# ---------------------------------------------------------------------------

class BenchmarkRequest(BaseModel):
    op: str = "exp"
    values: list[float] = Field(default_factory=list)
    round_mode: str = "tonearest"
    repeat: int = 1
    min_ops: int = 0
    error_precision: int = 53
    threads: int | None = None
    math_errhandling: list[str] = Field(default_factory=lambda: ["errno", "except"])
    exception_labels: str = "first"
    include_values: bool = True

class ClassifyRequest(BaseModel):
    flags: list[str] = Field(default_factory=list)
    mpfr: bool = False
    full: bool = False
    enabled: bool = True


# ---------------------------------------------------------------------------
# API endpoints
# ---------------------------------------------------------------------------

@app.get("/api/ops")
async def api_ops():
    return api_dispatch({"action": "list_ops"})


@app.post("/api/benchmark")
def api_benchmark(req: BenchmarkRequest):
    result = api_dispatch({"action": "benchmark", **req.model_dump()})
    if "error" in result:
        status = 500 if result.pop("internal", False) else 400
        return JSONResponse(status_code=status, content=result)
    return result


@app.post("/api/classify")
async def api_classify(req: ClassifyRequest):
    result = api_dispatch({"action": "classify", **req.model_dump()})
    if "error" in result:
        status = 500 if result.pop("internal", False) else 400
        return JSONResponse(status_code=status, content=result)
    return result
