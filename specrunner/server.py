"""
FastAPI HTTP server for the spec runner.

Exposes:
- GET /api/specs - List registered specs and their parameters
- POST /api/run - Run one or more specs and return their results

The registry served defaults to the sample specs; embedders can serve their
own with set_registry().
"""

import logging
import os
import sys
from typing import Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from .config import get_default_run_config
from .errors import ConfigurationError
from .models import RunConfig
from .reporter import format_results, result_to_dict
from .runner import run_specs
from .samples import build_sample_registry
from .spec import SpecRegistry

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
    stream=sys.stdout,
    force=True
)

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Spec Runner API",
    description="REST API for running property-based specs",
    version="1.0.0",
)

# Configure CORS
origins_env = os.getenv("SPECRUNNER_CORS_ORIGINS")
if origins_env:
    allow_origins = [o.strip() for o in origins_env.split(",") if o.strip()]
else:
    allow_origins = ["*"]

logger.info("CORS allow_origins = %r", allow_origins)

app.add_middleware(
    CORSMiddleware,
    allow_origins=allow_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

_registry: SpecRegistry = build_sample_registry()


def get_registry() -> SpecRegistry:
    return _registry


def set_registry(registry: SpecRegistry) -> None:
    """Serve a different registry (not while a run is in flight)."""
    global _registry
    _registry = registry


# =============================================================================
# REQUEST/RESPONSE MODELS
# =============================================================================

class SpecInfo(BaseModel):
    """A registered spec as listed by GET /api/specs."""
    name: str
    params: dict[str, str] = Field(..., description="Parameter name -> generator description")
    validators: list[str] = Field(default_factory=list)


class RunRequest(BaseModel):
    """Request body for POST /api/run. Unset fields fall back to the default config."""

    spec_names: list[str] = Field(..., min_length=1, description="Specs to run, in order")
    workers: Optional[int] = Field(default=None, description="Worker pool size")
    msec: Optional[int] = Field(default=None, description="Time budget per spec in milliseconds")
    verbose: Optional[bool] = Field(default=None, description="Log every iteration")
    stop_on_first_failure: Optional[bool] = Field(default=None, description="Fail-fast policy")
    seed: Optional[int] = Field(default=None, description="Base seed")

    def to_config(self, default: RunConfig) -> RunConfig:
        overrides = self.model_dump(exclude={"spec_names"}, exclude_none=True)
        return RunConfig(**{**default.model_dump(), **overrides})


class RunResponse(BaseModel):
    """Response body for POST /api/run."""
    results: list[dict] = Field(..., description="One RunResult per requested spec")
    report: str = Field(..., description="Plain-text report of all results")


# =============================================================================
# ENDPOINTS
# =============================================================================

@app.get("/api/specs", response_model=list[SpecInfo])
def list_specs() -> list[SpecInfo]:
    return [
        SpecInfo(
            name=spec.name,
            params={p.name: repr(p.generator) for p in spec.params},
            validators=[v.name for v in spec.validators],
        )
        for spec in get_registry().list_specs()
    ]


@app.post("/api/run", response_model=RunResponse)
def run(req: RunRequest) -> RunResponse:
    registry = get_registry()
    missing = [name for name in req.spec_names if name not in registry]
    if missing:
        raise HTTPException(status_code=404, detail=f"unknown spec(s): {missing}")

    try:
        config = req.to_config(get_default_run_config())
        results = run_specs(req.spec_names, config=config, registry=registry)
    except ConfigurationError as exc:
        logger.warning("rejected run request: %s", exc)
        raise HTTPException(status_code=422, detail=str(exc)) from exc

    return RunResponse(
        results=[result_to_dict(r) for r in results],
        report=format_results(results),
    )
