from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from fastapi import Depends, FastAPI, HTTPException
from pydantic import BaseModel

from .cluster import init_users, parse_cluster
from .config import load_operator_config, require
from .errors import ConfigurationError, ManifestError, QuantityError
from .models import OperatorConfig
from .render import render_all

app = FastAPI(title="pgmanifest")

CONFIG_PATH_ENV = "PGMANIFEST_CONFIG"


class ManifestRequest(BaseModel):
    cluster: dict[str, Any]


class ManifestResponse(BaseModel):
    name: str
    namespace: str
    manifests: dict[str, dict[str, Any]]


def get_operator_config() -> OperatorConfig:
    path = os.environ.get(CONFIG_PATH_ENV)
    try:
        config = load_operator_config(Path(path) if path else None)
        require(config, "docker_image")
    except ConfigurationError as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    return config


@app.post("/manifests", response_model=ManifestResponse)
def create_manifests(
    req: ManifestRequest,
    config: OperatorConfig = Depends(get_operator_config),
) -> ManifestResponse:
    try:
        spec = init_users(parse_cluster(req.cluster), config)
        manifests = render_all(spec, config)
    except QuantityError as exc:
        raise HTTPException(status_code=422, detail={"field": exc.field, "message": str(exc)}) from exc
    except ManifestError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc

    return ManifestResponse(name=spec.name, namespace=spec.namespace, manifests=manifests)


def main() -> None:
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
