"""FastAPI app: serve leaves, dependents and dependency trees of a conda environment."""

from __future__ import annotations

import logging
import os
from functools import lru_cache
from pathlib import Path

from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware

from conda_leaves import load_catalog
from conda_leaves.core.catalog import Catalog
from conda_leaves.core.errors import (
    CondaLeavesError,
    DependencyResolutionError,
    UnknownPackageError,
)
from conda_leaves.core.graph import DEFAULT_MAX_DEPTH, dependents_of, leaves, resolve_package

logger = logging.getLogger(__name__)

app = FastAPI(
    title="conda-leaves API",
    description="Leaf packages and dependency trees of a conda environment",
    version="0.1.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173", "http://127.0.0.1:5173"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@lru_cache(maxsize=1)
def _served_catalog() -> Catalog:
    """Catalog for the served environment (CONDA_LEAVES_META_DIR, else CONDA_PREFIX)."""
    meta_dir = os.environ.get("CONDA_LEAVES_META_DIR")
    return load_catalog(meta_dir=Path(meta_dir) if meta_dir else None)


def get_catalog() -> Catalog:
    """Request dependency; a missing or unreadable environment is a 503."""
    try:
        return _served_catalog()
    except CondaLeavesError as e:
        logger.warning("Cannot load package catalog: %s", e)
        raise HTTPException(status_code=503, detail=str(e)) from e


@app.get("/api/packages")
def get_packages(catalog: Catalog = Depends(get_catalog)) -> dict:
    """All installed packages (name -> record)."""
    return {"packages": {name: catalog[name].to_dict() for name in catalog.names()}}


@app.get("/api/leaves")
def get_leaves(catalog: Catalog = Depends(get_catalog)) -> dict:
    """Packages nothing else depends on."""
    return {"leaves": leaves(catalog)}


@app.get("/api/dependents/{package_name}")
def get_dependents(package_name: str, catalog: Catalog = Depends(get_catalog)) -> dict:
    """Packages that require package_name."""
    try:
        dependents = dependents_of(catalog, package_name)
    except UnknownPackageError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    return {"package": package_name, "dependents": sorted(dependents)}


@app.get("/api/tree/{package_name}")
def get_tree(
    package_name: str,
    max_depth: int = Query(DEFAULT_MAX_DEPTH, ge=1, le=DEFAULT_MAX_DEPTH),
    catalog: Catalog = Depends(get_catalog),
) -> dict:
    """Resolved dependency tree for a package. Optional max_depth query param."""
    try:
        root = resolve_package(catalog, package_name, max_depth=max_depth)
    except UnknownPackageError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except DependencyResolutionError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e
    return root.to_dict()
