from __future__ import annotations

import json
from typing import List, Optional

from starlette.applications import Starlette
from starlette.exceptions import HTTPException
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

from ..domain.models import reports_from_wire, reports_to_wire
from ..logging import get_logger
from ..orchestrator.store import LocalStore
from ..paths import state_path


LOG = get_logger("remote-server")

DEFAULT_SERVER_SUBDIR = "aerolog_server"


def create_app(
    root_dir: Optional[str] = None,
    *,
    db_path: Optional[str] = None,
    allow_origins: Optional[List[str]] = None,
) -> Starlette:
    """Create a Starlette app that serves one report collection as a JSON array.

    ``GET /api/reports`` returns the stored array; ``PUT`` or ``POST`` replaces
    it wholesale. This is the counterpart of RemoteStoreClient.
    """

    if db_path is None:
        db_path = state_path(root_dir, DEFAULT_SERVER_SUBDIR, "remote.sqlite3")
    store = LocalStore(db_path=db_path)

    async def health(_: Request) -> JSONResponse:
        return JSONResponse({"status": "ok", "db_path": store.db_path})

    async def get_reports(_: Request) -> JSONResponse:
        reports = store.load_collection()
        return JSONResponse(reports_to_wire(reports))

    async def put_reports(request: Request) -> JSONResponse:
        body = await request.body()
        try:
            reports = reports_from_wire(json.loads(body or b"null"))
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        if not store.save_collection(reports):
            raise HTTPException(status_code=500, detail="Failed to persist reports")
        client = request.client.host if request.client else "?"
        LOG.info(f"Stored {len(reports)} report(s) from {client}")
        return JSONResponse({"status": "ok", "count": len(reports)})

    routes = [
        Route("/api/health", health, methods=["GET"]),
        Route("/api/reports", get_reports, methods=["GET"]),
        Route("/api/reports", put_reports, methods=["PUT", "POST"]),
    ]

    app = Starlette(debug=False, routes=routes)

    origins = allow_origins or ["http://localhost:5173", "http://127.0.0.1:5173"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if "*" in origins else origins,
        allow_methods=["GET", "PUT", "POST"],
        allow_headers=["*"],
    )
    LOG.info(f"Remote store app ready (db={store.db_path})")
    return app


__all__ = ["create_app"]
