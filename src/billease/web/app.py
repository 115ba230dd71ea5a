from __future__ import annotations

import time
import uuid
from collections import OrderedDict
from http import HTTPStatus
from typing import Any, Dict, List, Optional

from starlette.applications import Starlette
from starlette.exceptions import HTTPException
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import HTMLResponse, JSONResponse, Response
from starlette.routing import Route

from ..billing.commands import (
    BillSession,
    OperationResult,
    RemoveLine,
    parse_add_product,
    parse_generate_bill,
    parse_line_update,
)
from ..billing.engine import BillAssembly
from ..billing.errors import BillingError, CommandValidationError, ExportError
from ..billing.selector import Selector, product_options
from ..catalog import CatalogDatabase, CatalogService
from ..config import Settings, load_settings
from ..export import build_share_payload, default_pdf_name, render_html, render_pdf
from ..logging import get_logger


LOG = get_logger("web")

# Operator errors that point at a missing resource rather than bad input.
_NOT_FOUND_ERRORS = {"UnknownLine", "UnknownProduct"}


async def _json_body(request: Request) -> Any:
    try:
        return await request.json()
    except ValueError as exc:
        raise CommandValidationError("Request body must be valid JSON") from exc


async def _http_error(_: Request, exc: HTTPException) -> JSONResponse:
    kind = HTTPStatus(exc.status_code).phrase.replace(" ", "")
    return JSONResponse({"error": kind, "detail": exc.detail}, status_code=exc.status_code, headers=exc.headers)


async def _billing_error(_: Request, exc: BillingError) -> JSONResponse:
    # Raised only while reading a request; engine errors come back as results.
    return JSONResponse({"error": exc.kind, "detail": exc.message}, status_code=400)


class SessionRegistry:
    """Open bill sessions, dropping idle ones and the least recently used
    once ``max_sessions`` is reached."""

    def __init__(self, *, max_sessions: int = 100, idle_seconds: float = 4 * 3600, clock=time.monotonic) -> None:
        self.max_sessions = max_sessions
        self.idle_seconds = idle_seconds
        self._clock = clock
        self._items: "OrderedDict[str, tuple]" = OrderedDict()

    def __len__(self) -> int:
        return len(self._items)

    def _evict(self) -> None:
        cutoff = self._clock() - self.idle_seconds
        for sid in [sid for sid, (_, seen) in self._items.items() if seen < cutoff]:
            del self._items[sid]
            LOG.info("Expired idle bill session %s", sid)
        while len(self._items) >= self.max_sessions:
            sid, _ = self._items.popitem(last=False)
            LOG.info("Dropped least recently used bill session %s", sid)

    def add(self, session: BillSession) -> None:
        self._evict()
        self._items[session.session_id] = (session, self._clock())

    def get(self, sid: str) -> Optional[BillSession]:
        entry = self._items.get(sid)
        if entry is None:
            return None
        if entry[1] < self._clock() - self.idle_seconds:
            del self._items[sid]
            return None
        self._items[sid] = (entry[0], self._clock())
        self._items.move_to_end(sid)
        return entry[0]

    def pop(self, sid: str) -> None:
        self._items.pop(sid, None)


def _result_response(result: OperationResult, *, status_code: int = 200, extra: Optional[Dict[str, Any]] = None) -> JSONResponse:
    if result.ok:
        payload = result.to_dict()
        if extra:
            payload.update(extra)
        return JSONResponse(payload, status_code=status_code)
    code = 404 if result.error in _NOT_FOUND_ERRORS else 422
    return JSONResponse({"error": result.error, "detail": result.message}, status_code=code)


def create_app(
    root_dir: Optional[str] = None,
    *,
    db_path: Optional[str] = None,
    settings: Optional[Settings] = None,
    allow_origins: Optional[List[str]] = None,
    sessions: Optional[SessionRegistry] = None,
) -> Starlette:
    """Create a Starlette app exposing the catalog and bill-session API."""

    settings = settings or load_settings(root_dir)
    catalog = CatalogService(CatalogDatabase(db_path or settings.db_path))
    sessions = sessions if sessions is not None else SessionRegistry()

    def _session(request: Request) -> BillSession:
        sid = request.path_params["session_id"]
        session = sessions.get(sid)
        if session is None:
            raise HTTPException(status_code=404, detail="Bill session not found")
        return session

    async def _snapshot(request: Request):
        session = _session(request)
        command = parse_generate_bill(await _json_body(request))
        return session.apply(command)

    async def health(_: Request) -> JSONResponse:
        return JSONResponse({"status": "ok", "db_path": catalog.db.db_path, "sessions": len(sessions)})

    # ---------- catalog ----------
    async def list_products(request: Request) -> JSONResponse:
        qp = request.query_params
        items = catalog.list_products(search=qp.get("search") or None, category=qp.get("category") or None)
        return JSONResponse({"items": [p.to_dict() for p in items], "total": len(items)})

    async def create_product(request: Request) -> JSONResponse:
        result = catalog.create_product(await _json_body(request))
        return JSONResponse(result.to_dict(), status_code=201 if result.success else 422)

    async def update_product(request: Request) -> JSONResponse:
        body = await _json_body(request)
        if not isinstance(body, dict):
            raise CommandValidationError("Payload must be a JSON object")
        body = {**body, "id": request.path_params["product_id"]}
        result = catalog.update_product(body)
        if not result.success and result.error == "Product not found.":
            return JSONResponse(result.to_dict(), status_code=404)
        return JSONResponse(result.to_dict(), status_code=200 if result.success else 422)

    async def delete_product(request: Request) -> JSONResponse:
        result = catalog.delete_product(request.path_params["product_id"])
        return JSONResponse(result.to_dict(), status_code=200 if result.success else 404)

    async def categories(_: Request) -> JSONResponse:
        return JSONResponse({"items": catalog.list_categories()})

    async def product_picker(request: Request) -> JSONResponse:
        selector = Selector(product_options(catalog.list_products(), settings.currency_symbol), sort_groups=True)
        selector.type(request.query_params.get("q") or "")
        groups = [
            {"group": group, "options": [{"value": o.value, "label": o.label} for o in opts]}
            for group, opts in selector.visible_groups()
        ]
        return JSONResponse({"groups": groups})

    # ---------- bills ----------
    async def create_bill(_: Request) -> JSONResponse:
        sid = uuid.uuid4().hex
        session = BillSession(BillAssembly.from_provider(catalog), session_id=sid)
        sessions.add(session)
        LOG.info("Opened bill session %s", sid)
        return JSONResponse(session.state(), status_code=201)

    async def bill_detail(request: Request) -> JSONResponse:
        return JSONResponse(_session(request).state())

    async def close_bill(request: Request) -> JSONResponse:
        session = _session(request)
        sessions.pop(session.session_id)
        LOG.info("Closed bill session %s", session.session_id)
        return JSONResponse({"ok": True})

    async def add_line(request: Request) -> JSONResponse:
        session = _session(request)
        command = parse_add_product(await _json_body(request))
        return _result_response(session.apply(command), extra={"total_amount": str(session.engine.compute_total())})

    async def update_line(request: Request) -> JSONResponse:
        session = _session(request)
        commands = parse_line_update(request.path_params["product_id"], await _json_body(request))
        result = session.apply_all(commands)
        return _result_response(result, extra={"total_amount": str(session.engine.compute_total())})

    async def remove_line(request: Request) -> JSONResponse:
        session = _session(request)
        result = session.apply(RemoveLine(product_id=request.path_params["product_id"]))
        return _result_response(result, extra={"total_amount": str(session.engine.compute_total())})

    async def snapshot(request: Request) -> JSONResponse:
        return _result_response(await _snapshot(request))

    async def export(request: Request) -> Response:
        fmt = request.path_params["fmt"]
        if fmt not in {"html", "pdf", "share"}:
            raise HTTPException(status_code=404, detail=f"Unknown export format: {fmt}")
        result = await _snapshot(request)
        if not result.ok:
            return _result_response(result)
        snap = result.snapshot
        opts = {"currency_symbol": settings.currency_symbol, "store_name": settings.store_name}
        try:
            if fmt == "html":
                return HTMLResponse(render_html(snap, **opts))
            if fmt == "pdf":
                filename = default_pdf_name(snap)
                return Response(
                    render_pdf(snap, **opts),
                    media_type="application/pdf",
                    headers={"Content-Disposition": f'attachment; filename="{filename}"'},
                )
            phone = request.query_params.get("phone") or settings.whatsapp_number
            return JSONResponse(build_share_payload(snap, phone=phone, **opts).to_dict())
        except ExportError as exc:
            # The live bill is untouched; the operator can retry.
            return JSONResponse({"error": exc.kind, "detail": exc.message}, status_code=500)

    routes = [
        Route("/api/health", health, methods=["GET"]),
        Route("/api/products", list_products, methods=["GET"]),
        Route("/api/products", create_product, methods=["POST"]),
        Route("/api/products/{product_id:str}", update_product, methods=["PUT"]),
        Route("/api/products/{product_id:str}", delete_product, methods=["DELETE"]),
        Route("/api/categories", categories, methods=["GET"]),
        Route("/api/picker/products", product_picker, methods=["GET"]),
        Route("/api/bills", create_bill, methods=["POST"]),
        Route("/api/bills/{session_id:str}", bill_detail, methods=["GET"]),
        Route("/api/bills/{session_id:str}", close_bill, methods=["DELETE"]),
        Route("/api/bills/{session_id:str}/lines", add_line, methods=["POST"]),
        Route("/api/bills/{session_id:str}/lines/{product_id:str}", update_line, methods=["PATCH"]),
        Route("/api/bills/{session_id:str}/lines/{product_id:str}", remove_line, methods=["DELETE"]),
        Route("/api/bills/{session_id:str}/snapshot", snapshot, methods=["POST"]),
        Route("/api/bills/{session_id:str}/export/{fmt:str}", export, methods=["POST"]),
    ]

    app = Starlette(
        debug=False,
        routes=routes,
        exception_handlers={HTTPException: _http_error, BillingError: _billing_error},
    )

    origins = allow_origins or ["http://localhost:3000", "http://127.0.0.1:3000"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if "*" in origins else origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    return app


__all__ = ["SessionRegistry", "create_app"]
