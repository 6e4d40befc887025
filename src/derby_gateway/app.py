"""FastAPI application exposing named SQL queries over HTTP and WebSocket."""

import json
import logging
from contextlib import asynccontextmanager
from typing import Dict, List, Optional

from fastapi import FastAPI, Request, WebSocket, WebSocketDisconnect, status
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from common.config.settings import DerbySettings, get_settings
from common.errors import http_status_for_code, sanitize_exception
from common.observability.context import REQUEST_ID_HEADER, bound_request_id
from dal.bootstrap import DatabaseConfig, build_resolver, setup_database
from dal.errors import DalError
from dal.named_query import NamedQueryExecutor, ParameterFormatter, ResultTransformer
from derby_gateway.jsonrpc import JsonRpcDispatcher, MethodHandler, make_sql_method
from derby_gateway.params import InvalidRequestBody, extract_params
from derby_gateway.static import StaticFileHandler

logger = logging.getLogger(__name__)

API_METHODS = ["GET", "POST", "PUT", "DELETE"]


def _split_csv(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


def _error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


def create_app(
    settings: Optional[DerbySettings] = None,
    *,
    rpc_methods: Optional[Dict[str, MethodHandler]] = None,
    parameter_formatter: Optional[ParameterFormatter] = None,
    result_transformer: Optional[ResultTransformer] = None,
) -> FastAPI:
    """Build the gateway application.

    The database is connected and migrated in the lifespan handler, so
    the app serves no traffic until migrations have completed.

    Args:
        settings: Application settings; read from the environment when omitted.
        rpc_methods: Extra JSON-RPC methods, keyed by method name.
        parameter_formatter: Optional hook applied to parameters before execution.
        result_transformer: Optional hook applied to rows after execution.
    """
    settings = settings or get_settings()
    config = DatabaseConfig.from_settings(settings)
    dispatcher = JsonRpcDispatcher(rpc_methods)
    static_files = StaticFileHandler(settings.STATIC_DIR)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Lifespan handler for gateway startup/shutdown."""
        resolver = build_resolver(config)
        adapter = await setup_database(config, resolver)
        app.state.adapter = adapter
        app.state.executor = NamedQueryExecutor(
            resolver,
            adapter,
            parameter_formatter=parameter_formatter,
            result_transformer=result_transformer,
        )
        logger.info("Derby gateway ready (API path %s)", settings.API_PATH)
        try:
            yield
        finally:
            await adapter.close()

    app = FastAPI(title="Derby SQL Gateway", lifespan=lifespan)
    app.state.settings = settings
    app.state.rpc = dispatcher

    if "sql" not in dispatcher.methods:
        dispatcher.register_method("sql", make_sql_method(lambda: app.state.executor))

    if settings.CORS_ENABLED:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=_split_csv(settings.CORS_ORIGIN),
            allow_methods=_split_csv(settings.CORS_METHODS),
            allow_headers=_split_csv(settings.CORS_HEADERS),
        )

    @app.middleware("http")
    async def bind_request_id(request: Request, call_next):
        with bound_request_id(request.headers.get(REQUEST_ID_HEADER)) as request_id:
            response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response

    # -----------------------------------------------------------------------
    # Exception Handlers - Map DAL errors to HTTP status codes
    # -----------------------------------------------------------------------

    @app.exception_handler(DalError)
    async def dal_error_handler(request: Request, exc: DalError) -> JSONResponse:
        """Map DAL errors onto 404/500/503 with a sanitized message."""
        status_code = http_status_for_code(exc.error_code)
        if status_code >= 500:
            logger.error("API query failed (%s): %s", exc.error_code.value, exc.message)
        else:
            logger.info("API query rejected (%s): %s", exc.error_code.value, exc.message)
        return _error_response(status_code, sanitize_exception(exc))

    @app.exception_handler(InvalidRequestBody)
    async def invalid_body_handler(request: Request, exc: InvalidRequestBody) -> JSONResponse:
        """Reject malformed request bodies with 400."""
        return _error_response(status.HTTP_400_BAD_REQUEST, str(exc))

    # -----------------------------------------------------------------------
    # HTTP API
    # -----------------------------------------------------------------------

    @app.api_route(settings.API_PATH, methods=API_METHODS)
    async def missing_query_name() -> JSONResponse:
        """Reject API calls that do not name a query."""
        return _error_response(status.HTTP_400_BAD_REQUEST, "Missing query name")

    @app.api_route(settings.API_PATH + "/{name:path}", methods=API_METHODS)
    async def run_named_query(name: str, request: Request) -> JSONResponse:
        """Execute the named query with query-string and body parameters."""
        name = name.strip("/")
        if not name:
            return _error_response(status.HTTP_400_BAD_REQUEST, "Missing query name")

        params = await extract_params(request)
        logger.info("Processing API query: %s", name)
        rows = await request.app.state.executor.execute_named_query(name, params)
        return JSONResponse(content=jsonable_encoder(rows))

    # -----------------------------------------------------------------------
    # WebSocket JSON-RPC
    # -----------------------------------------------------------------------

    @app.websocket("/ws")
    async def rpc_socket(websocket: WebSocket) -> None:
        """Serve JSON-RPC 2.0 requests, one response per text frame."""
        await websocket.accept()
        await dispatcher.connections.connect(websocket)
        try:
            while True:
                raw = await websocket.receive_text()
                with bound_request_id():
                    response = await dispatcher.handle_message(raw, websocket)
                await websocket.send_text(json.dumps(jsonable_encoder(response)))
        except WebSocketDisconnect:
            pass
        finally:
            await dispatcher.connections.disconnect(websocket)

    # -----------------------------------------------------------------------
    # Static files (registered last so API routes take precedence)
    # -----------------------------------------------------------------------

    @app.get("/{full_path:path}", include_in_schema=False)
    async def serve_static(full_path: str):
        """Serve static assets with SPA fallback to index.html."""
        return static_files.serve(full_path)

    return app
