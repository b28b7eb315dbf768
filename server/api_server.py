"""FastAPI application entry point for the semantic search service."""

import os
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import httpx
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from shared.logging.logging_setup import setup_logging
from shared.helper.HelperConfig import HelperConfig
from shared.auth.KeyRegistry import KeyRegistry
from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.clients.embed.EmbedClientManager import EmbedClientManager
from shared.clients.index.IndexClientInterface import IndexClientInterface
from shared.clients.index.IndexClientManager import IndexClientManager
from shared.exceptions.service_errors import ServiceError
from server.core.DocumentService import DocumentService
from server.models.responses import ErrorResponse
from server.routers.DocumentRouter import document_router
from server.routers.SearchRouter import search_router

logging = setup_logging()
app_version = os.getenv("APP_VERSION", "unknown")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # when the app starts
    app.state.logging = logging
    app.state.helper_config = HelperConfig(logger=logging)

    # keys are read once; configuration does not change while the process runs
    app.state.key_registry = KeyRegistry.from_config(app.state.helper_config)
    if app.state.key_registry.is_empty:
        logging.warning("No API keys configured (API_KEY, API_KEY_WRITER, API_KEY_READER). Every request will be rejected.")
    else:
        logging.info(
            "Loaded %d writer key(s) and %d reader key(s).",
            len(app.state.key_registry.writer_keys),
            len(app.state.key_registry.reader_keys),
        )

    embed_client = EmbedClientManager(helper_config=app.state.helper_config).get_client()
    index_client = IndexClientManager(helper_config=app.state.helper_config).get_client()

    logging.info("Booting all clients...")
    for client in [embed_client, index_client]:
        await client.boot()
    logging.info("All clients booted successfully.")

    app.state.embed_client = embed_client
    app.state.index_client = index_client

    try:
        await check_connections(embed_client, index_client)
        await ensure_index(app.state.helper_config, embed_client, index_client)
    except Exception:
        for client in [embed_client, index_client]:
            await client.close()
        raise

    app.state.document_service = DocumentService(
        helper_config=app.state.helper_config,
        index_client=index_client,
        embed_client=embed_client,
    )
    logging.info("Semantic search API ready.", color="green")

    # while the app is running...
    yield

    logging.info("Shutting down — closing all clients...")
    for client in [embed_client, index_client]:
        await client.close()
    logging.info("All clients closed.")


app = FastAPI(
    title="semantic-search",
    description=(
        "Minimal document search service. Writers index text documents with opaque "
        "metadata via /v1/documents; readers fetch documents and run similarity "
        "search via /v1/search."
    ),
    version=app_version,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(document_router)
app.include_router(search_router)


##########################################
############ ERROR HANDLERS ##############
##########################################

def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ErrorResponse(error=message).model_dump())


@app.exception_handler(ServiceError)
async def handle_service_error(request: Request, exc: ServiceError) -> JSONResponse:
    if exc.status_code >= 500:
        logging.error("%s %s failed: %s", request.method, request.url.path, exc)
    else:
        logging.debug("%s %s rejected (%d): %s", request.method, request.url.path, exc.status_code, exc)
    return error_response(exc.status_code, str(exc))


@app.exception_handler(StarletteHTTPException)
async def handle_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    response = error_response(exc.status_code, str(exc.detail))
    if exc.headers:
        response.headers.update(exc.headers)
    return response


@app.exception_handler(RequestValidationError)
async def handle_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    message = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
    return error_response(400, message)


@app.exception_handler(Exception)
async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logging.exception("Unhandled error on %s %s: %s", request.method, request.url.path, exc)
    return error_response(500, "Internal server error")


##########################################
################ ROUTES ##################
##########################################

@app.get("/healthz", tags=["Health"])
async def healthz() -> dict:
    return {"status": "ok"}


##########################################
############### STARTUP ##################
##########################################

async def check_connections(embed_client: EmbedClientInterface, index_client: IndexClientInterface) -> None:
    """Check connectivity to both backends on startup.

    Both are fatal: without the embedding model nothing can be written or
    searched, and without the index nothing can be read.

    Raises:
        Exception: If a backend is not reachable.
    """
    for client in [embed_client, index_client]:
        result: httpx.Response = await client.do_healthcheck()
        if not result.is_success:
            raise Exception(
                f"{client.get_client_type()} client '{client.get_engine_name()}' is not reachable "
                f"(status {result.status_code})."
            )


async def ensure_index(helper_config: HelperConfig, embed_client: EmbedClientInterface, index_client: IndexClientInterface) -> None:
    """Create the vector index when it is missing and INDEX_AUTO_CREATE is enabled."""
    if await index_client.do_existence_check():
        logging.info("Vector index on %r already exists.", index_client.get_engine_name())
        return
    if not helper_config.get_bool_val("INDEX_AUTO_CREATE", default=True):
        raise Exception("Vector index does not exist and INDEX_AUTO_CREATE is disabled.")

    metric = helper_config.get_string_val("INDEX_METRIC", default="cosine")
    await index_client.do_create_index(dimension=embed_client.embed_dimension, metric=metric)
    logging.info(
        "Created vector index on %r (dimension %d, metric %s).",
        index_client.get_engine_name(), embed_client.embed_dimension, metric,
    )


if __name__ == "__main__":
    import uvicorn

    logging.info(
        "Starting semantic-search API Server v%s from root dir: %s on port 8000...",
        app_version,
        os.environ.get("ROOT_DIR", "unknown"),
    )
    uvicorn.run(app, host="0.0.0.0", port=8000)
