"""Search router — natural language similarity search over stored documents."""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from server.dependencies.auth import resolve_role
from server.models.requests import SearchRequest, parse_request_body

search_router = APIRouter(prefix="/v1/search", tags=["Search"])


@search_router.post("", dependencies=[Depends(resolve_role)])
async def search_documents(request: Request) -> JSONResponse:
    """Embed the query and return the closest documents.

    Body: {"query": str, "limit": int (optional, default 10)}

    Returns:
        JSONResponse: {"results": [{"id", "text", "metadata", "score"}, ...]} ordered by
            descending score. An empty list is a valid answer.
    """
    body = await parse_request_body(request, SearchRequest)
    request.app.state.logging.info(
        "Search received — role=%s query=%r", request.state.auth_role.value, body.query[:80]
    )

    results = await request.app.state.document_service.do_search(body.query, body.limit)
    return JSONResponse(content={"results": [result.to_response() for result in results]})
