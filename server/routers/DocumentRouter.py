"""Document router — create, fetch and delete single documents by id.

All routes require a valid key; POST and DELETE additionally require a
writer key. GET accepts reader and writer keys.
"""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from server.dependencies.auth import require_writer
from server.models.requests import CreateDocumentRequest, parse_request_body
from server.models.responses import CreateDocumentResponse, DeleteDocumentResponse
from shared.exceptions.service_errors import DocumentNotFoundError

document_router = APIRouter(
    prefix="/v1/documents",
    tags=["Documents"],
    dependencies=[Depends(require_writer(methods=["POST", "DELETE"]))],
)


@document_router.post("")
async def create_document(request: Request) -> JSONResponse:
    """Create a document, or overwrite the document with the same id.

    Body: {"id": str, "text": str, "metadata": object (optional)}
    """
    body = await parse_request_body(request, CreateDocumentRequest)
    request.app.state.logging.info("Create request for document id=%r", body.id)

    doc_id = await request.app.state.document_service.do_create_or_update(body.id, body.text, body.metadata)
    return JSONResponse(content=CreateDocumentResponse(id=doc_id).model_dump())


@document_router.get("/{doc_id}")
async def get_document(request: Request, doc_id: str) -> JSONResponse:
    document = await request.app.state.document_service.do_get_by_id(doc_id)
    if document is None:
        raise DocumentNotFoundError(doc_id)
    return JSONResponse(content=document.to_response())


@document_router.delete("/{doc_id}")
async def delete_document(request: Request, doc_id: str) -> JSONResponse:
    """Delete a document. Unknown ids succeed as well."""
    request.app.state.logging.info("Delete request for document id=%r", doc_id)
    success = await request.app.state.document_service.do_delete_by_id(doc_id)
    return JSONResponse(content=DeleteDocumentResponse(success=success).model_dump())
