from typing import Any, TypeVar

from fastapi import Request
from pydantic import BaseModel, StrictInt, ValidationError

from shared.exceptions.service_errors import DocumentValidationError

BodyModel = TypeVar("BodyModel", bound=BaseModel)


class CreateDocumentRequest(BaseModel):
    id: str
    text: str
    metadata: dict[str, Any] | None = None


class SearchRequest(BaseModel):
    query: str
    limit: StrictInt | None = None


async def parse_request_body(request: Request, model: type[BodyModel]) -> BodyModel:
    """Parse the JSON body into ``model``.

    Bodies are parsed inside the handler, after the access gate has run, so an
    unauthenticated caller never learns anything from body validation.

    Raises:
        DocumentValidationError: If the body is not a JSON object or does not fit the model.
    """
    try:
        raw = await request.json()
    except ValueError:
        raise DocumentValidationError("Request body must be valid JSON")
    if not isinstance(raw, dict):
        raise DocumentValidationError("Request body must be a JSON object")

    try:
        return model.model_validate(raw)
    except ValidationError as exc:
        first = exc.errors()[0]
        field = ".".join(str(part) for part in first["loc"]) or "body"
        raise DocumentValidationError(f"{field}: {first['msg']}") from exc
