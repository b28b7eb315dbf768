from pydantic import BaseModel


class CreateDocumentResponse(BaseModel):
    id: str


class DeleteDocumentResponse(BaseModel):
    success: bool = True


class ErrorResponse(BaseModel):
    error: str
