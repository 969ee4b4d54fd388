from pydantic import BaseModel


class BackendAttemptRead(BaseModel):
    backend: str
    message: str


class ErrorResponse(BaseModel):
    error: str
    code: str | None = None
    backends: list[BackendAttemptRead] | None = None
