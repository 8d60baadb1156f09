from typing import Annotated

from pydantic import BaseModel, StringConstraints

# Required request strings: surrounding whitespace is dropped and blank values are rejected
RequiredText = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


class SuccessResponse(BaseModel):
    success: bool = True


class ErrorResponse(BaseModel):
    error: str
    kind: str
