from pydantic import BaseModel


class BaseResponse(BaseModel):
    status: bool
    message: str
    data: dict | None = None
