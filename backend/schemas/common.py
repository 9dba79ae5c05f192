from pydantic import BaseModel


class BaseResponse(BaseModel):
    status: str = "ok"


class HealthResponse(BaseResponse):
    app: str
    database: str = "ok"
