from enum import Enum
from typing import Any, Dict, Optional


class RpcErrorCode(str, Enum):
    """Коды ошибок RPC: (HTTP-статус, код JSON-RPC)."""

    PARSE_ERROR = "PARSE_ERROR"
    BAD_REQUEST = "BAD_REQUEST"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"
    METHOD_NOT_SUPPORTED = "METHOD_NOT_SUPPORTED"
    INTERNAL_SERVER_ERROR = "INTERNAL_SERVER_ERROR"

    @property
    def http_status(self) -> int:
        return _HTTP_STATUS[self]

    @property
    def json_rpc_code(self) -> int:
        return _JSON_RPC_CODE[self]


_HTTP_STATUS = {
    RpcErrorCode.PARSE_ERROR: 400,
    RpcErrorCode.BAD_REQUEST: 400,
    RpcErrorCode.UNAUTHORIZED: 401,
    RpcErrorCode.FORBIDDEN: 403,
    RpcErrorCode.NOT_FOUND: 404,
    RpcErrorCode.METHOD_NOT_SUPPORTED: 405,
    RpcErrorCode.INTERNAL_SERVER_ERROR: 500,
}

_JSON_RPC_CODE = {
    RpcErrorCode.PARSE_ERROR: -32700,
    RpcErrorCode.BAD_REQUEST: -32600,
    RpcErrorCode.UNAUTHORIZED: -32001,
    RpcErrorCode.FORBIDDEN: -32003,
    RpcErrorCode.NOT_FOUND: -32004,
    RpcErrorCode.METHOD_NOT_SUPPORTED: -32005,
    RpcErrorCode.INTERNAL_SERVER_ERROR: -32603,
}


class RpcError(Exception):
    def __init__(self, code: RpcErrorCode, message: Optional[str] = None) -> None:
        self.code = RpcErrorCode(code)
        self.message = message or self.code.value
        super().__init__(self.message)

    def __repr__(self) -> str:
        return f"RpcError({self.code.value}, {self.message!r})"

    def to_envelope(self, path: Optional[str] = None) -> Dict[str, Any]:
        return {
            "error": {
                "message": self.message,
                "code": self.code.json_rpc_code,
                "data": {
                    "code": self.code.value,
                    "httpStatus": self.code.http_status,
                    "path": path,
                },
            }
        }
