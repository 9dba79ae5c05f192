from .errors import RpcError, RpcErrorCode
from .procedure import (
    MUTATION,
    QUERY,
    Procedure,
    ProcedureBuilder,
    enforce_user,
    protected_procedure,
    public_procedure,
)
from .proxy import OptionsProxy, caller_options_proxy, get_query_key
from .router import Caller, Router

__all__ = [
    "MUTATION",
    "QUERY",
    "Caller",
    "OptionsProxy",
    "Procedure",
    "ProcedureBuilder",
    "Router",
    "RpcError",
    "RpcErrorCode",
    "caller_options_proxy",
    "enforce_user",
    "get_query_key",
    "protected_procedure",
    "public_procedure",
]
