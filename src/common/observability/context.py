from contextvars import ContextVar
from typing import Optional

request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
tool_name_var: ContextVar[Optional[str]] = ContextVar("tool_name", default=None)
