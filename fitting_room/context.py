from contextvars import ContextVar

request_id_ctx: ContextVar[str | None] = ContextVar("request_id", default=None)
attempt_id_ctx: ContextVar[str | None] = ContextVar("attempt_id", default=None)
