import uuid
from contextvars import ContextVar

trace_id_ctx: ContextVar[str | None] = ContextVar("trace_id_ctx", default=None)


def set_trace_id(trace_id: str | None) -> str:
    value = (trace_id or "").strip()[:64] or uuid.uuid4().hex
    trace_id_ctx.set(value)
    return value


def get_trace_id() -> str | None:
    return trace_id_ctx.get()
