"""Run Context.

Binds a batch run id (plus any extra fields) to every log record emitted
while a reconciliation run is in progress, using contextvars so that
concurrent runs in different tasks never see each other's context.
"""

import uuid
from contextvars import ContextVar, Token
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

_run_id_var: ContextVar[str] = ContextVar("run_id", default="")
_extra_context_var: ContextVar[Optional[dict]] = ContextVar("extra_context", default=None)


def generate_run_id() -> str:
    """Short, unique id for a reconciliation run."""
    return uuid.uuid4().hex[:16]


def get_run_id() -> str:
    return _run_id_var.get()


def get_context_dict() -> dict[str, Any]:
    """All bound context as a dictionary for log formatting."""
    ctx: dict[str, Any] = {}
    run_id = _run_id_var.get()
    if run_id:
        ctx["run_id"] = run_id
    extra = _extra_context_var.get()
    if extra:
        ctx.update(extra)
    return ctx


@dataclass
class RunContext:
    """Context manager scoping log context to one reconciliation run.

    Example:
        with RunContext(extra={"trades": 1200}) as ctx:
            logger.info("starting")  # carries run_id and trades
    """

    run_id: str = ""
    extra: dict[str, Any] = field(default_factory=dict)
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    _tokens: list[Token] = field(default_factory=list, repr=False)

    def __post_init__(self) -> None:
        if not self.run_id:
            self.run_id = generate_run_id()

    def __enter__(self) -> "RunContext":
        self._tokens = [
            _run_id_var.set(self.run_id),
            _extra_context_var.set(dict(self.extra)),
        ]
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        run_token, extra_token = self._tokens
        _extra_context_var.reset(extra_token)
        _run_id_var.reset(run_token)
        self._tokens = []

    @property
    def elapsed_ms(self) -> float:
        delta = datetime.now(timezone.utc) - self.started_at
        return delta.total_seconds() * 1000

    def bind(self, **kwargs: Any) -> None:
        """Add fields to the active context."""
        current = _extra_context_var.get() or {}
        _extra_context_var.set({**current, **kwargs})
        self.extra.update(kwargs)
