from typing import Optional

from opentelemetry.trace import Span


class TracingContractError(RuntimeError):
    """Raised when the engine calls the tracing hooks out of order"""


class RequestTraceContext:
    """Per-request state owned by a `ResolverTracingExtension`. It holds the
    root span of the request and whether it has been ended"""
    span: Optional[Span]
    ended: bool

    def __init__(self, span=None):
        self.span = span
        self.ended = False
