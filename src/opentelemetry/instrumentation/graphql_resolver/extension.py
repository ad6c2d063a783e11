import traceback
from logging import getLogger
from typing import Any, Callable, Optional

from opentelemetry import trace
from opentelemetry.trace import Span, SpanKind, Tracer, set_span_in_context

from opentelemetry.instrumentation.graphql_resolver.context import (
    RequestTraceContext,
    TracingContractError,
)
from opentelemetry.instrumentation.graphql_resolver.names import AttributeName
from opentelemetry.instrumentation.graphql_resolver.status import (
    CanonicalCode,
    classify_errors,
    set_canonical_status,
)
from opentelemetry.instrumentation.graphql_resolver.utils import (
    DEFAULT_CONFIG,
    Config,
    normalize,
    render,
)

logger = getLogger(__name__)

SettledCallback = Callable[[Optional[BaseException], Any], None]


def tracing_extension_factory(
    tracer: Tracer, config: Optional[Config] = None
) -> Callable[[], "ResolverTracingExtension"]:
    """
    Returns a factory creating one `ResolverTracingExtension` per request.
    The tracer is supplied by the caller, usually from the instrumentor
    """
    if config is None:
        config = DEFAULT_CONFIG

    def resolver_tracing_extension():
        return ResolverTracingExtension(tracer, config)

    return resolver_tracing_extension


class ResolverTracingExtension:
    """
    Hooks called by the engine during the lifecycle of a single request:

    * `request_did_start` starts the root span
    * `will_resolve_field` starts a span for a field and returns a callback
      that ends it once the resolver settles
    * `will_send_response` sets the status of the root span from the
      response errors and ends it
    """

    def __init__(self, tracer: Tracer, config: Config = DEFAULT_CONFIG):
        self.tracer = tracer
        self.config = config
        self._trace_context = RequestTraceContext()

    @property
    def root_span(self) -> Optional[Span]:
        return self._trace_context.span

    def request_did_start(
        self, context: Any = None, parent_span: Optional[Span] = None
    ) -> None:
        if self._trace_context.span is not None:
            raise TracingContractError("request_did_start called twice")

        if parent_span is None:
            current = trace.get_current_span()
            if current.get_span_context().is_valid:
                parent_span = current

        parent_context = None
        if parent_span is not None:
            parent_context = set_span_in_context(parent_span)

        self._trace_context.span = self.tracer.start_span(
            self.config.root_span_name,
            context=parent_context,
            kind=SpanKind.INTERNAL,
        )

    def will_resolve_field(
        self, source: Any, args: Any, context: Any, info: Any
    ) -> SettledCallback:
        root_span = self._trace_context.span
        if root_span is None:
            raise TracingContractError(
                "will_resolve_field called before request_did_start"
            )

        span = self.tracer.start_span(
            render(normalize(info.path)),
            context=set_span_in_context(root_span),
            kind=SpanKind.INTERNAL,
        )
        settled = False

        def on_settled(error, result=None):
            nonlocal settled
            if settled:
                logger.warning("Span %s was already ended", span)
                return
            settled = True

            if error is not None:
                self._record_error(span, error)
            span.end()

        return on_settled

    def will_send_response(self, context: Any, response: Any) -> None:
        span = self._trace_context.span
        if span is None:
            raise TracingContractError(
                "will_send_response called before request_did_start"
            )
        if self._trace_context.ended:
            logger.warning("Span %s was already ended", span)
            return

        code = classify_errors(getattr(response, "errors", None))
        if code is not None:
            set_canonical_status(span, code)

        self._trace_context.ended = True
        span.end()

    def _record_error(self, span: Span, error: BaseException) -> None:
        message = getattr(error, "message", None) or str(error)
        set_canonical_status(span, CanonicalCode.INTERNAL, message)
        span.set_attribute(AttributeName.ERROR_NAME, type(error).__name__)
        span.set_attribute(AttributeName.ERROR_MESSAGE, message)
        if self.config.capture_stack:
            span.set_attribute(AttributeName.ERROR_STACK, format_stack(error))


def format_stack(error: BaseException) -> str:
    return "".join(
        traceback.format_exception(type(error), error, error.__traceback__)
    )
