"""
Traces graphql-core requests with one root span per request and one child
span per resolved field, named after the field path (e.g. `[books, 0, title]`).

Usage
-----

.. code:: python

    from graphql import graphql_sync
    from opentelemetry.instrumentation.graphql_resolver import (
        GraphQLResolverInstrumentor,
    )

    GraphQLResolverInstrumentor().instrument()
    graphql_sync(schema, "{ books { title } }")

Field errors set the status of their span to ERROR and add the attributes
`error.name`, `error.message` and `error.stack`. Response errors set the
status of the root span, with the canonical code in `graphql.status.code`.
"""
from logging import getLogger
from typing import Collection

import graphql
from opentelemetry.instrumentation.instrumentor import BaseInstrumentor
from opentelemetry.instrumentation.utils import unwrap
from opentelemetry.trace import get_tracer
from wrapt import wrap_object, FunctionWrapper

from opentelemetry.instrumentation.graphql_resolver.execute import (
    _wrap_graphql,
    _wrap_graphql_async,
)
from opentelemetry.instrumentation.graphql_resolver.extension import (
    ResolverTracingExtension,
    tracing_extension_factory,
)
from opentelemetry.instrumentation.graphql_resolver.names import SpanName
from opentelemetry.instrumentation.graphql_resolver.package import _instruments
from opentelemetry.instrumentation.graphql_resolver.utils import Config
from opentelemetry.instrumentation.graphql_resolver.version import __version__

__all__ = [
    "GraphQLResolverInstrumentor",
    "ResolverTracingExtension",
    "tracing_extension_factory",
]

logger = getLogger(__name__)


class GraphQLResolverInstrumentor(BaseInstrumentor):
    """An instrumentor for the graphql-core request pipeline
    See `BaseInstrumentor`
    """

    _enabled = True

    @classmethod
    def enabled(cls):
        return cls._enabled

    def instrumentation_dependencies(self) -> Collection[str]:
        return _instruments

    def _instrument(
        self,
        root_span_name: str = SpanName.REQUEST,
        capture_stack: bool = True,
        **kwargs
    ):
        """
        Instruments graphql.graphql_sync and graphql.graphql
        """
        config = Config(root_span_name, capture_stack)
        tracer_provider = kwargs.get("tracer_provider")
        tracer = get_tracer(__name__, __version__, tracer_provider)
        response_hook = kwargs.get("response_hook")

        GraphQLResolverInstrumentor._enabled = True
        wrap_object(
            graphql,
            "graphql_sync",
            FunctionWrapper,
            args=(_wrap_graphql(tracer, config, response_hook=response_hook),),
            kwargs={"enabled": self.enabled}
        )
        wrap_object(
            graphql,
            "graphql",
            FunctionWrapper,
            args=(
                _wrap_graphql_async(tracer, config, response_hook=response_hook),
            ),
            kwargs={"enabled": self.enabled}
        )
        logger.debug("Instrumented graphql-core with %s", config)

    def _uninstrument(self, **kwargs):
        GraphQLResolverInstrumentor._enabled = False
        unwrap(graphql, "graphql_sync")
        unwrap(graphql, "graphql")
