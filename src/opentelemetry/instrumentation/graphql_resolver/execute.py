from collections import namedtuple
from inspect import isawaitable
from logging import getLogger
from typing import Any, Dict, Optional

import graphql
from graphql import ExecutionResult, GraphQLError, GraphQLSyntaxError
from graphql.execution import MiddlewareManager

from opentelemetry import trace
from opentelemetry.instrumentation.graphql_resolver.extension import (
    ResolverTracingExtension,
    tracing_extension_factory,
)
from opentelemetry.instrumentation.graphql_resolver.names import ErrorCode

logger = getLogger(__name__)

ProcessedArgs = namedtuple(
    "ProcessedArgs",
    (
        "schema",
        "source",
        "root_value",
        "context_value",
        "variable_values",
        "operation_name",
        "field_resolver",
        "type_resolver",
        "middleware",
        "args",
        "kwargs",
    ),
)

ErrorRecord = namedtuple("ErrorRecord", ("message", "path", "extensions"))

GraphQLResponse = namedtuple("GraphQLResponse", ("data", "errors"))


class TracingMiddleware:
    """graphql-core middleware reporting every field resolution to a
    `ResolverTracingExtension`"""

    def __init__(self, extension: ResolverTracingExtension):
        self.extension = extension

    def resolve(self, next_, root, info, **args):
        on_settled = self.extension.will_resolve_field(
            root, args, info.context, info
        )
        try:
            result = next_(root, info, **args)
        except Exception as error:
            on_settled(error, None)
            raise

        if isawaitable(result):
            return _settle_awaitable(result, on_settled)

        on_settled(None, result)
        return result


async def _settle_awaitable(result, on_settled):
    try:
        value = await result
    except Exception as error:
        on_settled(error, None)
        raise

    on_settled(None, value)
    return value


def classification_code(error: GraphQLError, data: Any) -> str:
    """
    Returns the code the error is reported with: its own
    `extensions["code"]` when set, otherwise a code derived from the stage
    of the request that produced it
    """
    if error.extensions and error.extensions.get("code"):
        return error.extensions["code"]

    if isinstance(error, GraphQLSyntaxError):
        return ErrorCode.GRAPHQL_PARSE_FAILED

    # parse and validation errors are reported before any field executes
    if data is None and error.path is None and error.original_error is None:
        return ErrorCode.GRAPHQL_VALIDATION_FAILED

    return ErrorCode.INTERNAL_SERVER_ERROR


def format_response(result: ExecutionResult) -> GraphQLResponse:
    """
    Builds a read-only view of `result` in which every error carries a
    classification code. `result` itself is left untouched
    """
    if not result.errors:
        return GraphQLResponse(result.data, None)

    errors = []
    for error in result.errors:
        extensions = dict(error.extensions or {})
        extensions["code"] = classification_code(error, result.data)
        errors.append(ErrorRecord(error.message, error.path, extensions))

    return GraphQLResponse(result.data, errors)


def _internal_error_response(error: Exception) -> GraphQLResponse:
    return GraphQLResponse(
        None,
        [
            ErrorRecord(
                str(error),
                None,
                {"code": ErrorCode.INTERNAL_SERVER_ERROR},
            )
        ],
    )


def _wrap_graphql_args(
    schema: graphql.GraphQLSchema,
    source,
    root_value: Any = None,
    context_value: Any = None,
    variable_values: Optional[Dict[str, Any]] = None,
    operation_name: Optional[str] = None,
    field_resolver=None,
    type_resolver=None,
    middleware=None,
    *args,
    **kwargs,
) -> ProcessedArgs:
    """
    Takes the same args as graphql.graphql_sync and graphql.graphql, returning
    a ProcessedArgs namedtuple
    """
    return ProcessedArgs(
        schema,
        source,
        root_value,
        context_value,
        variable_values,
        operation_name,
        field_resolver,
        type_resolver,
        middleware,
        args,
        kwargs,
    )


def add_tracing_middleware(middleware, tracing_middleware: TracingMiddleware):
    """
    Appends `tracing_middleware` to the middleware given by the caller, which
    may be missing, a sequence or a MiddlewareManager. The last middleware
    wraps all the others, so resolver spans include their time
    """
    if middleware is None:
        return [tracing_middleware]

    if isinstance(middleware, MiddlewareManager):
        return MiddlewareManager(*middleware.middlewares, tracing_middleware)

    return [*middleware, tracing_middleware]


def _call_args(processed_args: ProcessedArgs, middleware):
    args = (
        processed_args.schema,
        processed_args.source,
        processed_args.root_value,
        processed_args.context_value,
        processed_args.variable_values,
        processed_args.operation_name,
        processed_args.field_resolver,
        processed_args.type_resolver,
        middleware,
    ) + tuple(processed_args.args)
    return args, processed_args.kwargs


def _start_request(tracer, config, args, kwargs):
    processed_args = _wrap_graphql_args(*args, **kwargs)
    extension = tracing_extension_factory(tracer, config)()
    extension.request_did_start(processed_args.context_value)

    middleware = add_tracing_middleware(
        processed_args.middleware, TracingMiddleware(extension)
    )
    call_args, call_kwargs = _call_args(processed_args, middleware)
    return extension, processed_args.context_value, call_args, call_kwargs


def _end_request(extension, context_value, result, response_hook):
    try:
        if callable(response_hook):
            response_hook(extension.root_span, result)
    finally:
        extension.will_send_response(context_value, format_response(result))


def _wrap_graphql(tracer, config, response_hook=None):
    def wrapper(wrapped, _, args, kwargs):
        extension, context_value, call_args, call_kwargs = _start_request(
            tracer, config, args, kwargs
        )
        with trace.use_span(
            extension.root_span,
            end_on_exit=False,
            record_exception=False,
            set_status_on_exception=False,
        ):
            try:
                result = wrapped(*call_args, **call_kwargs)
            except Exception as error:
                logger.debug("GraphQL request failed: %s", error)
                extension.will_send_response(
                    context_value, _internal_error_response(error)
                )
                raise

            _end_request(extension, context_value, result, response_hook)
            return result

    return wrapper


def _wrap_graphql_async(tracer, config, response_hook=None):
    async def wrapper(wrapped, _, args, kwargs):
        extension, context_value, call_args, call_kwargs = _start_request(
            tracer, config, args, kwargs
        )
        with trace.use_span(
            extension.root_span,
            end_on_exit=False,
            record_exception=False,
            set_status_on_exception=False,
        ):
            try:
                result = await wrapped(*call_args, **call_kwargs)
            except Exception as error:
                logger.debug("GraphQL request failed: %s", error)
                extension.will_send_response(
                    context_value, _internal_error_response(error)
                )
                raise

            _end_request(extension, context_value, result, response_hook)
            return result

    return wrapper
