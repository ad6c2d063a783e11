class AttributeName:
    ERROR_NAME = "error.name"
    ERROR_MESSAGE = "error.message"
    ERROR_STACK = "error.stack"
    STATUS_CODE = "graphql.status.code"


class SpanName:
    REQUEST = "apollo-server"


class ErrorCode:
    INTERNAL_SERVER_ERROR = "INTERNAL_SERVER_ERROR"
    GRAPHQL_VALIDATION_FAILED = "GRAPHQL_VALIDATION_FAILED"
    GRAPHQL_PARSE_FAILED = "GRAPHQL_PARSE_FAILED"
