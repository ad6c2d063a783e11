from graphql import build_schema
from opentelemetry.test.test_base import TestBase

BOOKS = [
    {
        "title": "Harry Potter and the Chamber of Secrets",
        "author": "J.K. Rowling",
    },
    {
        "title": "Jurassic Park",
        "author": "Michael Crichton",
    },
]

TYPE_DEFS = """
    type Book {
        title: String
        author: String
        testError: String
    }
    type Query {
        books: [Book]
    }
"""


class BookError(Exception):
    pass


class GraphQLInstrumentationTestBase(TestBase):
    @staticmethod
    def build_schema(source=TYPE_DEFS):
        return build_schema(source)

    def books_schema(self, books_resolver=None, error_resolver=None):
        def resolve_books(root, info, **args):
            return BOOKS

        def resolve_test_error(root, info, **args):
            raise BookError("My Test Error")

        schema = self.build_schema()
        schema.type_map["Query"].fields["books"].resolve = (
            books_resolver or resolve_books
        )
        schema.type_map["Book"].fields["testError"].resolve = (
            error_resolver or resolve_test_error
        )
        return schema

    def span_names(self):
        return [span.name for span in self.get_finished_spans()]
