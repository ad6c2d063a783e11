from collections import namedtuple
from collections.abc import Mapping
from typing import Any, List, Sequence, Union

from graphql.pyutils import Path

from opentelemetry.instrumentation.graphql_resolver.names import SpanName

Config = namedtuple("Config", ("root_span_name", "capture_stack"))

DEFAULT_CONFIG = Config(root_span_name=SpanName.REQUEST, capture_stack=True)

Segment = Union[str, int]


class Terminal:
    """A single path segment: a field name or a list index. A `None` segment
    is an absent key and produces nothing when flattened"""
    __slots__ = ("segment",)

    def __init__(self, segment):
        self.segment = segment

    def __repr__(self):
        return f"Terminal({self.segment!r})"


class Nested:
    """An ordered group of path nodes, spliced in place when flattened"""
    __slots__ = ("children",)

    def __init__(self, children):
        self.children = list(children)

    def __repr__(self):
        return f"Nested({self.children!r})"


PathNode = Union[Terminal, Nested]


def to_path_node(descriptor: Any) -> PathNode:
    """
    Converts an engine path descriptor into a `PathNode`. Accepts graphql-core
    `Path` linked lists, mappings whose values are descriptors or segments,
    and already converted nodes. Anything else is a terminal segment.
    """
    if isinstance(descriptor, (Terminal, Nested)):
        return descriptor

    if isinstance(descriptor, Path):
        # typename is metadata about the parent type, not a segment
        return Nested([to_path_node(descriptor.prev), Terminal(descriptor.key)])

    if isinstance(descriptor, Mapping):
        children = []
        for value in descriptor.values():
            if isinstance(value, (Mapping, Path, Terminal, Nested)):
                children.append(to_path_node(value))
            else:
                children.append(Terminal(value))
        return Nested(children)

    return Terminal(descriptor)


def normalize(descriptor: Any) -> List[Segment]:
    """
    Flattens a path descriptor into its ordered list of segments, e.g. the
    path of `books[0].title` becomes `["books", 0, "title"]`
    """
    flattened = []
    stack = [to_path_node(descriptor)]
    while stack:
        node = stack.pop()
        if isinstance(node, Nested):
            stack.extend(reversed(node.children))
        elif node.segment is not None:
            flattened.append(node.segment)

    return flattened


def render(path: Sequence[Segment]) -> str:
    return "[" + ", ".join(str(segment) for segment in path) + "]"
