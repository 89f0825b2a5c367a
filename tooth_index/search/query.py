"""
Search query parsing for tooth-index.

A query string is turned into a tree of predicate nodes over package fields.
Index backends either evaluate the tree directly (``matches``) or compile it
into their own query language.
"""

import re
from dataclasses import dataclass
from typing import List, Tuple

from tooth_index.core.interfaces import Package


TAG_TERM_RE = re.compile(r'^[a-z0-9-]+:[a-z0-9-]+$')

SORT_FIELDS = ("hotness", "updated")
SORT_ORDERS = ("asc", "desc")


class QueryNode:
    """Base class for query predicate nodes."""

    def matches(self, package: Package) -> bool:
        raise NotImplementedError


@dataclass(frozen=True)
class MatchAllNode(QueryNode):
    def matches(self, package: Package) -> bool:
        return True


@dataclass(frozen=True)
class TagNode(QueryNode):
    """Exact membership of a ``key:value`` term in the tag set."""
    term: str

    def matches(self, package: Package) -> bool:
        return self.term in package.tags


@dataclass(frozen=True)
class TextNode(QueryNode):
    """Case-insensitive substring of name, description, author or any tag."""
    term: str

    def __post_init__(self):
        object.__setattr__(self, "term", self.term.lower())

    def matches(self, package: Package) -> bool:
        fields = [package.name, package.description, package.author, *package.tags]
        return any(self.term in value.lower() for value in fields)


@dataclass(frozen=True)
class AndNode(QueryNode):
    children: Tuple[QueryNode, ...]

    def matches(self, package: Package) -> bool:
        return all(child.matches(package) for child in self.children)


@dataclass(frozen=True)
class OrNode(QueryNode):
    children: Tuple[QueryNode, ...]

    def matches(self, package: Package) -> bool:
        return any(child.matches(package) for child in self.children)


def term_node(token: str) -> QueryNode:
    """Classify a single token as a tag-qualified or a free-text term."""
    if TAG_TERM_RE.match(token):
        return TagNode(token)
    return TextNode(token)


class QueryParser:
    """
    Parse search queries.

    Tokens prefixed with ``+`` are required and must all match. The remaining
    tokens are optional and widen the result: a package matches if any of
    them does.
    """

    def __init__(self, query: str):
        self.query = query or ""

    def tokenize(self) -> List[str]:
        return self.query.replace('*', ' ').split()

    def parse(self) -> QueryNode:
        """
        Parse the query into a predicate tree.

        Returns:
            MatchAllNode for queries of at most one character, otherwise the
            conjunction of the required terms and the disjunction of the
            optional ones.
        """
        if len(self.query.strip()) <= 1:
            return MatchAllNode()

        required: List[QueryNode] = []
        optional: List[QueryNode] = []
        for token in self.tokenize():
            if token.startswith('+'):
                token = token[1:]
                if token:
                    required.append(term_node(token))
            else:
                optional.append(term_node(token))

        clauses = list(required)
        # An empty OR group would match nothing.
        if len(optional) == 1:
            clauses.append(optional[0])
        elif optional:
            clauses.append(OrNode(tuple(optional)))

        if not clauses:
            return MatchAllNode()
        if len(clauses) == 1:
            return clauses[0]
        return AndNode(tuple(clauses))


def parse_query(query: str) -> QueryNode:
    return QueryParser(query).parse()
