"""
Search module for tooth-index.

This module parses search queries and executes them against the package index.
"""

from tooth_index.search.query import (
    AndNode, MatchAllNode, OrNode, QueryNode, QueryParser, TagNode, TextNode, parse_query
)
from tooth_index.search.engine import SearchExecutor

__all__ = [
    "AndNode",
    "MatchAllNode",
    "OrNode",
    "QueryNode",
    "QueryParser",
    "TagNode",
    "TextNode",
    "parse_query",
    "SearchExecutor",
]
