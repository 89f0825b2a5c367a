"""
Search executor for the package index.

This module evaluates a parsed query against the package index and returns one
page of results together with the total page count.
"""

import logging
import math

from tooth_index.core.exceptions import ValidationError
from tooth_index.core.interfaces import SearchPage
from tooth_index.search.query import SORT_FIELDS, SORT_ORDERS, QueryNode, parse_query


logger = logging.getLogger(__name__)


class SearchExecutor:
    """
    Paginated, sorted search over a package index.
    """

    def __init__(self, index):
        """
        Initialize the search executor.

        Args:
            index: PackageIndex to search.
        """
        self.index = index

    def search(
        self,
        predicate: QueryNode,
        per_page: int,
        page: int,
        sort: str = "hotness",
        order: str = "desc"
    ) -> SearchPage:
        """
        Run a search.

        Args:
            predicate: Predicate tree, e.g. from parse_query().
            per_page: Page size, at least 1.
            page: 1-indexed page number.
            sort: ``hotness`` or ``updated``.
            order: ``asc`` or ``desc``.

        Returns:
            SearchPage with the requested page (empty past the last page) and
            ``ceil(matches / per_page)`` as page count.

        Raises:
            ValidationError: If a parameter is out of range.
        """
        if isinstance(per_page, bool) or not isinstance(per_page, int) or per_page < 1:
            raise ValidationError(f"perPage must be a positive integer, got {per_page!r}")
        if isinstance(page, bool) or not isinstance(page, int) or page < 1:
            raise ValidationError(f"page must be a positive integer, got {page!r}")
        if sort not in SORT_FIELDS:
            raise ValidationError(f"sort must be one of {', '.join(SORT_FIELDS)}, got {sort!r}")
        if order not in SORT_ORDERS:
            raise ValidationError(f"order must be one of {', '.join(SORT_ORDERS)}, got {order!r}")

        self.index.create_index()

        total = self.index.count(predicate)
        page_count = math.ceil(total / per_page)
        offset = (page - 1) * per_page

        if offset >= total:
            packages = []
        else:
            packages = self.index.query(predicate, sort, order, offset, per_page)

        logger.debug(f"Search matched {total} packages, returning page {page}/{page_count}")
        return SearchPage(packages=packages, page_count=page_count)

    def search_text(
        self,
        query: str,
        per_page: int,
        page: int,
        sort: str = "hotness",
        order: str = "desc"
    ) -> SearchPage:
        """Parse a query string and run it through search()."""
        return self.search(parse_query(query), per_page, page, sort, order)
