"""
Search and package lookup routes backed by the package index.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query

from tooth_index.api.dependencies import get_engine
from tooth_index.api.responses import error_response, success_response
from tooth_index.core.engine import ToothIndexEngine
from tooth_index.core.exceptions import ValidationError


logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/search")
def search_packages(
    q: str = "",
    per_page: Optional[int] = Query(None, alias="perPage"),
    page: int = 1,
    sort: str = "hotness",
    order: str = "desc",
    engine: ToothIndexEngine = Depends(get_engine)
):
    """
    Search the package index.

    Returns one page of packages together with the total page count.
    """
    try:
        result = engine.search(q, per_page=per_page, page=page, sort=sort, order=order)
    except ValidationError as e:
        return error_response(400, str(e))
    except Exception:
        logger.exception(f"Search failed for query {q!r}")
        return error_response(500, "Internal server error.")

    return success_response({
        "pageCount": result.page_count,
        "items": [package.to_dict() for package in result.packages],
    })


@router.get("/packages/{identifier:path}")
def get_package(identifier: str, engine: ToothIndexEngine = Depends(get_engine)):
    try:
        package = engine.get_package(identifier)
    except Exception:
        logger.exception(f"Lookup failed for package {identifier}")
        return error_response(500, "Internal server error.")

    if package is None:
        return error_response(404, "Package not found.")
    return success_response(package.to_dict())
