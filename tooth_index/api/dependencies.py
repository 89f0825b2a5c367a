"""
Request dependencies for the read API.

The engine and the upstream client are created once per application and kept
on ``app.state``.
"""

from fastapi import Request

from tooth_index.core.engine import ToothIndexEngine
from tooth_index.fetcher.base import HttpSourceClient


def get_engine(request: Request) -> ToothIndexEngine:
    return request.app.state.engine


def get_source_client(request: Request) -> HttpSourceClient:
    return request.app.state.source_client
