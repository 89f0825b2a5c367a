"""
Read API for tooth-index.

This module provides the FastAPI application serving searches over the
package index and live tooth metadata.
"""

from tooth_index.api.app import create_app

__all__ = ["create_app"]
