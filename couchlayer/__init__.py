"""Asynchronous CouchDB client: one coroutine per REST endpoint, uniform results."""

__version__ = '0.3.0'

from .result import CouchError, Result  # noqa: E402
from .fetcher import CouchFetcher, RequestParams, Transfer  # noqa: E402
from .client import CouchClient  # noqa: E402

__all__ = [
    'CouchClient',
    'CouchError',
    'CouchFetcher',
    'RequestParams',
    'Result',
    'Transfer',
]
