"""
URL assembly: percent-encoded path segments and CouchDB query strings.
"""
import json
from functools import partial
from typing import Any, Dict, Optional
from urllib.parse import quote, urlencode

# CouchDB expects these query parameters as JSON literals
JSON_QUERY_KEYS = frozenset([
    'key', 'keys', 'startkey', 'endkey', 'start_key', 'end_key',
])

quoteall = partial(quote, safe='')


def _encode_value(name: str, value: Any) -> str:
    if name in JSON_QUERY_KEYS:
        return json.dumps(value, separators=(',', ':'))
    if value is True:
        return 'true'
    if value is False:
        return 'false'
    return str(value)


def build_query_string(params: Optional[Dict[str, Any]]) -> str:
    """
    Serialize query parameters, ``?``-prefixed, or ``''`` if there are none.

    >>> build_query_string({'limit': 3, 'descending': True})
    '?descending=true&limit=3'
    >>> build_query_string({'startkey': ['a', 1]})
    '?startkey=%5B%22a%22%2C1%5D'
    >>> build_query_string({})
    ''

    ``None`` values are dropped, except for the JSON keys where they mean
    ``null``. Keys are sorted, so the same mapping always yields the same
    string.
    """
    if not params:
        return ''

    pairs = [
        (name, _encode_value(name, value))
        for name, value in sorted(params.items())
        if value is not None or name in JSON_QUERY_KEYS
    ]

    if not pairs:
        return ''
    return '?' + urlencode(pairs, quote_via=quote)


def join_path(base: str, *segments: str) -> str:
    """
    Join percent-encoded path segments onto a base URL.

    >>> join_path('http://localhost:5984', 'db', 'doc/1')
    'http://localhost:5984/db/doc%2F1'
    >>> join_path('http://localhost:5984/', '_all_dbs')
    'http://localhost:5984/_all_dbs'
    """
    base = base.rstrip('/')
    if not segments:
        return base + '/'
    return '/'.join([base] + [quoteall(str(s)) for s in segments])
