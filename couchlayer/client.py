"""
CouchDB client: one coroutine per REST endpoint, all funnelled through a
single CouchFetcher.
"""
from typing import Any, Dict, List

import structlog

from . import endpoints
from .config import Config
from .endpoints import Endpoint
from .fetcher import DEFAULT_TIMEOUT, CouchFetcher, RequestParams, Transfer
from .payload import Json, as_payload
from .query import quoteall
from .result import Result

logger = structlog.get_logger(__name__)

DEFAULT_BASE_URL = 'http://localhost:5984'
DESIGN_PREFIX = '_design/'


class CouchClient:
    """
    Every coroutine returns a :class:`~couchlayer.result.Result` when the
    server answers with a status below 400 and raises
    :class:`~couchlayer.result.CouchError` otherwise.

    The client owns its request timeout; :meth:`set_timeout` affects every
    request issued after it returns.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        fetcher: CouchFetcher = None,
        timeout: float = DEFAULT_TIMEOUT,
        verify: bool = True
    ):
        self.base_url = base_url.rstrip('/')
        self.fetcher = fetcher or CouchFetcher(timeout=timeout, verify=verify)

    @classmethod
    def from_config(cls, config: Config, **kwargs) -> "CouchClient":
        couchdb = config.couchdb
        client = cls(
            base_url=couchdb.get('url', DEFAULT_BASE_URL),
            timeout=couchdb.get('request_timeout', DEFAULT_TIMEOUT),
            verify=couchdb.get('verify_tls', True),
            **kwargs
        )
        logger.info("client_configured", base_url=client.base_url, timeout_ms=client.get_timeout())
        return client

    def get_timeout(self) -> float:
        return self.fetcher.get_timeout()

    def set_timeout(self, timeout: float):
        self.fetcher.set_timeout(timeout)

    async def aclose(self):
        await self.fetcher.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.aclose()

    def _params(self, endpoint: Endpoint, query=None, payload=None, content_type=None,
                headers=None, **segments) -> RequestParams:
        return RequestParams(
            method=endpoint.method,
            url=endpoint.url(self.base_url, query, **segments),
            statuses=endpoint.statuses,
            payload=payload,
            content_type=content_type,
            headers=headers,
        )

    async def _request(self, endpoint: Endpoint, **kwargs) -> Result:
        return await self.fetcher.request(self._params(endpoint, **kwargs))

    # server

    async def get_info(self) -> Result:
        """Server welcome message and version."""
        return await self._request(endpoints.GET_INFO)

    async def get_uuids(self, count: int = 1) -> Result:
        return await self._request(endpoints.GET_UUIDS, query={'count': count})

    async def list_databases(self) -> Result:
        return await self._request(endpoints.LIST_DATABASES)

    # databases

    async def get_database(self, db: str) -> Result:
        return await self._request(endpoints.GET_DATABASE, db=db)

    async def get_database_head(self, db: str) -> Result:
        """Check a database exists without fetching its info."""
        return await self._request(endpoints.GET_DATABASE_HEAD, db=db)

    async def create_database(self, db: str) -> Result:
        return await self._request(endpoints.CREATE_DATABASE, db=db)

    async def delete_database(self, db: str) -> Result:
        return await self._request(endpoints.DELETE_DATABASE, db=db)

    async def get_all_documents(self, db: str, query: Dict[str, Any] = None) -> Result:
        return await self._request(endpoints.GET_ALL_DOCUMENTS, query=query, db=db)

    # documents

    async def get_document(self, db: str, doc_id: str, query: Dict[str, Any] = None) -> Result:
        """
        Fetch a document. ``query`` carries the usual options, e.g.
        ``{'rev': ..., 'attachments': True, 'revs_info': True}``.
        """
        return await self._request(endpoints.GET_DOCUMENT, query=query, db=db, doc=doc_id)

    async def get_document_head(self, db: str, doc_id: str, query: Dict[str, Any] = None) -> Result:
        return await self._request(endpoints.GET_DOCUMENT_HEAD, query=query, db=db, doc=doc_id)

    async def create_document(self, db: str, doc: Dict[str, Any], doc_id: str = None) -> Result:
        """
        Store a document. Without ``doc_id`` the server assigns one (POST),
        otherwise the named document is created or, when ``doc`` carries the
        current ``_rev``, updated (PUT).
        """
        if doc_id is None:
            return await self._request(endpoints.POST_DOCUMENT, payload=Json(doc), db=db)
        return await self._request(endpoints.CREATE_DOCUMENT, payload=Json(doc), db=db, doc=doc_id)

    async def delete_document(self, db: str, doc_id: str, rev: str) -> Result:
        return await self._request(endpoints.DELETE_DOCUMENT, query={'rev': rev}, db=db, doc=doc_id)

    async def copy_document(self, db: str, doc_id: str, new_id: str) -> Result:
        return await self._request(endpoints.COPY_DOCUMENT, headers={'Destination': quoteall(new_id)},
                                   db=db, doc=doc_id)

    async def create_bulk_documents(self, db: str, docs: List[Dict[str, Any]],
                                    options: Dict[str, Any] = None) -> Result:
        """Create or update many documents in one request (``_bulk_docs``)."""
        body = dict(options or {})
        body['docs'] = docs
        return await self._request(endpoints.CREATE_BULK_DOCUMENTS, payload=Json(body), db=db)

    async def find_documents(self, db: str, query: Dict[str, Any]) -> Result:
        """Run a mango query (``_find``), e.g. ``{'selector': {'name': 'Bob'}}``."""
        return await self._request(endpoints.FIND_DOCUMENTS, payload=Json(query), db=db)

    # design documents and views

    async def get_design_document(self, db: str, ddoc: str, query: Dict[str, Any] = None) -> Result:
        return await self._request(endpoints.GET_DESIGN_DOCUMENT, query=query, db=db, ddoc=ddoc)

    async def get_design_document_info(self, db: str, ddoc: str) -> Result:
        return await self._request(endpoints.GET_DESIGN_DOCUMENT_INFO, db=db, ddoc=ddoc)

    async def create_design_document(self, db: str, doc: Dict[str, Any], ddoc: str) -> Result:
        return await self._request(endpoints.CREATE_DESIGN_DOCUMENT, payload=Json(doc), db=db, ddoc=ddoc)

    async def delete_design_document(self, db: str, ddoc: str, rev: str) -> Result:
        return await self._request(endpoints.DELETE_DESIGN_DOCUMENT, query={'rev': rev}, db=db, ddoc=ddoc)

    async def get_view(self, db: str, ddoc: str, view: str, query: Dict[str, Any] = None) -> Result:
        """Query a view; ``key``, ``keys``, ``startkey`` and ``endkey`` are sent as JSON."""
        return await self._request(endpoints.GET_VIEW, query=query, db=db, ddoc=ddoc, view=view)

    async def execute_update_function(self, db: str, ddoc: str, func: str, body: Any = None,
                                      doc_id: str = None, query: Dict[str, Any] = None) -> Result:
        """
        Call an update handler, on ``doc_id`` if given (PUT) or without a
        document (POST). The handler must answer with JSON.
        """
        payload = Json(body) if body is not None else None
        if doc_id is None:
            return await self._request(endpoints.EXECUTE_UPDATE_FUNCTION, query=query, payload=payload,
                                       db=db, ddoc=ddoc, func=func)
        return await self._request(endpoints.EXECUTE_UPDATE_FUNCTION_FOR_DOCUMENT, query=query,
                                   payload=payload, db=db, ddoc=ddoc, func=func, doc=doc_id)

    # mango indexes

    async def create_index(self, db: str, index: Dict[str, Any]) -> Result:
        """Create a mango index, e.g. ``{'index': {'fields': ['name']}, 'name': 'name-index'}``."""
        return await self._request(endpoints.CREATE_INDEX, payload=Json(index), db=db)

    async def get_index(self, db: str) -> Result:
        return await self._request(endpoints.GET_INDEX, db=db)

    async def delete_index(self, db: str, ddoc: str, name: str) -> Result:
        # get_index() reports ddoc as '_design/<id>', the URL wants the bare id
        if ddoc.startswith(DESIGN_PREFIX):
            ddoc = ddoc[len(DESIGN_PREFIX):]
        return await self._request(endpoints.DELETE_INDEX, db=db, ddoc=ddoc, name=name)

    # attachments

    async def add_attachment(self, db: str, doc_id: str, name: str, rev: str,
                             content_type: str, data: Any) -> Result:
        """
        Upload an attachment. ``data`` may be ``bytes``, ``str``, an async
        iterable of byte chunks or a readable file-like object; streams are
        sent chunked without buffering.
        """
        return await self._request(endpoints.ADD_ATTACHMENT, query={'rev': rev},
                                   payload=as_payload(data), content_type=content_type,
                                   db=db, doc=doc_id, name=name)

    async def open_attachment(self, db: str, doc_id: str, name: str, sink,
                              rev: str = None) -> Transfer:
        """
        First phase of an attachment download: settles once the response
        headers are classified. Await ``drain()`` on the returned transfer
        to write the body into ``sink``.
        """
        query = {'rev': rev} if rev else None
        params = self._params(endpoints.GET_ATTACHMENT, query=query, db=db, doc=doc_id, name=name)
        return await self.fetcher.request_stream(params, sink)

    async def get_attachment(self, db: str, doc_id: str, name: str, sink,
                             rev: str = None) -> Result:
        """Download an attachment into ``sink``; fails if either phase fails."""
        transfer = await self.open_attachment(db, doc_id, name, sink, rev=rev)
        return await transfer.drain()

    async def delete_attachment(self, db: str, doc_id: str, name: str, rev: str) -> Result:
        return await self._request(endpoints.DELETE_ATTACHMENT, query={'rev': rev},
                                   db=db, doc=doc_id, name=name)
