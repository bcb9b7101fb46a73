"""
One declarative definition per CouchDB operation: HTTP method, path template
and status table.

Path templates are tuples of segments; ``{name}`` placeholders are filled by
:meth:`Endpoint.url` and every filled segment is percent-encoded on its own.

http://docs.couchdb.org/en/stable/api/index.html
"""
from collections import namedtuple
from typing import Any, Dict, Optional

from .query import build_query_string, join_path


class Endpoint(namedtuple("Endpoint", "method path statuses")):
    __slots__ = ()

    def url(self, base_url: str, query: Optional[Dict[str, Any]] = None, **segments) -> str:
        path = [s.format(**segments) for s in self.path]
        return join_path(base_url, *path) + build_query_string(query)


OK = 'OK - Request completed successfully'
UNAUTHORIZED_READ = 'Unauthorized - Read privilege required'
UNAUTHORIZED_WRITE = 'Unauthorized - Write privileges required'
UNAUTHORIZED_ADMIN = 'Unauthorized - CouchDB Server Administrator privileges required'

# server

GET_INFO = Endpoint('GET', (), {
    200: OK,
})

GET_UUIDS = Endpoint('GET', ('_uuids',), {
    200: OK,
    400: 'Bad Request - Requested more UUIDs than is allowed to retrieve',
})

LIST_DATABASES = Endpoint('GET', ('_all_dbs',), {
    200: OK,
})

# databases

GET_DATABASE = Endpoint('GET', ('{db}',), {
    200: OK,
    404: 'Not Found - Requested database not found',
})

GET_DATABASE_HEAD = Endpoint('HEAD', ('{db}',), {
    200: 'OK - Database exists',
    404: 'Not Found - Requested database not found',
})

CREATE_DATABASE = Endpoint('PUT', ('{db}',), {
    201: 'Created - Database created successfully',
    202: 'Accepted - Database created, but not all nodes confirmed the write',
    400: 'Bad Request - Invalid database name',
    401: UNAUTHORIZED_ADMIN,
    412: 'Precondition Failed - Database already exists',
})

DELETE_DATABASE = Endpoint('DELETE', ('{db}',), {
    200: 'OK - Database removed successfully',
    202: 'Accepted - Database removed, but not all nodes confirmed the write',
    400: 'Bad Request - Invalid database name or forgotten document id by accident',
    401: UNAUTHORIZED_ADMIN,
    404: 'Not Found - Database doesn\'t exist',
})

GET_ALL_DOCUMENTS = Endpoint('GET', ('{db}', '_all_docs'), {
    200: OK,
    404: 'Not Found - Requested database not found',
})

# documents

GET_DOCUMENT = Endpoint('GET', ('{db}', '{doc}'), {
    200: OK,
    304: 'Not Modified - Document wasn\'t modified since specified revision',
    400: 'Bad Request - The format of the request or revision was invalid',
    401: UNAUTHORIZED_READ,
    404: 'Not Found - Document not found',
})

GET_DOCUMENT_HEAD = Endpoint('HEAD', ('{db}', '{doc}'), {
    200: 'OK - Document exists',
    304: 'Not Modified - Document wasn\'t modified since specified revision',
    401: UNAUTHORIZED_READ,
    404: 'Not Found - Document not found',
})

_DOCUMENT_WRITE = {
    201: 'Created - Document created and stored on disk',
    202: 'Accepted - Document data accepted, but not yet stored on disk',
    400: 'Bad Request - Invalid request body or parameters',
    401: UNAUTHORIZED_WRITE,
    404: 'Not Found - Specified database or document ID doesn\'t exist',
    409: 'Conflict - Document with the specified ID already exists or specified revision is not latest for target document',
}

CREATE_DOCUMENT = Endpoint('PUT', ('{db}', '{doc}'), _DOCUMENT_WRITE)

POST_DOCUMENT = Endpoint('POST', ('{db}',), _DOCUMENT_WRITE)

DELETE_DOCUMENT = Endpoint('DELETE', ('{db}', '{doc}'), {
    200: 'OK - Document successfully removed',
    202: 'Accepted - Request was accepted, but changes are not yet stored on disk',
    400: 'Bad Request - Invalid request body or parameters',
    401: UNAUTHORIZED_WRITE,
    404: 'Not Found - Specified database or document ID doesn\'t exist',
    409: 'Conflict - Specified revision is not the latest for target document',
})

COPY_DOCUMENT = Endpoint('COPY', ('{db}', '{doc}'), {
    201: 'Created - Document successfully created',
    202: 'Accepted - Request was accepted, but changes are not yet stored on disk',
    400: 'Bad Request - Invalid request body or parameters',
    401: UNAUTHORIZED_WRITE,
    404: 'Not Found - Specified database or document ID doesn\'t exist',
    409: 'Conflict - Document with the specified ID already exists or specified revision is not latest for target document',
})

CREATE_BULK_DOCUMENTS = Endpoint('POST', ('{db}', '_bulk_docs'), {
    201: 'Created - Document(s) have been created or updated',
    400: 'Bad Request - The request provided invalid JSON data',
    417: 'Expectation Failed - Occurs when at least one document was rejected by a validation function',
    500: 'Internal Server Error - Malformed data provided, while it\'s still valid JSON',
})

FIND_DOCUMENTS = Endpoint('POST', ('{db}', '_find'), {
    200: OK,
    400: 'Bad Request - Invalid request',
    401: UNAUTHORIZED_READ,
    500: 'Internal Server Error - Query execution error',
})

# design documents and views

GET_DESIGN_DOCUMENT = Endpoint('GET', ('{db}', '_design', '{ddoc}'), {
    200: OK,
    304: 'Not Modified - Design document wasn\'t modified since specified revision',
    400: 'Bad Request - The format of the request or revision was invalid',
    401: UNAUTHORIZED_READ,
    404: 'Not Found - Design document not found',
})

GET_DESIGN_DOCUMENT_INFO = Endpoint('GET', ('{db}', '_design', '{ddoc}', '_info'), {
    200: OK,
    404: 'Not Found - Design document not found',
})

CREATE_DESIGN_DOCUMENT = Endpoint('PUT', ('{db}', '_design', '{ddoc}'), {
    201: 'Created - Design document created and stored on disk',
    202: 'Accepted - Design document data accepted, but not yet stored on disk',
    400: 'Bad Request - Invalid request body or parameters',
    401: UNAUTHORIZED_WRITE,
    404: 'Not Found - Specified database or design document ID doesn\'t exist',
    409: 'Conflict - Design document with the specified ID already exists or specified revision is not latest for target document',
})

DELETE_DESIGN_DOCUMENT = Endpoint('DELETE', ('{db}', '_design', '{ddoc}'), {
    200: 'OK - Design document successfully removed',
    202: 'Accepted - Request was accepted, but changes are not yet stored on disk',
    400: 'Bad Request - Invalid request body or parameters',
    401: UNAUTHORIZED_WRITE,
    404: 'Not Found - Specified database or design document ID doesn\'t exist',
    409: 'Conflict - Specified revision is not the latest for target design document',
})

GET_VIEW = Endpoint('GET', ('{db}', '_design', '{ddoc}', '_view', '{view}'), {
    200: OK,
    400: 'Bad Request - Invalid request',
    401: UNAUTHORIZED_READ,
    404: 'Not Found - Specified database, design document or view is missed',
    500: 'Internal Server Error - View function execution error',
})

_UPDATE_FUNCTION = {
    200: 'OK - No document was created or updated',
    201: 'Created - Document was created or updated',
    500: 'Internal Server Error - Update function failed',
}

EXECUTE_UPDATE_FUNCTION = Endpoint('POST', ('{db}', '_design', '{ddoc}', '_update', '{func}'), _UPDATE_FUNCTION)

EXECUTE_UPDATE_FUNCTION_FOR_DOCUMENT = Endpoint(
    'PUT', ('{db}', '_design', '{ddoc}', '_update', '{func}', '{doc}'), _UPDATE_FUNCTION)

# mango indexes

CREATE_INDEX = Endpoint('POST', ('{db}', '_index'), {
    200: 'OK - Index created successfully or already exists',
    400: 'Bad Request - Invalid request',
    401: 'Unauthorized - Admin permission required',
    500: 'Internal Server Error - Execution error',
})

GET_INDEX = Endpoint('GET', ('{db}', '_index'), {
    200: 'OK - Success',
    400: 'Bad Request - Invalid request',
    401: UNAUTHORIZED_READ,
    500: 'Internal Server Error - Execution error',
})

DELETE_INDEX = Endpoint('DELETE', ('{db}', '_index', '{ddoc}', 'json', '{name}'), {
    200: 'OK - Success',
    400: 'Bad Request - Invalid request',
    401: 'Unauthorized - Writer permission required',
    404: 'Not Found - Index not found',
    500: 'Internal Server Error - Execution error',
})

# attachments

ADD_ATTACHMENT = Endpoint('PUT', ('{db}', '{doc}', '{name}'), {
    201: 'Created - Attachment created and stored on disk',
    202: 'Accepted - Request was accepted, but changes are not yet stored on disk',
    400: 'Bad Request - Invalid request body or parameters',
    401: UNAUTHORIZED_WRITE,
    404: 'Not Found - Specified database, document or attachment was not found',
    409: 'Conflict - Document\'s revision wasn\'t specified or it\'s not the latest',
})

GET_ATTACHMENT = Endpoint('GET', ('{db}', '{doc}', '{name}'), {
    200: 'OK - Attachment exists',
    304: 'Not Modified - Attachment wasn\'t modified if ETag equals specified If-None-Match header',
    401: UNAUTHORIZED_READ,
    404: 'Not Found - Specified database, document or attachment was not found',
})

DELETE_ATTACHMENT = Endpoint('DELETE', ('{db}', '{doc}', '{name}'), {
    200: 'OK - Attachment successfully removed',
    202: 'Accepted - Request was accepted, but changes are not yet stored on disk',
    400: 'Bad Request - Invalid request body or parameters',
    401: UNAUTHORIZED_WRITE,
    404: 'Not Found - Specified database, document or attachment was not found',
    409: 'Conflict - Document\'s revision wasn\'t specified or it\'s not the latest',
})
