"""
Request engine: sends one request to a CouchDB server and settles it into a
Result. Buffered requests parse the body as JSON; streamed requests hand the
body to a caller-owned sink in a second, separately awaited phase.
"""
import inspect
import json
import threading
import time
from collections import namedtuple
from typing import Any, Dict, Optional, Tuple

import httpx
import structlog

from . import __version__
from .payload import Bytes, Json, PayloadError, Stream, Text, iter_stream
from .result import CouchError, Result, settle, status_message
from .url_validator import validate_url

logger = structlog.get_logger(__name__)

USER_AGENT = f"couchlayer/{__version__}"
JSON_CONTENT_TYPE = 'application/json'
DEFAULT_TIMEOUT = 10000  # ms

RequestParams = namedtuple(
    "RequestParams",
    "method url statuses payload content_type headers",
    defaults=(None, None, None, None),
)
"""
Immutable description of one request.

.. attribute:: statuses

    Status code -> message table of the operation; it only picks the
    message, never whether the request succeeded.

.. attribute:: payload

    ``None`` or one of the :mod:`couchlayer.payload` variants.
"""


def _elapsed(start: float) -> int:
    return int((time.time() - start) * 1000)


class CouchFetcher:
    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        verify: bool = True,
        transport: httpx.AsyncBaseTransport = None,
        trust_env: bool = True
    ):
        """Initialize the fetcher with a request timeout in milliseconds."""
        self.user_agent = USER_AGENT
        self._lock = threading.Lock()
        self._timeout = None
        self.set_timeout(timeout)

        self._client = httpx.AsyncClient(
            verify=verify,
            transport=transport,
            trust_env=trust_env,
            follow_redirects=False,
        )

    def get_timeout(self) -> float:
        with self._lock:
            return self._timeout

    def set_timeout(self, timeout: float):
        """Set the timeout in milliseconds used by requests issued from now on."""
        if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
            raise ValueError(f"timeout must be a positive number of milliseconds, got {timeout!r}")
        with self._lock:
            self._timeout = timeout

    async def aclose(self):
        await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.aclose()

    async def request(self, params: RequestParams) -> Result:
        """
        Send a request and parse the response body as JSON.

        Returns the Result for statuses below 400 and raises
        :class:`CouchError` carrying the Result otherwise.
        """
        start = time.time()
        response = await self._open(params, start)
        headers = dict(response.headers)

        try:
            await response.aread()
        except httpx.HTTPError as e:
            self._fail(params, self._transport_failure(e, headers, start))
        finally:
            await response.aclose()

        text = response.text
        try:
            data = json.loads(text) if text.strip() else {}
        except ValueError as e:
            result = Result(
                status=500,
                message=str(e),
                data=str(e),
                headers=headers,
                duration=_elapsed(start)
            )
        else:
            result = Result(
                status=response.status_code,
                message=status_message(response.status_code, params.statuses),
                data=data,
                headers=headers,
                duration=_elapsed(start)
            )

        self._log(params, result)
        return settle(result)

    async def request_stream(self, params: RequestParams, sink) -> "Transfer":
        """
        Send a request whose response body goes to ``sink``.

        This settles as soon as the response headers are classified. The
        body is only written once the returned :class:`Transfer` is drained.
        """
        start = time.time()
        response = await self._open(params, start)

        result = Result(
            status=response.status_code,
            message=status_message(response.status_code, params.statuses),
            headers=dict(response.headers),
            duration=_elapsed(start)
        )
        self._log(params, result)

        if result.status >= 400:
            await response.aclose()
            raise CouchError(result)
        return Transfer(params, response, sink, result, start)

    async def _open(self, params: RequestParams, start: float) -> httpx.Response:
        """Validate, encode and send; return the response with its body unread."""
        validation = validate_url(params.url)
        if not validation['valid']:
            self._fail(params, Result(
                status=400,
                message='bad request',
                data='invalid url',
                duration=_elapsed(start)
            ))

        try:
            content, payload_headers = self._encode_payload(params.payload, params.content_type)
        except PayloadError as e:
            self._fail(params, Result(
                status=400,
                message='bad request',
                data=str(e),
                duration=_elapsed(start)
            ))

        # read fresh so set_timeout() affects every later request
        timeout = self.get_timeout()
        logger.debug("request_started", method=params.method, url=params.url, timeout_ms=timeout)

        try:
            headers = {
                'user-agent': self.user_agent,
                'accept': JSON_CONTENT_TYPE,
            }
            headers.update(payload_headers)
            if params.headers:
                headers.update(params.headers)

            request = self._client.build_request(
                params.method,
                params.url,
                content=content,
                headers=headers,
                timeout=httpx.Timeout(timeout / 1000),
            )
        except (UnicodeEncodeError, httpx.InvalidURL) as e:
            # header values must be ASCII
            self._fail(params, Result(
                status=400,
                message='bad request',
                data=str(e),
                duration=_elapsed(start)
            ))

        try:
            return await self._client.send(request, stream=True)
        except (httpx.HTTPError, OSError) as e:
            self._fail(params, self._transport_failure(e, {}, start))

    def _encode_payload(self, payload, content_type: Optional[str]) -> Tuple[Any, Dict[str, str]]:
        """Turn a payload variant into request content and its headers."""
        headers = {}

        if payload is None:
            return None, headers

        if isinstance(payload, Json):
            try:
                body = json.dumps(payload.value, allow_nan=False).encode('utf-8')
            except (TypeError, ValueError) as e:
                raise PayloadError(f"payload is not JSON serializable: {e}") from e
            headers['content-type'] = JSON_CONTENT_TYPE
            headers['content-length'] = str(len(body))
            return body, headers

        if isinstance(payload, Stream):
            if content_type:
                headers['content-type'] = content_type
            headers['transfer-encoding'] = 'chunked'
            return iter_stream(payload.source), headers

        if isinstance(payload, Bytes):
            body = bytes(payload.data)
        elif isinstance(payload, Text):
            body = payload.text.encode('utf-8')
        else:
            raise PayloadError(f"unsupported payload: {type(payload).__name__}")

        if content_type:
            headers['content-type'] = content_type
        headers['content-length'] = str(len(body))
        return body, headers

    def _transport_failure(self, error: Exception, headers: Dict[str, str], start: float) -> Result:
        if isinstance(error, httpx.TimeoutException):
            return Result(
                status=500,
                message='request timed out',
                data=f"Timeout after {self.get_timeout()}ms: {error}",
                headers=headers,
                duration=_elapsed(start)
            )
        return Result(
            status=500,
            message='general server error',
            data=str(error) or type(error).__name__,
            headers=headers,
            duration=_elapsed(start)
        )

    def _fail(self, params: RequestParams, result: Result):
        self._log(params, result)
        raise CouchError(result)

    def _log(self, params: RequestParams, result: Result):
        if result.status >= 400:
            logger.warning("request_failed",
                           method=params.method,
                           url=params.url,
                           status=result.status,
                           reason=result.message,
                           duration_ms=result.duration)
        else:
            logger.debug("request_completed",
                         method=params.method,
                         url=params.url,
                         status=result.status,
                         duration_ms=result.duration)


class Transfer:
    """
    Second phase of a streamed request: the response headers are already
    classified (:attr:`result`), the body still has to reach the sink.
    """

    def __init__(self, params: RequestParams, response: httpx.Response, sink, result: Result, start: float):
        self.params = params
        self.result = result
        self.bytes_written = 0
        self._response = response
        self._sink = sink
        self._start = start
        self._drained = False

    async def drain(self) -> Result:
        """
        Pipe the response body into the sink.

        Raises :class:`CouchError` (status 500) if the connection or the
        sink fails; the sink itself is never closed.
        """
        if self._drained:
            raise RuntimeError("transfer already drained")
        self._drained = True

        try:
            async for chunk in self._response.aiter_bytes():
                await self._write(chunk)
                self.bytes_written += len(chunk)
            await self._flush()
        except httpx.HTTPError as e:
            self._fail(Result(
                status=500,
                message='request timed out' if isinstance(e, httpx.TimeoutException) else 'general server error',
                data=str(e) or type(e).__name__,
                headers=self.result.headers,
                duration=_elapsed(self._start)
            ))
        finally:
            await self._response.aclose()

        result = Result(
            status=self.result.status,
            message=self.result.message,
            headers=self.result.headers,
            duration=_elapsed(self._start)
        )
        logger.debug("stream_drained",
                     url=self.params.url,
                     bytes_written=self.bytes_written,
                     duration_ms=result.duration)
        return result

    async def aclose(self):
        """Drop the body without writing it."""
        self._drained = True
        await self._response.aclose()

    async def _write(self, chunk: bytes):
        try:
            written = self._sink.write(chunk)
            if inspect.isawaitable(written):
                await written
            drain = getattr(self._sink, 'drain', None)
            if drain is not None:
                pending = drain()
                if inspect.isawaitable(pending):
                    await pending
        except Exception as e:
            self._sink_failure(e)

    async def _flush(self):
        flush = getattr(self._sink, 'flush', None)
        if flush is None:
            return
        try:
            pending = flush()
            if inspect.isawaitable(pending):
                await pending
        except Exception as e:
            self._sink_failure(e)

    def _sink_failure(self, error: Exception):
        self._fail(Result(
            status=500,
            message='sink error',
            data=str(error) or type(error).__name__,
            headers=self.result.headers,
            duration=_elapsed(self._start)
        ))

    def _fail(self, result: Result):
        logger.warning("stream_failed",
                       url=self.params.url,
                       status=result.status,
                       reason=result.message,
                       bytes_written=self.bytes_written)
        raise CouchError(result)
