import io
import json
import time

import httpx
import pytest

from couchlayer.fetcher import CouchFetcher, RequestParams
from couchlayer.payload import Bytes, Json, Stream, Text
from couchlayer.result import CouchError

from fake_couch import silent_server

URL = "http://couch.test:5984/db/doc"


class Recorder:
    """Transport handler that records requests and answers with a fixed response."""

    def __init__(self, status=200, body=b'{"ok":true}', headers=None):
        self.status = status
        self.body = body
        self.headers = headers or {'content-type': 'application/json'}
        self.requests = []

    def __call__(self, request):
        self.requests.append(request)
        return httpx.Response(self.status, content=self.body, headers=self.headers)


@pytest.mark.anyio
@pytest.mark.parametrize("url", [
    "ftp://couch.test/db",
    "couch.test:5984/db",
    "http://couch.test:port/db",
    "http:///db",
])
async def test_invalid_url_fails_without_io(make_fetcher, url):
    handler = Recorder()
    fetcher = make_fetcher(handler)

    with pytest.raises(CouchError) as excinfo:
        await fetcher.request(RequestParams('GET', url))

    result = excinfo.value.result
    assert result.status == 400
    assert result.message == 'bad request'
    assert result.data == 'invalid url'
    assert result.headers == {}
    assert handler.requests == []


@pytest.mark.anyio
@pytest.mark.parametrize("status", [200, 201, 400, 404, 409, 500])
async def test_status_decides_the_channel(make_fetcher, status):
    fetcher = make_fetcher(Recorder(status=status, body=b'{"answer": 42}'))
    params = RequestParams('GET', URL, statuses={status: 'from table'})

    if status < 400:
        result = await fetcher.request(params)
    else:
        with pytest.raises(CouchError) as excinfo:
            await fetcher.request(params)
        result = excinfo.value.result

    assert result.status == status
    assert result.data == {'answer': 42}
    assert result.message == 'from table'
    assert result.headers['content-type'] == 'application/json'


@pytest.mark.anyio
async def test_success_is_not_decided_by_the_table(make_fetcher):
    fetcher = make_fetcher(Recorder(status=202))
    result = await fetcher.request(RequestParams('PUT', URL, statuses={201: 'Created'}))

    assert result.status == 202
    assert result.message == 'Accepted'


@pytest.mark.anyio
async def test_message_lookup_priority(make_fetcher):
    fetcher = make_fetcher(Recorder(status=404, body=b'{"error": "not_found"}'))

    with pytest.raises(CouchError) as excinfo:
        await fetcher.request(RequestParams('GET', URL, statuses={404: 'custom'}))
    assert excinfo.value.message == 'custom'

    with pytest.raises(CouchError) as excinfo:
        await fetcher.request(RequestParams('GET', URL, statuses={200: 'OK'}))
    assert excinfo.value.message == 'Not Found'

    fetcher = make_fetcher(Recorder(status=499, body=b'{}'))
    with pytest.raises(CouchError) as excinfo:
        await fetcher.request(RequestParams('GET', URL))
    assert excinfo.value.message == 'unknown status'


@pytest.mark.anyio
async def test_empty_body_gives_empty_object(make_fetcher):
    fetcher = make_fetcher(Recorder(status=200, body=b''))
    result = await fetcher.request(RequestParams('HEAD', URL))

    assert result.status == 200
    assert result.data == {}


@pytest.mark.anyio
async def test_unparsable_body_is_a_server_error(make_fetcher):
    fetcher = make_fetcher(Recorder(status=200, body=b'<html>not json</html>',
                                    headers={'content-type': 'text/html'}))

    with pytest.raises(CouchError) as excinfo:
        await fetcher.request(RequestParams('GET', URL))

    result = excinfo.value.result
    assert result.status == 500
    assert result.message == result.data
    assert 'Expecting value' in result.data
    assert result.headers['content-type'] == 'text/html'


@pytest.mark.anyio
async def test_default_headers(make_fetcher):
    handler = Recorder()
    fetcher = make_fetcher(handler)
    await fetcher.request(RequestParams('GET', URL, headers={'Destination': 'copy'}))

    sent = handler.requests[0].headers
    assert sent['accept'] == 'application/json'
    assert sent['user-agent'].startswith('couchlayer/')
    assert sent['destination'] == 'copy'
    assert 'content-type' not in sent


@pytest.mark.anyio
async def test_json_payload_is_serialized(make_fetcher):
    handler = Recorder(status=201)
    fetcher = make_fetcher(handler)
    doc = {'name': 'Bob', 'umlaut': 'ä'}

    await fetcher.request(RequestParams('PUT', URL, payload=Json(doc)))

    sent = handler.requests[0]
    assert json.loads(sent.content) == doc
    assert sent.headers['content-type'] == 'application/json'
    assert sent.headers['content-length'] == str(len(sent.content))


@pytest.mark.anyio
async def test_text_and_bytes_payloads_keep_declared_content_type(make_fetcher):
    handler = Recorder(status=201)
    fetcher = make_fetcher(handler)

    await fetcher.request(RequestParams('PUT', URL, payload=Text('hello\nwörld'), content_type='text/plain'))
    await fetcher.request(RequestParams('PUT', URL, payload=Bytes(b'\x89PNG'), content_type='image/png'))

    text, raw = handler.requests
    assert text.content == 'hello\nwörld'.encode('utf-8')
    assert text.headers['content-type'] == 'text/plain'
    assert text.headers['content-length'] == '12'
    assert raw.content == b'\x89PNG'
    assert raw.headers['content-type'] == 'image/png'
    assert raw.headers['content-length'] == '4'


@pytest.mark.anyio
@pytest.mark.parametrize("params", [
    RequestParams('PUT', URL, payload=Text('x'), content_type='text/plain; charset=é'),
    RequestParams('COPY', URL, headers={'Destination': 'café'}),
])
async def test_non_ascii_header_fails_without_io(make_fetcher, params):
    handler = Recorder()
    fetcher = make_fetcher(handler)

    with pytest.raises(CouchError) as excinfo:
        await fetcher.request(params)

    assert excinfo.value.status == 400
    assert excinfo.value.message == 'bad request'
    assert handler.requests == []


@pytest.mark.anyio
async def test_stream_payload_is_sent_chunked_in_order(make_fetcher):
    handler = Recorder(status=201)
    fetcher = make_fetcher(handler)

    async def produce():
        for i in range(5):
            yield f"chunk-{i};".encode()

    await fetcher.request(RequestParams('PUT', URL, payload=Stream(produce()),
                                        content_type='text/plain'))
    await fetcher.request(RequestParams('PUT', URL, payload=Stream(io.BytesIO(b'file body')),
                                        content_type='application/octet-stream'))

    streamed, from_file = handler.requests
    assert streamed.content == b'chunk-0;chunk-1;chunk-2;chunk-3;chunk-4;'
    assert streamed.headers['transfer-encoding'] == 'chunked'
    assert 'content-length' not in streamed.headers
    assert from_file.content == b'file body'


@pytest.mark.anyio
@pytest.mark.parametrize("payload", [
    Json({'when': object()}),
    Json({'value': float('nan')}),
    {'not': 'a variant'},
    42,
])
async def test_bad_payload_fails_without_io(make_fetcher, payload):
    handler = Recorder()
    fetcher = make_fetcher(handler)

    with pytest.raises(CouchError) as excinfo:
        await fetcher.request(RequestParams('PUT', URL, payload=payload))

    assert excinfo.value.status == 400
    assert excinfo.value.message == 'bad request'
    assert handler.requests == []


@pytest.mark.anyio
async def test_transport_error_is_a_server_error(make_fetcher):
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    fetcher = make_fetcher(refuse)
    with pytest.raises(CouchError) as excinfo:
        await fetcher.request(RequestParams('GET', URL))

    result = excinfo.value.result
    assert result.status == 500
    assert result.message == 'general server error'
    assert result.data == 'connection refused'
    assert result.headers == {}


@pytest.mark.anyio
async def test_transport_timeout_is_reported(make_fetcher):
    def stall(request):
        raise httpx.ReadTimeout("timed out", request=request)

    fetcher = make_fetcher(stall)
    with pytest.raises(CouchError) as excinfo:
        await fetcher.request(RequestParams('GET', URL))

    assert excinfo.value.status == 500
    assert excinfo.value.message == 'request timed out'


@pytest.mark.anyio
async def test_timeout_is_read_for_every_request(make_fetcher):
    seen = []

    def handler(request):
        seen.append(request.extensions['timeout']['read'])
        return httpx.Response(200, json={})

    fetcher = make_fetcher(handler, timeout=2000)
    await fetcher.request(RequestParams('GET', URL))
    fetcher.set_timeout(500)
    await fetcher.request(RequestParams('GET', URL))

    assert seen == [2.0, 0.5]
    assert fetcher.get_timeout() == 500


@pytest.mark.anyio
@pytest.mark.parametrize("timeout", [0, -5, 'fast', None, True])
async def test_set_timeout_rejects_nonsense(timeout):
    async with CouchFetcher(trust_env=False) as fetcher:
        with pytest.raises(ValueError):
            fetcher.set_timeout(timeout)
        assert fetcher.get_timeout() == 10000


@pytest.mark.anyio
async def test_silent_server_times_out_close_to_the_limit():
    timeout = 1000
    epsilon = 100

    async with silent_server() as url:
        async with CouchFetcher(timeout=timeout, trust_env=False) as fetcher:
            start = time.monotonic()
            with pytest.raises(CouchError) as excinfo:
                await fetcher.request(RequestParams('GET', url + '/_all_dbs'))
            elapsed = (time.monotonic() - start) * 1000

    assert excinfo.value.status == 500
    assert excinfo.value.message == 'request timed out'
    assert timeout - 10 <= elapsed < timeout + epsilon
