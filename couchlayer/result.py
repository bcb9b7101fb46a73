from http.client import responses as HTTP_STATUS_TEXT
from typing import Any, Dict, Mapping, Optional

UNKNOWN_STATUS = 'unknown status'


def status_message(status: int, statuses: Optional[Mapping[int, str]] = None) -> str:
    """Operation table first, then the generic HTTP reason phrase."""
    if statuses and status in statuses:
        return statuses[status]
    return HTTP_STATUS_TEXT.get(status, UNKNOWN_STATUS)


class Result:
    def __init__(
        self,
        status: int,
        message: str,
        data: Any = None,
        headers: Dict[str, str] = None,
        duration: int = 0
    ):
        """Initialize a Result with the settled outcome of one request."""
        self.status = status
        self.message = message
        self.data = data
        self.headers = headers or {}
        self.duration = duration

    @property
    def ok(self) -> bool:
        """True for results delivered through the success path (status < 400)."""
        return self.status < 400

    def to_dict(self) -> Dict[str, Any]:
        return {
            'headers': self.headers,
            'data': self.data,
            'status': self.status,
            'message': self.message,
            'duration': self.duration,
        }

    def __eq__(self, other):
        if not isinstance(other, Result):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self):
        return (f"Result(status={self.status!r}, message={self.message!r}, "
                f"data={self.data!r}, duration={self.duration!r})")


class CouchError(Exception):
    """
    Raised for every result with a status of 400 or more, whether it came
    from the server or was synthesized locally (bad URL, bad payload,
    transport failure, timeout, unparsable body).
    """

    def __init__(self, result: Result):
        super().__init__(f"{result.status} {result.message}")
        self.result = result

    @property
    def status(self) -> int:
        return self.result.status

    @property
    def message(self) -> str:
        return self.result.message

    @property
    def data(self) -> Any:
        return self.result.data

    @property
    def headers(self) -> Dict[str, str]:
        return self.result.headers


def settle(result: Result) -> Result:
    """Return successful results, raise the others."""
    if result.status < 400:
        return result
    raise CouchError(result)
