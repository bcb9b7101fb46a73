import structlog
from urllib.parse import urlsplit

logger = structlog.get_logger(__name__)

ALLOWED_SCHEMES = ('http', 'https')


def validate_url(url: str) -> dict:
    """Check that a URL is complete enough to send a request to.

    Nothing is fetched: only scheme, authority marker, port and hostname
    are inspected.

    Returns:
        dict: {"valid": bool, "reason": str}
    """
    if not url or not isinstance(url, str):
        logger.warning("invalid_url_format", url=url)
        return {
            "valid": False,
            "reason": "Empty or invalid URL"
        }

    try:
        parsed = urlsplit(url)
    except ValueError as e:
        logger.warning("unparsable_url", url=url, error=str(e))
        return {
            "valid": False,
            "reason": f"Unparsable URL: {e}"
        }

    if parsed.scheme not in ALLOWED_SCHEMES:
        logger.warning("invalid_url_scheme",
                       url=url,
                       scheme=parsed.scheme)
        return {
            "valid": False,
            "reason": f"Invalid scheme: {parsed.scheme}"
        }

    if '//' not in url:
        logger.warning("missing_authority", url=url)
        return {
            "valid": False,
            "reason": "Missing '//' authority marker"
        }

    # .port raises for anything that is not an integer in range
    try:
        parsed.port
    except ValueError:
        logger.warning("invalid_url_port", url=url)
        return {
            "valid": False,
            "reason": "Port is not numeric"
        }

    if not parsed.hostname:
        logger.warning("missing_hostname", url=url)
        return {
            "valid": False,
            "reason": "No hostname"
        }

    return {
        "valid": True,
        "reason": "Valid URL"
    }


def is_valid_url(url: str) -> bool:
    return validate_url(url)["valid"]
