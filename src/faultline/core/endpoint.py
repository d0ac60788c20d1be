"""Endpoint parsing and derived URL construction.

A submission endpoint identifies the tenant (``universe``) and carries or
accompanies a credential (``token``). Both are needed to build the
metrics endpoints.
"""

from urllib.parse import parse_qs, urlencode, urlsplit

from faultline.core.errors import ConfigurationError
from faultline.core.models import EndpointParameters

COLLECTION_HOST = "submit.backtrace.io"
DEFAULT_METRICS_URL = "https://events.backtrace.io"
TOKEN_LENGTH = 64

_COLLECTION_MARKER = "backtrace.io/"


def _has_token_param(endpoint: str) -> bool:
    return "token=" in endpoint


def _resolve_collection_url(
    endpoint: str, token: str | None
) -> EndpointParameters | None:
    """Parse ``.../backtrace.io/<universe>/<token>/...`` endpoints."""
    start = endpoint.find(_COLLECTION_MARKER)
    if start == -1:
        return None
    remainder = endpoint[start + len(_COLLECTION_MARKER) :]
    universe, separator, rest = remainder.partition("/")
    if not separator or not universe:
        return None
    if token:
        return EndpointParameters(universe=universe, token=token)
    # the token is everything up to the last path separator
    parsed_token, separator, _ = rest.rpartition("/")
    if not separator or len(parsed_token) != TOKEN_LENGTH:
        return None
    return EndpointParameters(universe=universe, token=parsed_token)


def _first_host_label(endpoint: str) -> str | None:
    try:
        hostname = urlsplit(endpoint).hostname
    except ValueError:
        return None
    if not hostname:
        return None
    label, separator, _ = hostname.partition(".")
    if not separator or not label:
        return None
    return label


def resolve_endpoint(
    endpoint: str, token: str | None = None
) -> EndpointParameters | None:
    """Resolve universe and token from a submission endpoint.

    Args:
        endpoint: Submission URL.
        token: Explicit token; takes precedence over a parsed one.

    Returns:
        EndpointParameters, or None when the endpoint cannot be resolved.
        For generic hosts the token is returned as given and may be None.
    """
    if not endpoint:
        return None

    if COLLECTION_HOST in endpoint:
        return _resolve_collection_url(endpoint, token)

    universe = _first_host_label(endpoint)
    if universe is None:
        return None

    if not token and _has_token_param(endpoint):
        query = parse_qs(urlsplit(endpoint).query)
        token = query.get("token", [None])[0]
    return EndpointParameters(universe=universe, token=token)


def metrics_endpoints(
    params: EndpointParameters, base_url: str | None = None
) -> tuple[str, str]:
    """Build the unique-events and summed-events submission URLs.

    Args:
        params: Resolved universe and token.
        base_url: Metrics host (default: https://events.backtrace.io).

    Returns:
        Tuple of (unique_url, summed_url).
    """
    base = (base_url or DEFAULT_METRICS_URL).rstrip("/")
    query = urlencode({"universe": params.universe, "token": params.token or ""})
    return (
        f"{base}/api/unique-events/submit?{query}",
        f"{base}/api/summed-events/submit?{query}",
    )


def submission_url(endpoint: str, token: str | None = None) -> str:
    """Derive the URL reports are POSTed to.

    Endpoints that already name the collection host or carry a token are
    used verbatim. Otherwise a token is required and appended.

    Raises:
        ConfigurationError: If the endpoint is empty, or a token is
            required but missing.
    """
    if not endpoint:
        raise ConfigurationError("Backtrace: missing 'endpoint' option.")
    if COLLECTION_HOST in endpoint or _has_token_param(endpoint):
        return endpoint
    if not token:
        raise ConfigurationError(
            "Token configuration option is required for this type of submission url."
        )
    separator = "" if endpoint.endswith("/") else "/"
    return f"{endpoint}{separator}post?format=json&token={token}"
