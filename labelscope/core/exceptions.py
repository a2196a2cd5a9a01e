"""
Exception classes for labelscope.

This module defines all custom exceptions used throughout the application.
Every exception carries a machine-readable ``kind`` so that callers (the CLI,
or any other front end) can pick a message without inspecting HTTP details.

Exception Hierarchy:
    LabelscopeError (base)
        ConfigError - Configuration file issues
        RequestCancelled - Queued request dropped by a queue clear
        NetworkError - Connection failures, timeouts, status 0
        RateLimitExceeded - HTTP 429 after the retry budget is spent
        AuthorizationExpired - HTTP 401/403 on the Spotify catalog
        ClientError - Other HTTP 4xx responses
            NotFoundError - HTTP 404
        ServerError - HTTP 5xx responses
"""

from typing import Any, Mapping


class LabelscopeError(Exception):
    """
    Base exception for all labelscope errors.

    All custom exceptions in this project inherit from this class,
    allowing callers to catch every labelscope failure with a single
    except clause if desired.

    Attributes:
        kind: Short taxonomy code (e.g. "rate_limit", "network").
        message: Human-readable error description.
        details: Optional dictionary with additional context (URL, label ID, ...).
        retry_after: Seconds the caller should wait before retrying, if known.

    Example:
        try:
            tree = await builder.build_family_tree(label_id)
        except LabelscopeError as e:
            logger.error(f"[{e.kind}] {e.message}")
            if e.retry_after:
                logger.info(f"Try again in {e.retry_after}s")
    """

    kind = "error"

    def __init__(
        self,
        message: str,
        details: dict | None = None,
        retry_after: float | None = None
    ) -> None:
        """
        Initialize the base exception.

        Args:
            message: Human-readable error description that will be shown to the user.
            details: Optional dictionary containing additional context about the error.
                     Common keys include:
                     - 'url': URL that caused the error
                     - 'label_id': MusicBrainz label involved in the error
                     - 'original_error': The underlying exception if wrapping another error
            retry_after: Optional delay in seconds suggested by the server.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.retry_after = retry_after

    def __str__(self) -> str:
        """Return the error message for display."""
        return self.message

    def to_dict(self) -> dict[str, Any]:
        """Structured form of the error for a presentation layer."""
        return {
            "kind": self.kind,
            "message": self.message,
            "retry_after": self.retry_after,
            "details": dict(self.details),
        }


class ConfigError(LabelscopeError):
    """
    Raised when there's an issue with the configuration file.

    This is a CRITICAL error that should stop program execution.

    Common causes:
        - config.yaml has invalid YAML syntax
        - Invalid field values (e.g., negative max_depth)
        - Spotify credentials missing when an export is requested

    Example:
        raise ConfigError(
            "'tree.max_depth' must be a positive integer",
            details={'field': 'tree.max_depth', 'value': -1}
        )
    """
    kind = "config"


class RequestCancelled(LabelscopeError):
    """Raised for every pending request when its queue is cleared."""
    kind = "cancelled"


class NetworkError(LabelscopeError):
    """
    Raised when the remote could not be reached at all.

    Covers DNS failures, refused connections, resets and client-side
    timeouts, i.e. everything where no HTTP status was received.
    """
    kind = "network"


class RateLimitExceeded(LabelscopeError):
    """
    Raised when a remote keeps answering HTTP 429.

    The transport raises it for a single 429 (with the server's Retry-After);
    retry_on_rate_limit() swallows the first attempts and re-raises the
    terminal one with the backoff delay that would have come next.
    """
    kind = "rate_limit"


class AuthorizationExpired(LabelscopeError):
    """
    Raised on HTTP 401/403 from the Spotify catalog.

    The session has already been invalidated and a re-authorization
    requested by the time this reaches the caller. Never retried with the
    same token.
    """
    kind = "authorization"


class HTTPStatusError(LabelscopeError):
    """
    Base for errors that carry an HTTP status code.

    Attributes:
        status_code: The HTTP status returned by the server.
    """

    def __init__(
        self,
        message: str,
        status_code: int,
        details: dict | None = None,
        retry_after: float | None = None
    ) -> None:
        super().__init__(message, details, retry_after)
        self.status_code = status_code

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["status_code"] = self.status_code
        return data


class ClientError(HTTPStatusError):
    """Raised for 4xx responses other than 401/403/429."""
    kind = "client_error"


class NotFoundError(ClientError):
    """Raised for 404 responses (missing label, release, cover art...)."""
    pass


class ServerError(HTTPStatusError):
    """
    Raised for 5xx responses.

    MusicBrainz answers 503 when a client exceeds its request budget, so a
    503 from that service usually means the request interval is too short.
    """
    kind = "server_error"


def _parse_retry_after(headers: Mapping[str, str] | None) -> float:
    """Read Retry-After as seconds, defaulting to 1."""
    if not headers:
        return 1.0
    raw = headers.get("Retry-After") or headers.get("retry-after")
    try:
        return max(float(raw), 0.0) if raw is not None else 1.0
    except (TypeError, ValueError):
        return 1.0


def raise_for_status(
    status: int,
    url: str,
    headers: Mapping[str, str] | None = None,
    body: str = "",
    service: str = "remote"
) -> None:
    """
    Map an HTTP status to the labelscope exception taxonomy.

    Args:
        status: HTTP status code (0 when no response was received).
        url: Request URL, kept in details for diagnostics.
        headers: Response headers, used for Retry-After on 429.
        body: Response body excerpt, kept in details.
        service: Service name used in messages ("MusicBrainz", "Spotify").

    Raises:
        NetworkError, RateLimitExceeded, AuthorizationExpired,
        NotFoundError, ClientError or ServerError. Returns None for 2xx/3xx.
    """
    if 200 <= status < 400:
        return

    details = {"url": url, "status_code": status}
    if body:
        details["body"] = body[:500]

    if status == 0:
        raise NetworkError(
            f"Network error while contacting {service}. Please check your connection.",
            details=details
        )
    if status == 429:
        retry_after = _parse_retry_after(headers)
        raise RateLimitExceeded(
            f"{service} rate limit exceeded. Please wait before making another request.",
            details=details,
            retry_after=retry_after
        )
    if status in (401, 403):
        raise AuthorizationExpired(
            f"{service} authorization expired or was refused (HTTP {status})",
            details=details
        )
    if status == 404:
        raise NotFoundError(f"{service} resource not found", status, details=details)
    if status == 503 and service == "MusicBrainz":
        raise ServerError(
            "MusicBrainz service temporarily unavailable (rate limited). Please try again later.",
            status,
            details=details
        )
    if 400 <= status < 500:
        raise ClientError(f"{service} request failed (HTTP {status})", status, details=details)
    raise ServerError(f"{service} server error (HTTP {status})", status, details=details)
