"""
Core module for labelscope.

This module provides the foundational components used throughout the application:
    - exceptions: Error taxonomy shared by every remote client
    - config: Configuration loading and validation
    - logger: Logging system with console and file outputs
    - request_queue: FIFO and priority request queues with request spacing
    - cache: Time-boxed response cache
    - pagination: Offset/limit collector
    - backoff: HTTP 429 retry combinator and rate-limit state

Usage:
    from labelscope.core import (
        Config, load_config,
        setup_logging, get_logger,
        RateLimitedQueue, ResponseCache, collect_all,
        LabelscopeError, RateLimitExceeded
    )
"""

from labelscope.core.backoff import (
    RateLimitState,
    compute_backoff_delay,
    retry_on_rate_limit,
)
from labelscope.core.cache import ResponseCache, make_key
from labelscope.core.config import (
    CacheConfig,
    Config,
    ExportConfig,
    MusicBrainzConfig,
    OutputConfig,
    SpotifyConfig,
    TreeConfig,
    load_config,
)
from labelscope.core.exceptions import (
    AuthorizationExpired,
    ClientError,
    ConfigError,
    LabelscopeError,
    NetworkError,
    NotFoundError,
    RateLimitExceeded,
    RequestCancelled,
    ServerError,
    raise_for_status,
)
from labelscope.core.logger import (
    get_logger,
    log_unmatched_release,
    setup_logging,
    shutdown_logging,
)
from labelscope.core.pagination import Page, collect_all
from labelscope.core.request_queue import PriorityRequestQueue, RateLimitedQueue

__all__ = [
    # Config
    "Config",
    "MusicBrainzConfig",
    "SpotifyConfig",
    "CacheConfig",
    "TreeConfig",
    "ExportConfig",
    "OutputConfig",
    "load_config",
    # Exceptions
    "LabelscopeError",
    "ConfigError",
    "RequestCancelled",
    "NetworkError",
    "RateLimitExceeded",
    "AuthorizationExpired",
    "ClientError",
    "NotFoundError",
    "ServerError",
    "raise_for_status",
    # Logger
    "setup_logging",
    "get_logger",
    "log_unmatched_release",
    "shutdown_logging",
    # Request plumbing
    "RateLimitedQueue",
    "PriorityRequestQueue",
    "ResponseCache",
    "make_key",
    "Page",
    "collect_all",
    "RateLimitState",
    "compute_backoff_delay",
    "retry_on_rate_limit",
]
