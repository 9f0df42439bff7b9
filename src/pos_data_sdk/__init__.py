import logging

from .config import ClientConfig, ConfigError, load_config
from .exceptions import (
    AccessDeniedError,
    ApiError,
    ConflictError,
    NotFoundError,
    RateLimitError,
    ServerError,
    SessionExpiredError,
    TransportError,
    ValidationError,
)
from .filters import Debouncer, build_query_params, clean_filters
from .http_client import HttpClient
from .models import ItemState, MutationResult, MutationState, NormalizedListing, PaginationMeta, QueryState
from .mutations import MutationCall, MutationExecutor, MutationMethod
from .normalizers import normalize_envelope, unwrap_payload
from .paginated_query import PaginatedQueryController
from .session import ApiSession
from .single_query import SingleItemQueryController
from .tracing import TraceContext
from .ui_errors import ClassifiedError, ErrorKind, classify, classify_status

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = "0.4.0"

__all__ = [
    "AccessDeniedError",
    "ApiError",
    "ApiSession",
    "ClassifiedError",
    "ClientConfig",
    "ConfigError",
    "ConflictError",
    "Debouncer",
    "ErrorKind",
    "HttpClient",
    "ItemState",
    "MutationCall",
    "MutationExecutor",
    "MutationMethod",
    "MutationResult",
    "MutationState",
    "NormalizedListing",
    "NotFoundError",
    "PaginatedQueryController",
    "PaginationMeta",
    "QueryState",
    "RateLimitError",
    "ServerError",
    "SessionExpiredError",
    "SingleItemQueryController",
    "TraceContext",
    "TransportError",
    "ValidationError",
    "build_query_params",
    "classify",
    "classify_status",
    "clean_filters",
    "load_config",
    "normalize_envelope",
    "unwrap_payload",
]
