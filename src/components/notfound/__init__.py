"""
Not-found component - interception and resolution of failed requests.
"""

from ._classify import classify_failure, inspect_failure, is_not_found_failure
from ._filters import (
    fallback_page_path,
    has_reentry_marker,
    is_fallback_page_request,
    is_ignorable_resource,
    is_recursive,
    resource_extension,
)
from ._impl import (
    NotFoundHandler,
    RedirectResolver,
    ResolveResult,
    build_fallback_url,
    is_local_client,
    normalize_referrer,
    perform_decision,
    site_origin,
    split_path_and_query,
)
from .component import (
    create_not_found_handler,
    run,
    run_handle,
    run_resolve,
)
from .models import (
    NOT_FOUND_PARAM,
    REENTRY_PREFIX,
    Action,
    Classification,
    Failure,
    FailureKind,
    HandleNotFoundInput,
    HandleNotFoundOutput,
    HandlerMode,
    Inspection,
    InterceptionDecision,
    LoggerMode,
    OperatingSettings,
    Outcome,
    PageNotFoundError,
    RequestContext,
    ResolveRedirectInput,
    ResolveRedirectOutput,
)
from .ports import (
    ConfigSourcePort,
    FailureDescriber,
    HostResponsePort,
    LocalClientCheck,
    MissLoggerPort,
    RedirectStorePort,
)
from .settings import SettingsResolver

__all__ = [
    # Entry points
    "run",
    "run_handle",
    "run_resolve",
    "create_not_found_handler",
    # Engine
    "NotFoundHandler",
    "RedirectResolver",
    "ResolveResult",
    "SettingsResolver",
    "perform_decision",
    # Guards and helpers
    "build_fallback_url",
    "classify_failure",
    "fallback_page_path",
    "has_reentry_marker",
    "inspect_failure",
    "is_fallback_page_request",
    "is_ignorable_resource",
    "is_local_client",
    "is_not_found_failure",
    "is_recursive",
    "normalize_referrer",
    "resource_extension",
    "site_origin",
    "split_path_and_query",
    # Models
    "NOT_FOUND_PARAM",
    "REENTRY_PREFIX",
    "Action",
    "Classification",
    "Failure",
    "FailureKind",
    "HandleNotFoundInput",
    "HandleNotFoundOutput",
    "HandlerMode",
    "Inspection",
    "InterceptionDecision",
    "LoggerMode",
    "OperatingSettings",
    "Outcome",
    "PageNotFoundError",
    "RequestContext",
    "ResolveRedirectInput",
    "ResolveRedirectOutput",
    # Ports
    "ConfigSourcePort",
    "FailureDescriber",
    "HostResponsePort",
    "LocalClientCheck",
    "MissLoggerPort",
    "RedirectStorePort",
]
