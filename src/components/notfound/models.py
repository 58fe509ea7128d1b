"""
Not-found interception models.

Value types shared by the settings resolver, the classifier, the loop
guard and the outcome dispatcher. All request-scoped values are frozen;
nothing here is persisted.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

# Query marker appended to the fallback page URL. A request whose raw
# query string starts with "404;" is a re-entry from a prior rewrite.
NOT_FOUND_PARAM = "404;notfound"
REENTRY_PREFIX = "404;"


# --- Modes ---


class HandlerMode(str, Enum):
    """Global interception mode."""

    ON = "On"
    OFF = "Off"
    REMOTE_ONLY = "RemoteOnly"


class LoggerMode(str, Enum):
    """Whether unmatched misses are logged."""

    ON = "On"
    OFF = "Off"


# --- Settings ---


DEFAULT_IGNORED_EXTENSIONS = "jpg,gif,png,css,js,ico,swf,woff"


@dataclass(frozen=True)
class OperatingSettings:
    """
    Process-wide settings snapshot.

    Logging mode is deliberately absent: it is re-read on every
    decision through SettingsResolver.logging_mode().
    """

    handler_mode: HandlerMode = HandlerMode.ON
    fallback_page: str = "~/notfound"
    redirects_file: str = "~/redirects.yaml"
    buffer_size: int = 30
    threshold: int = 5
    ignored_extensions: frozenset[str] = frozenset(DEFAULT_IGNORED_EXTENSIONS.split(","))
    fallback_to_host_error_manager: bool = False
    case_insensitive_extensions: bool = True
    site_url: str = ""


# --- Request ---


@dataclass(frozen=True)
class RequestContext:
    """Immutable view of the failed request supplied by the host."""

    url: str
    path: str
    query_string: str = ""
    status_code: int = 404
    referrer: str | None = None
    captured_error: object | None = None
    client_host: str | None = None

    @property
    def path_and_query(self) -> str:
        if self.query_string:
            return f"{self.path}?{self.query_string}"
        return self.path


# --- Failure classification ---


class PageNotFoundError(LookupError):
    """Raised by application code when a page or route does not exist."""

    def __init__(self, url: str = "") -> None:
        super().__init__(f"Page not found: {url}" if url else "Page not found")
        self.url = url


class FailureKind(str, Enum):
    """Closed set of failure causes reported by the host adapter."""

    ROUTE_NOT_FOUND = "route_not_found"
    FILE_NOT_FOUND = "file_not_found"
    HTTP_STATUS = "http_status"
    OTHER = "other"


@dataclass(frozen=True)
class Failure:
    """Tagged failure variant. status_code is only set for HTTP_STATUS."""

    kind: FailureKind
    status_code: int | None = None


@dataclass(frozen=True)
class Inspection:
    """Result of inspecting the captured error: a failure or the error hit while looking."""

    failure: Failure | None = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class Classification(str, Enum):
    GENUINE_NOT_FOUND = "genuine_not_found"
    NOT_APPLICABLE = "not_applicable"


# --- Decision ---


class Action(str, Enum):
    REDIRECT = "redirect"
    SHOW_FALLBACK = "show_fallback"
    IGNORE = "ignore"


class Outcome(str, Enum):
    """Terminal states of the interception state machine."""

    DISABLED = "disabled"
    IGNORED = "ignored"
    NOT_APPLICABLE = "not_applicable"
    LOOP_DETECTED = "loop_detected"
    REDIRECT_PERFORMED = "redirect_performed"
    FALLBACK_SHOWN = "fallback_shown"


@dataclass(frozen=True)
class InterceptionDecision:
    """Per-request engine output."""

    outcome: Outcome
    action: Action = Action.IGNORE
    target: str | None = None
    logged: bool = False

    @property
    def should_act(self) -> bool:
        return self.action is not Action.IGNORE

    @classmethod
    def ignore(cls, outcome: Outcome) -> InterceptionDecision:
        return cls(outcome=outcome)

    @classmethod
    def redirect(cls, target: str) -> InterceptionDecision:
        return cls(
            outcome=Outcome.REDIRECT_PERFORMED,
            action=Action.REDIRECT,
            target=target,
        )

    @classmethod
    def fallback(cls, fallback_url: str, logged: bool = False) -> InterceptionDecision:
        return cls(
            outcome=Outcome.FALLBACK_SHOWN,
            action=Action.SHOW_FALLBACK,
            target=fallback_url,
            logged=logged,
        )


# --- Component entry point input/output ---


@dataclass(frozen=True)
class HandleNotFoundInput:
    """Input for running the interceptor on one request."""

    context: RequestContext


@dataclass(frozen=True)
class HandleNotFoundOutput:
    decision: InterceptionDecision
    success: bool = True


@dataclass(frozen=True)
class ResolveRedirectInput:
    """Input for looking up a live redirect target for an absolute URL."""

    url: str


@dataclass(frozen=True)
class ResolveRedirectOutput:
    target: str | None
    matched: bool
    success: bool = True
