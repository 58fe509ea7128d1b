"""
NotFoundHandler - not-found interception decision engine.

Decides, per failed request, between a permanent redirect, the fallback
not-found page (after logging the miss), or no action at all.

Key behaviors:
- Guards run in a fixed order: mode gate, resource filter, failure
  classification, loop guard, redirect lookup
- Static redirects take priority over provider redirects
- Only SAVED records redirect, and never to the failed URL itself
- A request without a live target is logged as a miss, at most once
- Exactly one terminal action per request: redirect or fallback, never both
"""

from __future__ import annotations

import ipaddress
import logging
import socket
from collections.abc import Callable
from dataclasses import dataclass
from functools import lru_cache
from urllib.parse import quote, urlsplit

from src.components.redirects.models import RedirectRecord

from ._classify import classify_failure
from ._filters import fallback_page_path, is_ignorable_resource, is_recursive
from .models import (
    NOT_FOUND_PARAM,
    Action,
    Classification,
    HandlerMode,
    InterceptionDecision,
    LoggerMode,
    OperatingSettings,
    Outcome,
    RequestContext,
)
from .ports import (
    FailureDescriber,
    HostResponsePort,
    LocalClientCheck,
    MissLoggerPort,
    RedirectStorePort,
)

logger = logging.getLogger(__name__)


# --- Helpers ---


def split_path_and_query(url: str) -> str:
    """Path and query of an absolute or relative URL."""
    parts = urlsplit(url)
    path = parts.path or "/"
    return f"{path}?{parts.query}" if parts.query else path


def site_origin(url: str) -> str:
    parts = urlsplit(url)
    if not parts.scheme or not parts.netloc:
        return ""
    return f"{parts.scheme}://{parts.netloc}"


def normalize_referrer(referrer: str | None, site_url: str) -> str:
    """
    Make a referrer site-relative when it points at this site.

    Foreign referrers are kept absolute; a missing referrer becomes "".
    """
    if referrer is None or not referrer.strip():
        return ""
    referrer = referrer.strip()

    ref_parts = urlsplit(referrer)
    site_parts = urlsplit(site_url)
    if not ref_parts.netloc or not site_parts.netloc:
        return referrer

    same_site = (
        ref_parts.scheme.lower() == site_parts.scheme.lower()
        and ref_parts.netloc.lower() == site_parts.netloc.lower()
    )
    if not same_site:
        return referrer

    return split_path_and_query(referrer)


def build_fallback_url(fallback_page: str, path_and_query: str) -> str:
    """
    Fallback page URL carrying the original request as the re-entry marker.

    The marker is always first in the query string so re-entries are
    recognised by prefix.
    """
    page = fallback_page_path(fallback_page)
    marker = f"{NOT_FOUND_PARAM}={quote(path_and_query, safe='')}"

    bare = fallback_page[1:] if fallback_page.startswith("~") else fallback_page
    _, _, existing_query = bare.partition("?")
    if existing_query:
        return f"{page}?{marker}&{existing_query}"
    return f"{page}?{marker}"


@lru_cache(maxsize=1)
def _local_addresses() -> frozenset[ipaddress.IPv4Address | ipaddress.IPv6Address]:
    """This machine's own addresses, resolved once per process."""
    addresses: set[ipaddress.IPv4Address | ipaddress.IPv6Address] = set()
    try:
        _, _, host_addresses = socket.gethostbyname_ex(socket.gethostname())
    except OSError:
        return frozenset()
    for value in host_addresses:
        try:
            addresses.add(ipaddress.ip_address(value))
        except ValueError:
            continue
    return frozenset(addresses)


def is_local_client(host: str | None) -> bool:
    """True when the caller address is loopback or one of this machine's own."""
    if not host:
        return False
    try:
        address = ipaddress.ip_address(host)
    except ValueError:
        return False
    # Dual-stack servers report IPv4 callers as ::ffff:a.b.c.d
    if isinstance(address, ipaddress.IPv6Address) and address.ipv4_mapped is not None:
        address = address.ipv4_mapped
    if address.is_loopback:
        return True
    return address in _local_addresses()


# --- Redirect Resolver ---


@dataclass(frozen=True)
class ResolveResult:
    """Outcome of a redirect lookup."""

    record: RedirectRecord | None = None
    target: str | None = None

    @property
    def matched(self) -> bool:
        """A record exists for the URL, actionable or not."""
        return self.record is not None


class RedirectResolver:
    """Asks the redirect store for a live target for a failed URL."""

    def __init__(self, store: RedirectStorePort) -> None:
        self._store = store

    def lookup(self, url: str) -> ResolveResult:
        record = self._store.find_static(url)
        if record is None:
            record = self._store.find_provider(url)
        if record is None:
            return ResolveResult()

        if not record.is_saved:
            logger.debug("Redirect for %s is %s, not actionable", url, record.state.name)
            return ResolveResult(record=record)

        # Never redirect a URL to itself
        target = record.new_url
        path_and_query = split_path_and_query(url)
        if target.lower() in (path_and_query.lower(), url.lower()):
            logger.info("Redirect for %s points at itself, ignoring", url)
            return ResolveResult(record=record)

        return ResolveResult(record=record, target=target)

    def resolve(self, url: str) -> str | None:
        """Live redirect target for url, or None."""
        return self.lookup(url).target


# --- Outcome Dispatcher ---


class NotFoundHandler:
    """
    Not-found interception engine.

    Stateless per request; settings are an immutable snapshot and the
    logging flag is read fresh through logging_mode on each miss.
    """

    def __init__(
        self,
        settings: OperatingSettings,
        store: RedirectStorePort,
        describe_failure: FailureDescriber,
        logging_mode: Callable[[], LoggerMode] = lambda: LoggerMode.ON,
        miss_logger: MissLoggerPort | None = None,
        is_local: LocalClientCheck = is_local_client,
    ) -> None:
        self._settings = settings
        self._resolver = RedirectResolver(store)
        self._describe = describe_failure
        self._logging_mode = logging_mode
        self._miss_logger = miss_logger
        self._is_local = is_local

    @property
    def settings(self) -> OperatingSettings:
        return self._settings

    @property
    def resolver(self) -> RedirectResolver:
        return self._resolver

    def is_enabled_for(self, ctx: RequestContext) -> bool:
        mode = self._settings.handler_mode
        if mode is HandlerMode.OFF:
            return False
        if mode is HandlerMode.REMOTE_ONLY:
            if self._is_local(ctx.client_host):
                logger.debug("Determined to be localhost, returning")
                return False
            logger.debug("Not localhost, handling error")
        return True

    def decide(self, ctx: RequestContext) -> InterceptionDecision:
        """Run the guards in order and choose the terminal outcome."""
        if not self.is_enabled_for(ctx):
            return InterceptionDecision.ignore(Outcome.DISABLED)

        if is_ignorable_resource(
            ctx.path,
            self._settings.ignored_extensions,
            case_insensitive=self._settings.case_insensitive_extensions,
        ):
            return InterceptionDecision.ignore(Outcome.IGNORED)

        if classify_failure(ctx, self._describe) is not Classification.GENUINE_NOT_FOUND:
            return InterceptionDecision.ignore(Outcome.NOT_APPLICABLE)

        if is_recursive(ctx, self._settings.fallback_page):
            return InterceptionDecision.ignore(Outcome.LOOP_DETECTED)

        result = self._resolver.lookup(ctx.url)
        if result.target is not None:
            logger.info("Redirecting %s to %s", ctx.path_and_query, result.target)
            return InterceptionDecision.redirect(result.target)

        logged = self._log_miss(ctx)
        fallback_url = build_fallback_url(self._settings.fallback_page, ctx.path_and_query)
        return InterceptionDecision.fallback(fallback_url, logged=logged)

    def _log_miss(self, ctx: RequestContext) -> bool:
        if self._miss_logger is None or self._logging_mode() is not LoggerMode.ON:
            return False
        site_url = self._settings.site_url or site_origin(ctx.url)
        self._miss_logger.log_request(
            ctx.path_and_query,
            normalize_referrer(ctx.referrer, site_url),
        )
        return True

    def handle(self, ctx: RequestContext, host: HostResponsePort) -> InterceptionDecision:
        """Decide and perform the single terminal action on the host."""
        decision = self.decide(ctx)
        perform_decision(decision, host)
        return decision


def perform_decision(decision: InterceptionDecision, host: HostResponsePort) -> None:
    if decision.action is Action.REDIRECT and decision.target is not None:
        host.redirect_permanent(decision.target)
    elif decision.action is Action.SHOW_FALLBACK and decision.target is not None:
        host.transfer(decision.target)
        # Keep the externally observed status a 404
        host.set_status(404)
