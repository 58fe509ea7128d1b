"""
Not-found component - interception of failed requests.

Invariants:
- I1: Handler mode Off means no action for any request
- I2: Ignored resource extensions are never intercepted, even on 404
- I3: Re-entry requests (query starting "404;") and requests for the
      fallback page itself are never intercepted
- I4: A redirect is issued only for a SAVED record whose target differs
      from the failed path+query
- I5: At most one terminal action per request
"""

from __future__ import annotations

from ._impl import NotFoundHandler, RedirectResolver, _local_addresses, is_local_client
from .models import (
    HandlerMode,
    HandleNotFoundInput,
    HandleNotFoundOutput,
    ResolveRedirectInput,
    ResolveRedirectOutput,
)
from .ports import (
    FailureDescriber,
    HostResponsePort,
    LocalClientCheck,
    MissLoggerPort,
    RedirectStorePort,
)
from .settings import SettingsResolver


def create_not_found_handler(
    settings: SettingsResolver,
    store: RedirectStorePort,
    describe_failure: FailureDescriber,
    miss_logger: MissLoggerPort | None = None,
    is_local: LocalClientCheck = is_local_client,
) -> NotFoundHandler:
    """
    Create a NotFoundHandler from a settings resolver.

    The settings snapshot is taken once here; the logging flag stays
    bound to the resolver so it is re-read on every miss.
    """
    snapshot = settings.snapshot()
    if snapshot.handler_mode is HandlerMode.REMOTE_ONLY and is_local is is_local_client:
        # Resolve own addresses at startup, not on the first request
        _local_addresses()
    return NotFoundHandler(
        settings=snapshot,
        store=store,
        describe_failure=describe_failure,
        logging_mode=settings.logging_mode,
        miss_logger=miss_logger,
        is_local=is_local,
    )


# --- Component Entry Points ---


def run_handle(
    inp: HandleNotFoundInput,
    *,
    handler: NotFoundHandler,
    host: HostResponsePort | None = None,
) -> HandleNotFoundOutput:
    """
    Decide what to do with a failed request.

    Args:
        inp: Input containing the request context.
        handler: Configured interception engine.
        host: Optional host pipeline; when given the decision is performed on it.

    Returns:
        HandleNotFoundOutput with the decision taken.
    """
    if host is None:
        decision = handler.decide(inp.context)
    else:
        decision = handler.handle(inp.context, host)

    return HandleNotFoundOutput(decision=decision, success=True)


def run_resolve(
    inp: ResolveRedirectInput,
    *,
    store: RedirectStorePort,
) -> ResolveRedirectOutput:
    """
    Look up the live redirect target for a URL.

    Args:
        inp: Input containing the absolute URL.
        store: Redirect store port.

    Returns:
        ResolveRedirectOutput with the target (None when no live redirect).
    """
    result = RedirectResolver(store).lookup(inp.url)
    return ResolveRedirectOutput(
        target=result.target,
        matched=result.matched,
        success=True,
    )


def run(
    inp: HandleNotFoundInput | ResolveRedirectInput,
    *,
    handler: NotFoundHandler,
    host: HostResponsePort | None = None,
) -> HandleNotFoundOutput | ResolveRedirectOutput:
    """
    Main entry point for the not-found component.

    Dispatches to appropriate handler based on input type.
    """
    if isinstance(inp, HandleNotFoundInput):
        return run_handle(inp, handler=handler, host=host)
    elif isinstance(inp, ResolveRedirectInput):
        result = handler.resolver.lookup(inp.url)
        return ResolveRedirectOutput(target=result.target, matched=result.matched)
    else:
        raise ValueError(f"Unknown input type: {type(inp)}")
