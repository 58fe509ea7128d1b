"""
Failure classification - is this a genuine not-found?

Rules, in order:
1. Response status already 404: genuine, the captured error is not inspected
2. Captured error described by the host as route-not-found, file-not-found
   or an HTTP error carrying 404: genuine
3. Anything else, no error, or an error while describing it: not applicable
"""

from __future__ import annotations

import logging

from .models import (
    Classification,
    Failure,
    FailureKind,
    Inspection,
    RequestContext,
)
from .ports import FailureDescriber

logger = logging.getLogger(__name__)

NOT_FOUND_STATUS = 404


def inspect_failure(error: object | None, describe: FailureDescriber) -> Inspection:
    """Describe the captured error, capturing any failure to do so."""
    if error is None:
        return Inspection()
    try:
        return Inspection(failure=describe(error))
    except Exception as e:
        return Inspection(error=e)


def is_not_found_failure(failure: Failure | None) -> bool:
    if failure is None:
        return False
    if failure.kind in (FailureKind.ROUTE_NOT_FOUND, FailureKind.FILE_NOT_FOUND):
        return True
    if failure.kind is FailureKind.HTTP_STATUS:
        return failure.status_code == NOT_FOUND_STATUS
    return False


def classify_failure(ctx: RequestContext, describe: FailureDescriber) -> Classification:
    if ctx.status_code == NOT_FOUND_STATUS:
        return Classification.GENUINE_NOT_FOUND

    inspection = inspect_failure(ctx.captured_error, describe)
    if not inspection.ok:
        logger.debug("Unable to inspect not-found error for %s", ctx.url, exc_info=inspection.error)
        return Classification.NOT_APPLICABLE

    failure = inspection.failure
    if failure is not None and is_not_found_failure(failure):
        logger.info("404 %s - Url: %s", failure.kind.value, ctx.url)
        logger.debug("404 %s - Error: %r", failure.kind.value, ctx.captured_error)
        return Classification.GENUINE_NOT_FOUND

    return Classification.NOT_APPLICABLE
