"""Default classification of failures escaping the pipeline."""

import logging
from typing import Optional

from ..core.context import TIMEOUT_BAG_KEY, Context
from ..core.request import Request
from ..core.response import TransportResult
from ..core.signals import AbortError
from ..exceptions import RequestError

logger = logging.getLogger(__name__)


def is_abort_error(error: BaseException) -> bool:
    return isinstance(error, AbortError)


class DefaultErrorMapper:
    """Map any exception to a :class:`RequestError`.

    Precedence: already-typed errors pass through, then the context's timeout
    flag, then abort-style errors, then a generic network error. The timeout
    flag is what separates a timer-driven abort from a caller's cancellation,
    as both surface as the same :class:`AbortError`.
    """

    def map(
        self,
        error: BaseException,
        request: Request,
        ctx: Context,
        result: Optional[TransportResult] = None,
    ) -> Exception:
        if isinstance(error, RequestError):
            return error
        if ctx.bag.get(TIMEOUT_BAG_KEY) is True:
            return RequestError.timeout(cause=error)
        if is_abort_error(error):
            return RequestError.canceled(cause=error)
        logger.debug(
            "Classifying %s as network error for %s %s",
            type(error).__name__,
            request.method,
            request.url,
        )
        return RequestError.network(cause=error)
