"""DRF exception handler that renders domain errors."""

from __future__ import annotations

import logging

from rest_framework import status  # type: ignore
from rest_framework.response import Response  # type: ignore
from rest_framework.views import exception_handler as drf_exception_handler  # type: ignore

from shared.domain.exceptions import DomainError, InternalError

logger = logging.getLogger(__name__)


def domain_exception_handler(exc, context):  # type: ignore
    """Map domain errors onto HTTP responses, fall back to DRF for the rest."""

    if isinstance(exc, DomainError):
        if exc.status_code >= 500:
            logger.error(f"Internal error in {_view_name(context)}: {exc.message}", exc_info=exc)
        else:
            logger.info(f"{exc.__class__.__name__} in {_view_name(context)}: {exc.message}")
        return Response(exc.to_dict(), status=exc.status_code)

    response = drf_exception_handler(exc, context)
    if response is not None:
        return response

    logger.exception(f"Unhandled error in {_view_name(context)}: {exc}")
    return Response(InternalError().to_dict(), status=status.HTTP_500_INTERNAL_SERVER_ERROR)


def _view_name(context) -> str:  # type: ignore
    view = context.get("view") if context else None
    return view.__class__.__name__ if view is not None else "unknown view"
