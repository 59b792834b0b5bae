"""Timeout-bounded HTTP calls that report failures as data."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable
from dataclasses import dataclass
from typing import Generic, TypeVar

import httpx

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_TIMEOUT = 5.0


@dataclass
class ApiResult(Generic[T]):
    """Either ``data`` or a sanitized ``error`` message."""
    data: T | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class UpstreamError(Exception):
    """An upstream API answered, but not with usable data."""


async def safe_api_call(
    call: Awaitable[T], context: str, timeout: float = DEFAULT_TIMEOUT
) -> ApiResult[T]:
    """Await ``call`` within ``timeout`` seconds.

    Exceptions are logged and reduced to a short message naming ``context``;
    status codes, URLs and tracebacks stay out of the result. Only the text
    of an UpstreamError, which callers word themselves, is passed on.
    """
    try:
        return ApiResult(data=await asyncio.wait_for(call, timeout))
    except (asyncio.TimeoutError, httpx.TimeoutException):
        return ApiResult(
            error=f"{context} did not respond within {timeout:g} seconds. Try again."
        )
    except UpstreamError as e:
        return ApiResult(error=f"{context} error: {e}")
    except httpx.ConnectError as e:
        logger.debug("%s connection failed", context, exc_info=e)
        return ApiResult(error=f"{context}: Service temporarily unavailable")
    except Exception as e:
        logger.debug("%s call failed", context, exc_info=e)
        return ApiResult(error=f"{context}: Request failed")
