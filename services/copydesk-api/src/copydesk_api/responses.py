"""Response envelope helpers."""

from __future__ import annotations

from typing import Any

from copydesk_schemas.primitives import utc_timestamp
from copydesk_schemas.responses import ApiResponse, ErrorResponse, MetaInfo


def build_meta() -> MetaInfo:
    """Return response metadata stamped with the current time."""
    return MetaInfo(timestamp=utc_timestamp(), request_id=None)


def success[ResponseData](data: ResponseData) -> ApiResponse[ResponseData]:
    """Wrap a payload in the success envelope.

    Args:
        data: Response payload.

    Returns:
        ApiResponse[ResponseData]: Envelope with ``error`` unset.
    """
    return ApiResponse[ResponseData](data=data, error=None, meta=build_meta())


def failure(error: ErrorResponse) -> dict[str, Any]:
    """Render an error envelope as JSON-ready data.

    Args:
        error: Error payload.

    Returns:
        dict[str, Any]: Envelope with ``data`` unset.
    """
    envelope = ApiResponse[None](data=None, error=error, meta=build_meta())
    return envelope.model_dump(mode="json")
