"""Request-scoped dependency helpers."""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request

from copydesk_api.services import AppServices


def get_services(request: Request) -> AppServices:
    """Return the components attached to the running application."""
    return request.app.state.services


Services = Annotated[AppServices, Depends(get_services)]
