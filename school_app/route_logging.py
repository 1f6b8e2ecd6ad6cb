from __future__ import annotations

from fastapi.routing import APIRoute
from starlette.requests import Request

from school_app.request_context import current_endpoint


class EndpointNameRoute(APIRoute):
    """Tags every query issued while serving a route with `METHOD /path` for the slow-query log."""

    def get_route_handler(self):
        original_handler = super().get_route_handler()

        async def custom_handler(request: Request):
            token = current_endpoint.set(f'{request.method} {self.path}')
            try:
                return await original_handler(request)
            finally:
                current_endpoint.reset(token)

        return custom_handler
