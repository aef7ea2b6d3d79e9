"""Router that serves every path with and without a trailing slash."""

from typing import Any, Callable

from fastapi import APIRouter
from fastapi.types import DecoratedCallable


class TrailingSlashRouter(APIRouter):
    """Registers each endpoint under both ``/path`` and ``/path/``.

    Only the variant without the slash appears in the OpenAPI schema, so
    clients never get a redirect and the schema stays free of duplicates.

    Examples:
        @router.get("") - responds to the router prefix with and without a slash

        @router.post("/webhook") - documented as /webhook, also answers /webhook/
    """

    def api_route(
        self, path: str, *, include_in_schema: bool = True, **kwargs: Any
    ) -> Callable[[DecoratedCallable], DecoratedCallable]:
        """Register both slash and non-slash versions of a route.

        Args:
            path (str): The path for the endpoint
            include_in_schema (bool): Whether to include the route in the OpenAPI schema
            **kwargs: Additional arguments to pass to the parent api_route method

        Returns:
            Callable[[DecoratedCallable], DecoratedCallable]: The registering decorator.
        """
        path = path.rstrip("/")

        add_path = super().api_route(path, include_in_schema=include_in_schema, **kwargs)
        add_slash_path = super().api_route(path + "/", include_in_schema=False, **kwargs)

        def decorator(func: DecoratedCallable) -> DecoratedCallable:
            add_slash_path(func)
            return add_path(func)

        return decorator
