"""Application factory for the dockmap Falcon ASGI application.

Usage
-----
Create a health-only app::

    app = create_app()

Create the full app::

    from dockmap.api.app import AppDependencies, create_app

    app = create_app(AppDependencies(account_service=service))

"""

from __future__ import annotations

import dataclasses as dc
import typing as typ

import falcon.asgi

from dockmap.api.errors import register_error_handlers
from dockmap.api.health import HealthResource, ReadyResource

if typ.TYPE_CHECKING:
    from dockmap.accounts import AccountService

__all__ = ["AppDependencies", "create_app"]


@dc.dataclass(frozen=True, slots=True)
class AppDependencies:
    """Dependencies for the Falcon ASGI application.

    Attributes
    ----------
    account_service
        Service behind every ``/api`` route. When ``None`` only the health
        endpoints are registered.
    middleware
        Extra Falcon middleware, typically the lifespan component.

    """

    account_service: AccountService | None = None
    middleware: tuple[object, ...] = ()


def create_app(
    dependencies: AppDependencies | None = None,
) -> falcon.asgi.App:
    """Create and configure the Falcon ASGI application.

    Parameters
    ----------
    dependencies
        Optional application dependencies. When ``None``, only ``/health``
        and ``/ready`` are available.

    Returns
    -------
    falcon.asgi.App
        Configured Falcon ASGI application.

    """
    deps = dependencies or AppDependencies()
    app = falcon.asgi.App(middleware=list(deps.middleware))  # type: ignore[no-matching-overload]  # Falcon stubs

    app.add_route("/health", HealthResource())
    app.add_route("/ready", ReadyResource())

    service = deps.account_service
    if service is not None:
        from dockmap.api.accounts import (
            AccountResource,
            ConnectResource,
            DisconnectResource,
            SyncResource,
        )
        from dockmap.api.resources import (
            ActivityResource,
            HeatmapResource,
            ThemesResource,
        )

        app.add_route("/api/heatmap/{username}", HeatmapResource(service))
        app.add_route("/api/activity/{username}", ActivityResource(service))
        app.add_route("/api/themes", ThemesResource(service))
        app.add_route("/api/docker/connect", ConnectResource(service))
        app.add_route("/api/docker/account", AccountResource(service))
        app.add_route("/api/docker/disconnect", DisconnectResource(service))
        app.add_route("/api/docker/sync", SyncResource(service))

    register_error_handlers(app)
    return app
