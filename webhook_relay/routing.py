import os
import pkgutil
from importlib import import_module

from fastapi import APIRouter

from webhook_relay.logging import logger

# Track registered modules to prevent duplicate logging
_registered_http_modules: set[str] = set()
_registered_ws_modules: set[str] = set()


def _include_package_routers(
    main_router: APIRouter, package_dir: str, package: str, registered: set[str], kind: str
) -> None:
    for _, module, _ in pkgutil.iter_modules([package_dir]):
        imported = import_module(f".{module}", package=package)
        main_router.include_router(imported.router)

        # Only log on first registration
        if module not in registered:
            logger.info(f'Register "{module}" {kind}')
            registered.add(module)


def collect_subrouters() -> APIRouter:
    """
    Collects and registers all HTTP and WebSocket routers for the application.

    Every module under `api/http` and `api/ws/consumers` is imported and its
    module-level `router` is included in the returned main router, so adding
    an endpoint only takes a new module.
    """
    main_router: APIRouter = APIRouter()

    app_dir = os.path.dirname(__file__)
    app_name = os.path.basename(app_dir)

    _include_package_routers(
        main_router,
        f"{app_dir}/api/http",
        f"{app_name}.api.http",
        _registered_http_modules,
        "api",
    )
    _include_package_routers(
        main_router,
        f"{app_dir}/api/ws/consumers",
        f"{app_name}.api.ws.consumers",
        _registered_ws_modules,
        "websocket consumer",
    )

    return main_router
