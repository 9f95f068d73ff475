"""Control application factory for the run command.

This module provides a factory function for creating the in-process
FastAPI control application that exposes supervisor control endpoints.
"""

import contextlib
from typing import TYPE_CHECKING

import uvicorn
from fastapi import FastAPI

from botmanager.supervisor import create_control_router

if TYPE_CHECKING:
    from collections.abc import Generator

    from botmanager.supervisor import ShutdownCoordinator, Supervisor


def create_control_app(
    supervisor: "Supervisor",  # noqa: UP037
    coordinator: "ShutdownCoordinator",  # noqa: UP037
) -> FastAPI:
    """Create the FastAPI control application.

    Args:
        supervisor: The Supervisor instance to control.
        coordinator: The ShutdownCoordinator used for the shutdown endpoint.

    Returns:
        A FastAPI application with supervisor control endpoints.
    """
    app = FastAPI(
        title="Bot Manager Control",
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )

    control_router = create_control_router(supervisor, coordinator)
    app.include_router(control_router)

    return app


class ControlServer(uvicorn.Server):
    """Uvicorn server that leaves SIGINT and SIGTERM to the supervisor."""

    @contextlib.contextmanager
    def capture_signals(self) -> "Generator[None]":  # noqa: UP037
        yield


def create_control_server(app: FastAPI, port: int) -> ControlServer:
    """Create the uvicorn server for the control application, bound to localhost."""
    uvicorn_config = uvicorn.Config(
        app=app,
        host="127.0.0.1",
        port=port,
        log_level="warning",
        access_log=False,
    )
    return ControlServer(uvicorn_config)
