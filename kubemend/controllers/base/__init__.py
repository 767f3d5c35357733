"""Base controller classes."""

from kubemend.controllers.base.base_controller import (
    AsyncControllerMixin,
    BaseController,
    WorkerResult,
)

__all__ = ["AsyncControllerMixin", "BaseController", "WorkerResult"]
