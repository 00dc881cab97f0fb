"""
Process-wide alert management controller shared by the management routers.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from typing import Optional

from services.management.controller import AlertManagementController
from services.monitoring.prometheus_client import PrometheusClient

_controller: Optional[AlertManagementController] = None


def get_controller() -> AlertManagementController:
    global _controller
    if _controller is None:
        _controller = AlertManagementController(prometheus_client=PrometheusClient())
    return _controller


async def shutdown_controller() -> None:
    global _controller
    if _controller is not None:
        await _controller.close()
        _controller = None
