"""
Routers for alert management endpoints: alerting rules inside shared PrometheusRule documents and relabel configs inside AlertRelabelConfig documents.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from .alerting_rules import router as alerting_rules_router
from .relabel_configs import router as relabel_configs_router

__all__ = [
    "alerting_rules_router",
    "relabel_configs_router",
]
