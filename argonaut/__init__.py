"""Argonaut: a portal-side client for Argo Workflows."""

from .config import ArgonautConfig, load_config
from .errors import (
    ArgonautError,
    ConfigurationError,
    InternalError,
    InvalidInputError,
    NotFoundError,
    UnavailableError,
)
from .logs import get_log_strategy
from .models import (
    TemplateCatalog,
    Workflow,
    WorkflowOverview,
    WorkflowPhase,
    WorkflowStatistics,
    WorkflowStatus,
    WorkflowStep,
    WorkflowTemplate,
)
from .resources import get_resource_client
from .service import WorkflowService, build_service

__version__ = "0.1.0"
__all__ = [
    "ArgonautConfig",
    "ArgonautError",
    "ConfigurationError",
    "InternalError",
    "InvalidInputError",
    "NotFoundError",
    "TemplateCatalog",
    "UnavailableError",
    "Workflow",
    "WorkflowOverview",
    "WorkflowPhase",
    "WorkflowService",
    "WorkflowStatistics",
    "WorkflowStatus",
    "WorkflowStep",
    "WorkflowTemplate",
    "build_service",
    "get_log_strategy",
    "get_resource_client",
    "load_config",
]
