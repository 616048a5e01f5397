"""Instantiate workflows from (cluster) workflow templates."""

from __future__ import annotations

import copy
import logging
import re
from typing import Any, Dict, List, Mapping, Optional

from .errors import InvalidInputError
from .models import Workflow
from .resources import (
    CLUSTER_WORKFLOW_TEMPLATES,
    WORKFLOW_TEMPLATES,
    WORKFLOWS,
    RawResource,
    ResourceClient,
)
from .transform import transform_or_raise, transform_workflow

logger = logging.getLogger(__name__)

TEMPLATE_LABEL = "workflows.argoproj.io/workflow-template"
CLUSTER_TEMPLATE_LABEL = "workflows.argoproj.io/cluster-workflow-template"
MANAGED_BY_LABEL = "app.kubernetes.io/managed-by"
MANAGED_BY_VALUE = "argonaut"

_DNS_SUBDOMAIN = re.compile(r"^[a-z0-9]([-a-z0-9]*[a-z0-9])?(\.[a-z0-9]([-a-z0-9]*[a-z0-9])?)*$")


def validate_template_name(template_name: Any) -> str:
    if not isinstance(template_name, str) or not template_name:
        raise InvalidInputError("templateName is required")
    if len(template_name) > 253 or not _DNS_SUBDOMAIN.match(template_name):
        raise InvalidInputError(f"Invalid template name: {template_name!r}")
    return template_name


def merge_arguments(
    template_parameters: Any, parameters: Mapping[str, Any]
) -> List[Dict[str, Any]]:
    """Overlay caller values on the template's parameters.

    Template parameters keep their order and extra fields; caller
    parameters the template does not declare are appended. All values are
    stringified. A template parameter with neither a default nor a caller
    value is rejected.
    """
    for name in parameters:
        if not isinstance(name, str) or not name:
            raise InvalidInputError(f"Invalid parameter name: {name!r}")

    merged: List[Dict[str, Any]] = []
    declared = set()
    missing = []
    for item in template_parameters if isinstance(template_parameters, list) else []:
        if not isinstance(item, Mapping) or not item.get("name"):
            continue
        entry = copy.deepcopy(dict(item))
        name = str(entry["name"])
        declared.add(name)
        if name in parameters:
            entry["value"] = str(parameters[name])
        elif "value" not in entry and "valueFrom" not in entry:
            missing.append(name)
        merged.append(entry)

    if missing:
        raise InvalidInputError(f"Missing required parameters: {', '.join(missing)}")

    merged.extend(
        {"name": name, "value": str(value)}
        for name, value in parameters.items()
        if name not in declared
    )
    return merged


def build_workflow_body(
    template: RawResource,
    template_name: str,
    parameters: Optional[Mapping[str, Any]] = None,
    namespace: Optional[str] = None,
    cluster_scope: bool = False,
) -> RawResource:
    """Construct the Workflow resource body for a template instantiation."""
    spec = template.get("spec")
    spec = copy.deepcopy(dict(spec)) if isinstance(spec, Mapping) else {}

    arguments = spec.get("arguments")
    arguments = dict(arguments) if isinstance(arguments, Mapping) else {}
    arguments["parameters"] = merge_arguments(arguments.get("parameters"), parameters or {})
    spec["arguments"] = arguments

    metadata: Dict[str, Any] = {
        "generateName": f"{template_name}-",
        "labels": {
            CLUSTER_TEMPLATE_LABEL if cluster_scope else TEMPLATE_LABEL: template_name,
            MANAGED_BY_LABEL: MANAGED_BY_VALUE,
        },
    }
    if namespace:
        metadata["namespace"] = namespace

    return {
        "apiVersion": WORKFLOWS.api_version,
        "kind": WORKFLOWS.kind,
        "metadata": metadata,
        "spec": spec,
    }


class SubmissionBuilder:
    """Creates workflows from templates with server-generated names."""

    def __init__(self, resource_client: ResourceClient) -> None:
        self._resources = resource_client

    async def fetch_template(
        self, template_name: str, namespace: str, cluster_scope: bool = False
    ) -> RawResource:
        if cluster_scope:
            return await self._resources.get_cluster(CLUSTER_WORKFLOW_TEMPLATES, template_name)
        return await self._resources.get_namespaced(WORKFLOW_TEMPLATES, namespace, template_name)

    async def submit(
        self,
        template_name: str,
        parameters: Optional[Mapping[str, Any]],
        namespace: str,
        cluster_scope: bool = False,
    ) -> Workflow:
        """Create a workflow from ``template_name`` and return it.

        Args:
            template_name: Name of the WorkflowTemplate (or ClusterWorkflowTemplate).
            parameters: Argument values; empty or ``None`` keeps template defaults.
            namespace: Namespace to create the workflow in.
            cluster_scope: Resolve ``template_name`` as a cluster-scoped template.

        Raises:
            InvalidInputError: The template name or parameters are invalid.
            NotFoundError: The template does not exist.
        """
        validate_template_name(template_name)
        if parameters is not None and not isinstance(parameters, Mapping):
            raise InvalidInputError("parameters must be a mapping of names to values")

        template = await self.fetch_template(template_name, namespace, cluster_scope)
        body = build_workflow_body(template, template_name, parameters, namespace, cluster_scope)
        try:
            created = await self._resources.create_namespaced(WORKFLOWS, namespace, body)
        except Exception as exc:
            logger.error(f"Failed to submit workflow from template {template_name}: {exc}")
            raise

        workflow = transform_or_raise(transform_workflow, created)
        logger.info(
            f"Submitted workflow {namespace}/{workflow.name} from template {template_name}"
        )
        return workflow
