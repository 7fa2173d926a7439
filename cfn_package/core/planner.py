"""Resource task planner — decides which template resources get packaged.

For every entry in ``Resources``:

1. In live-update mode, anything that is not a function is skipped.
2. Types without artifact properties are skipped.
3. Resources without ``Properties`` are skipped; non-mapping ``Properties``
   are a structural error.
4. Property values that are missing, not strings, or already remote are
   skipped.
5. Everything else becomes one ``ResourceTask``.

The whole resource map is validated before any task is returned, so a
structural error never leaves a partially uploaded template behind.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, MutableMapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from cfn_package.bridge.transport import FunctionCodeUpdater
from cfn_package.core.errors import StructuralError
from cfn_package.core.hasher import is_remote_location, md5_hex
from cfn_package.core.packer import ArtifactPacker
from cfn_package.core.stack_index import update_function_code
from cfn_package.core.uploader import ConditionalUploader
from cfn_package.models.artifacts import UploadResult
from cfn_package.models.resources import (
    ARTIFACT_PROPERTIES,
    FUNCTION_TYPES,
    ResourceType,
    StackResource,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TaskContext:
    """Collaborators shared by all tasks of one run."""

    packer: ArtifactPacker
    uploader: ConditionalUploader
    updater: FunctionCodeUpdater | None = None
    stack_index: Mapping[str, StackResource] = field(default_factory=dict)
    run_logger: logging.Logger = logger


@dataclass(frozen=True)
class ResourceTask:
    """Packs and uploads one artifact property of one resource.

    ``properties`` is the resource's own ``Properties`` mapping from the
    template; the task rewrites ``properties[property_name]`` on success and
    touches nothing else.
    """

    logical_id: str
    resource_type: ResourceType
    property_name: str
    artifact_path: Path
    properties: MutableMapping[str, Any] = field(repr=False, compare=False)

    async def run(self, context: TaskContext) -> UploadResult:
        artifact = await context.packer.pack(self.artifact_path, self.resource_type)
        fingerprint = md5_hex(artifact.body)
        outcome = await context.uploader.upload(self.logical_id, artifact, fingerprint)

        self.properties[self.property_name] = outcome.location

        function_updated = False
        if outcome.uploaded and context.updater is not None:
            await update_function_code(
                context.updater,
                context.stack_index,
                self.logical_id,
                context.uploader.bucket,
                outcome.key,
                run_logger=context.run_logger,
            )
            function_updated = True

        return UploadResult(
            logical_id=self.logical_id,
            property_name=self.property_name,
            artifact_path=self.artifact_path,
            key=outcome.key,
            location=outcome.location,
            uploaded=outcome.uploaded,
            function_updated=function_updated,
        )


def plan_resource_tasks(
    resources: Any,
    *,
    base_dir: Path,
    update_functions: bool = False,
) -> list[ResourceTask]:
    """Build the task list for a template's ``Resources`` mapping.

    Raises
    ------
    StructuralError
        If ``resources`` or a resource's ``Properties`` is not a mapping.
    """
    if not isinstance(resources, Mapping):
        raise StructuralError("Resources must be an object.")

    tasks: list[ResourceTask] = []
    for logical_id, resource in resources.items():
        if not isinstance(resource, Mapping):
            raise StructuralError(f"Resources.{logical_id} must be an object.")

        resource_type = ResourceType.lookup(resource.get("Type"))
        if resource_type is None:
            continue
        if update_functions and resource_type not in FUNCTION_TYPES:
            continue

        properties = resource.get("Properties")
        if properties is None:
            continue
        if not isinstance(properties, MutableMapping):
            raise StructuralError(f"Resources.{logical_id}.Properties must be an object.")

        for property_name in ARTIFACT_PROPERTIES[resource_type]:
            value = properties.get(property_name)
            if not isinstance(value, str) or is_remote_location(value):
                continue
            tasks.append(ResourceTask(
                logical_id=logical_id,
                resource_type=resource_type,
                property_name=property_name,
                artifact_path=(base_dir / value).resolve(),
                properties=properties,
            ))

    logger.debug("Planned %d artifact tasks from %d resources", len(tasks), len(resources))
    return tasks
