"""Live stack resource index and in-place function code updates."""

from __future__ import annotations

import logging
from collections.abc import Mapping

from cfn_package.bridge.transport import FunctionCodeUpdater, StackDescriber
from cfn_package.core.errors import FunctionUpdateError, ResourceNotFoundError
from cfn_package.models.resources import StackResource

logger = logging.getLogger(__name__)


async def load_stack_index(describer: StackDescriber, stack_name: str) -> dict[str, StackResource]:
    """Map logical resource ids of *stack_name* to their live descriptors."""
    resources = await describer.describe_stack_resources(stack_name)
    index = {resource.logical_id: resource for resource in resources}
    logger.debug("Loaded %d live resources of stack %s", len(index), stack_name)
    return index


def resolve_physical_id(index: Mapping[str, StackResource], logical_id: str) -> str:
    """Return the physical id of *logical_id*.

    Raises
    ------
    ResourceNotFoundError
        If the live stack has no resource with that logical id.
    """
    resource = index.get(logical_id)
    if resource is None or not resource.physical_id:
        raise ResourceNotFoundError(logical_id)
    return resource.physical_id


async def update_function_code(
    updater: FunctionCodeUpdater,
    index: Mapping[str, StackResource],
    logical_id: str,
    bucket: str,
    key: str,
    *,
    run_logger: logging.Logger | None = None,
) -> str:
    """Point the deployed function behind *logical_id* at ``s3://bucket/key``.

    Returns the function name. Updater failures are reported as
    ``FunctionUpdateError`` chained to the underlying error.
    """
    function_name = resolve_physical_id(index, logical_id)
    try:
        await updater.update_function_code(function_name, bucket, key)
    except Exception as exc:
        raise FunctionUpdateError(function_name) from exc
    (run_logger or logger).info("Function %s updated", function_name)
    return function_name
