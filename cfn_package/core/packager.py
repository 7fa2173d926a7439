"""Template packager — the top-level orchestrator of a packaging run.

A run moves through a strict state machine::

    idle -> loading -> planning -> executing -> done

and any of the three active states may end in ``failed``.

Tasks are never cancelled: when one fails, in-flight siblings finish and
their results are discarded.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Callable, Mapping
from contextlib import asynccontextmanager
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any

import httpx

from cfn_package.bridge.aws import (
    BotocoreSigner,
    CloudFormationStackDescriber,
    LambdaCodeUpdater,
    S3ObjectStorage,
)
from cfn_package.bridge.transport import (
    DependencyPacker,
    FunctionCodeUpdater,
    ObjectStorage,
    StackDescriber,
)
from cfn_package.config import Settings
from cfn_package.core.dependency_cache import CachedDependencyPacker
from cfn_package.core.packer import ArtifactPacker
from cfn_package.core.planner import ResourceTask, TaskContext, plan_resource_tasks
from cfn_package.core.stack_index import load_stack_index
from cfn_package.core.uploader import ConditionalUploader
from cfn_package.models.artifacts import UploadResult
from cfn_package.models.options import PackageOptions
from cfn_package.models.resources import StackResource
from cfn_package.templates import load_template

logger = logging.getLogger(__name__)


class PackagerState(str, Enum):
    """Lifecycle states of a packaging run."""

    IDLE = "idle"
    LOADING = "loading"
    PLANNING = "planning"
    EXECUTING = "executing"
    DONE = "done"
    FAILED = "failed"


# Terminal states (DONE, FAILED) have no outgoing transitions.
VALID_TRANSITIONS: dict[PackagerState, set[PackagerState]] = {
    PackagerState.IDLE: {PackagerState.LOADING},
    PackagerState.LOADING: {PackagerState.PLANNING, PackagerState.FAILED},
    PackagerState.PLANNING: {PackagerState.EXECUTING, PackagerState.FAILED},
    PackagerState.EXECUTING: {PackagerState.DONE, PackagerState.FAILED},
    PackagerState.DONE: set(),
    PackagerState.FAILED: set(),
}


class InvalidTransitionError(RuntimeError):
    """Raised when a packager is driven through an invalid state change."""


@dataclass(frozen=True)
class _Transports:
    storage: ObjectStorage
    describer: StackDescriber | None
    updater: FunctionCodeUpdater | None


class TemplatePackager:
    """Packages the local artifacts of one template.

    Parameters
    ----------
    options:
        Run options (bucket, template file, live-update settings ...).
    storage, describer, updater:
        Remote transports. AWS implementations sharing one HTTP client are
        created for any that are not supplied.
    dependency_packer:
        Packer for function directories. Defaults to a
        ``CachedDependencyPacker`` in ``settings.cache_dir``.
    settings:
        Environment-driven settings. Loaded from the environment if omitted.
    template_loader:
        Callable reading a template path into a mapping.
    """

    def __init__(
        self,
        options: PackageOptions,
        *,
        storage: ObjectStorage | None = None,
        describer: StackDescriber | None = None,
        updater: FunctionCodeUpdater | None = None,
        dependency_packer: DependencyPacker | None = None,
        settings: Settings | None = None,
        template_loader: Callable[[Path], dict[str, Any]] = load_template,
    ) -> None:
        self.options = options
        self.settings = settings or Settings()
        self._storage = storage
        self._describer = describer
        self._updater = updater
        self._dependency_packer = dependency_packer or CachedDependencyPacker(
            self.settings.resolved_cache_dir, self.settings.manifest_name
        )
        self._template_loader = template_loader

        self.state = PackagerState.IDLE
        self.results: list[UploadResult] = []

    # ------------------------------------------------------------------
    # State machine
    # ------------------------------------------------------------------

    def _transition(self, target: PackagerState) -> None:
        if target not in VALID_TRANSITIONS[self.state]:
            raise InvalidTransitionError(
                f"Invalid packager transition: {self.state.value} -> {target.value}"
            )
        logger.debug("Packager %s -> %s", self.state.value, target.value)
        self.state = target

    # ------------------------------------------------------------------
    # Run
    # ------------------------------------------------------------------

    async def run(self) -> dict[str, Any]:
        """Execute the run and return the mutated template.

        Raises the first error encountered; no template is returned on failure.
        """
        self._transition(PackagerState.LOADING)
        try:
            async with self._open_transports() as transports:
                # Both arms settle before the transports close.
                loaded = await asyncio.gather(
                    asyncio.to_thread(self._template_loader, self.options.template_file),
                    self._load_stack_index(transports),
                    return_exceptions=True,
                )
                for outcome in loaded:
                    if isinstance(outcome, BaseException):
                        raise outcome
                template, stack_index = loaded

                self._transition(PackagerState.PLANNING)
                tasks = plan_resource_tasks(
                    template.get("Resources"),
                    base_dir=self.options.base_dir,
                    update_functions=self.options.update_functions,
                )

                self._transition(PackagerState.EXECUTING)
                context = TaskContext(
                    packer=ArtifactPacker(self._dependency_packer),
                    uploader=ConditionalUploader(
                        transports.storage,
                        self.options.bucket,
                        self.options.prefix,
                        run_logger=self.options.run_logger,
                    ),
                    updater=transports.updater if self.options.update_functions else None,
                    stack_index=stack_index,
                    run_logger=self.options.run_logger,
                )
                self.results = await self._execute(tasks, context)
        except BaseException:
            self._transition(PackagerState.FAILED)
            raise

        self._transition(PackagerState.DONE)
        return template

    def run_sync(self) -> dict[str, Any]:
        """Blocking variant of ``run`` for callers without an event loop."""
        return asyncio.run(self.run())

    async def _load_stack_index(self, transports: _Transports) -> Mapping[str, StackResource]:
        if not self.options.update_functions:
            return {}
        if transports.describer is None:
            raise RuntimeError("Live update mode requires a stack describer")
        return await load_stack_index(transports.describer, self.options.stack_name or "")

    async def _execute(self, tasks: list[ResourceTask], context: TaskContext) -> list[UploadResult]:
        """Run all tasks concurrently; wait for every one, raise the first error."""
        pending = [
            asyncio.create_task(
                task.run(context), name=f"package:{task.logical_id}.{task.property_name}"
            )
            for task in tasks
        ]

        results: list[UploadResult] = []
        first_error: BaseException | None = None
        for next_done in asyncio.as_completed(pending):
            try:
                results.append(await next_done)
            except Exception as exc:
                if first_error is None:
                    first_error = exc
                else:
                    logger.debug("Discarding later task error: %s", exc)

        if first_error is not None:
            raise first_error
        return results

    # ------------------------------------------------------------------
    # Transports
    # ------------------------------------------------------------------

    def _needs_default_transports(self) -> bool:
        if self._storage is None:
            return True
        return self.options.update_functions and (self._describer is None or self._updater is None)

    @asynccontextmanager
    async def _open_transports(self) -> AsyncIterator[_Transports]:
        if not self._needs_default_transports():
            yield _Transports(self._storage, self._describer, self._updater)
            return

        signer = self.options.sign or BotocoreSigner(region=self.settings.region)
        region = self.settings.region
        async with httpx.AsyncClient(timeout=self.settings.http_timeout_seconds) as client:
            storage = self._storage or S3ObjectStorage(
                signer, client, region=region, endpoint_url=self.settings.s3_endpoint_url
            )
            describer = self._describer
            updater = self._updater
            if self.options.update_functions:
                describer = describer or CloudFormationStackDescriber(
                    signer, client, region=region,
                    endpoint_url=self.settings.cloudformation_endpoint_url,
                )
                updater = updater or LambdaCodeUpdater(
                    signer, client, region=region,
                    endpoint_url=self.settings.lambda_endpoint_url,
                )
            yield _Transports(storage, describer, updater)


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------


def _coerce_options(options: PackageOptions | Mapping[str, Any]) -> PackageOptions:
    if isinstance(options, PackageOptions):
        return options
    return PackageOptions.model_validate(dict(options))


async def package_template(
    options: PackageOptions | Mapping[str, Any], **kwargs: Any
) -> dict[str, Any]:
    """Package a template and return it with artifact references rewritten.

    Extra keyword arguments are forwarded to ``TemplatePackager``.
    """
    packager = TemplatePackager(_coerce_options(options), **kwargs)
    return await packager.run()


def package_template_sync(
    options: PackageOptions | Mapping[str, Any],
    callback: Callable[[Exception | None, dict[str, Any] | None], None] | None = None,
    **kwargs: Any,
) -> dict[str, Any] | None:
    """Blocking wrapper around ``package_template``.

    Without *callback* the template is returned and errors are raised. With
    *callback* it is called exactly once, as ``callback(None, template)`` or
    ``callback(error, None)``.
    """
    if callback is None:
        return asyncio.run(package_template(options, **kwargs))

    try:
        template = asyncio.run(package_template(options, **kwargs))
    except Exception as exc:
        callback(exc, None)
        return None
    callback(None, template)
    return template
