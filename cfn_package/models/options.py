"""Packaging run options — the configuration record of one run."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator


class PackageOptions(BaseModel):
    """Options for a single packaging run.

    Parameters
    ----------
    bucket:
        Destination S3 bucket.
    prefix:
        Optional key prefix; keys become ``{prefix}/{logical_id}-{hash}``.
    template_file:
        Path of the template to package.
    basedir:
        Directory that relative artifact paths resolve against. Defaults to
        the template's directory.
    update_functions:
        Push new code to the deployed functions of ``stack_name`` after upload.
    stack_name:
        Stack to query for physical function names. Required with
        ``update_functions``.
    sign:
        Request signer used by the default AWS transports.
    logger:
        Logger receiving per-artifact progress messages.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True, populate_by_name=True)

    bucket: str
    prefix: str | None = None
    template_file: Path = Field(validation_alias=AliasChoices("template_file", "templateFile"))
    basedir: Path | None = None
    update_functions: bool = Field(
        default=False, validation_alias=AliasChoices("update_functions", "updateFunctions")
    )
    stack_name: str | None = Field(
        default=None, validation_alias=AliasChoices("stack_name", "stackName")
    )
    sign: Any = None
    logger: logging.Logger | None = None

    @model_validator(mode="after")
    def _check_stack_name(self) -> PackageOptions:
        if self.update_functions and not self.stack_name:
            raise ValueError("stack_name is required when update_functions is set")
        return self

    @property
    def template_dir(self) -> Path:
        return self.template_file.parent

    @property
    def base_dir(self) -> Path:
        """Directory artifact references are resolved against."""
        return self.basedir if self.basedir is not None else self.template_dir

    @property
    def run_logger(self) -> logging.Logger:
        return self.logger or logging.getLogger("cfn_package")
