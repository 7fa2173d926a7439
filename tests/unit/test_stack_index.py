"""Tests for the live stack index and function code updates."""

from __future__ import annotations

import asyncio
from collections.abc import Callable

import pytest

from cfn_package.core.errors import (
    ConsistencyError,
    FunctionUpdateError,
    ResourceNotFoundError,
    TransportError,
    UnexpectedStatusError,
)
from cfn_package.core.stack_index import (
    load_stack_index,
    resolve_physical_id,
    update_function_code,
)
from cfn_package.models.resources import StackResource

RESOURCES = [
    StackResource(logical_id="Fn", physical_id="prod-Fn-1A2B3C", resource_type="AWS::Lambda::Function"),
    StackResource(logical_id="Table", physical_id="prod-Table-XYZ", resource_type="AWS::DynamoDB::Table"),
]


class TestLoadStackIndex:
    def test_indexes_by_logical_id(self, make_describer: Callable):
        describer = make_describer(RESOURCES)
        index = asyncio.run(load_stack_index(describer, "prod"))
        assert describer.calls == ["prod"]
        assert set(index) == {"Fn", "Table"}
        assert index["Fn"].physical_id == "prod-Fn-1A2B3C"

    def test_propagates_describe_failure(self, make_describer: Callable):
        describer = make_describer(error=UnexpectedStatusError("CloudFormation", 400, "Stack does not exist"))
        with pytest.raises(UnexpectedStatusError):
            asyncio.run(load_stack_index(describer, "missing"))


class TestResolvePhysicalId:
    def test_known(self):
        index = {r.logical_id: r for r in RESOURCES}
        assert resolve_physical_id(index, "Fn") == "prod-Fn-1A2B3C"

    def test_unknown_is_consistency_error(self):
        with pytest.raises(ResourceNotFoundError) as excinfo:
            resolve_physical_id({}, "Ghost")
        assert excinfo.value.logical_id == "Ghost"
        assert isinstance(excinfo.value, ConsistencyError)
        assert not isinstance(excinfo.value, TransportError)
        assert "Ghost" in str(excinfo.value)

    def test_empty_physical_id_is_not_found(self):
        index = {"Fn": StackResource(logical_id="Fn", physical_id="")}
        with pytest.raises(ResourceNotFoundError):
            resolve_physical_id(index, "Fn")


class TestUpdateFunctionCode:
    def test_calls_updater_with_full_physical_id(self, make_updater: Callable):
        updater = make_updater()
        index = {r.logical_id: r for r in RESOURCES}
        name = asyncio.run(update_function_code(updater, index, "Fn", "bucket", "Fn-abc"))
        assert name == "prod-Fn-1A2B3C"
        assert updater.calls == [("prod-Fn-1A2B3C", "bucket", "Fn-abc")]

    def test_failure_is_labelled(self, make_updater: Callable):
        cause = UnexpectedStatusError("Lambda", 404, "ResourceNotFoundException")
        updater = make_updater(error=cause)
        index = {r.logical_id: r for r in RESOURCES}
        with pytest.raises(FunctionUpdateError) as excinfo:
            asyncio.run(update_function_code(updater, index, "Fn", "bucket", "Fn-abc"))
        assert excinfo.value.function_name == "prod-Fn-1A2B3C"
        assert excinfo.value.__cause__ is cause
        assert not isinstance(excinfo.value, TransportError)

    def test_missing_resource_skips_updater(self, make_updater: Callable):
        updater = make_updater()
        with pytest.raises(ResourceNotFoundError):
            asyncio.run(update_function_code(updater, {}, "Fn", "bucket", "Fn-abc"))
        assert updater.calls == []
