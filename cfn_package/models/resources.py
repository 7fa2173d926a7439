"""Resource-type lookup table and live stack resource models."""

from __future__ import annotations

from enum import Enum
from types import MappingProxyType
from typing import Any

from pydantic import BaseModel, ConfigDict


class ResourceType(str, Enum):
    """Resource types that may carry a local artifact reference."""

    SERVERLESS_FUNCTION = "AWS::Serverless::Function"
    SERVERLESS_API = "AWS::Serverless::Api"
    SERVERLESS_LAYER_VERSION = "AWS::Serverless::LayerVersion"
    SERVERLESS_STATE_MACHINE = "AWS::Serverless::StateMachine"
    APIGATEWAY_REST_API = "AWS::ApiGateway::RestApi"
    LAMBDA_FUNCTION = "AWS::Lambda::Function"
    LAMBDA_LAYER_VERSION = "AWS::Lambda::LayerVersion"
    APPSYNC_GRAPHQL_SCHEMA = "AWS::AppSync::GraphQLSchema"
    APPSYNC_RESOLVER = "AWS::AppSync::Resolver"
    ELASTICBEANSTALK_APPLICATION_VERSION = "AWS::ElasticBeanstalk::ApplicationVersion"
    STEPFUNCTIONS_STATE_MACHINE = "AWS::StepFunctions::StateMachine"
    CLOUDFORMATION_STACK = "AWS::CloudFormation::Stack"
    INCLUDE = "AWS::Include"

    @classmethod
    def lookup(cls, value: Any) -> ResourceType | None:
        """Return the member for a template ``Type`` value, or None."""
        try:
            return cls(value)
        except ValueError:
            return None


# Artifact-bearing property names per resource type. AppSync resolvers
# carry two independent mapping templates.
ARTIFACT_PROPERTIES: MappingProxyType[ResourceType, tuple[str, ...]] = MappingProxyType({
    ResourceType.SERVERLESS_FUNCTION: ("CodeUri",),
    ResourceType.SERVERLESS_API: ("DefinitionUri",),
    ResourceType.SERVERLESS_LAYER_VERSION: ("ContentUri",),
    ResourceType.SERVERLESS_STATE_MACHINE: ("DefinitionUri",),
    ResourceType.APIGATEWAY_REST_API: ("BodyS3Location",),
    ResourceType.LAMBDA_FUNCTION: ("Code",),
    ResourceType.LAMBDA_LAYER_VERSION: ("Content",),
    ResourceType.APPSYNC_GRAPHQL_SCHEMA: ("DefinitionS3Location",),
    ResourceType.APPSYNC_RESOLVER: (
        "RequestMappingTemplateS3Location",
        "ResponseMappingTemplateS3Location",
    ),
    ResourceType.ELASTICBEANSTALK_APPLICATION_VERSION: ("SourceBundle",),
    ResourceType.STEPFUNCTIONS_STATE_MACHINE: ("DefinitionS3Location",),
    ResourceType.CLOUDFORMATION_STACK: ("TemplateURL",),
    ResourceType.INCLUDE: ("Location",),
})

# Types whose directories are packed with the dependency packer and which
# can be hot-patched with new code.
FUNCTION_TYPES: frozenset[ResourceType] = frozenset({
    ResourceType.SERVERLESS_FUNCTION,
    ResourceType.LAMBDA_FUNCTION,
})


class StackResource(BaseModel):
    """A resource of a provisioned stack, as reported by DescribeStackResources."""

    model_config = ConfigDict(frozen=True)

    logical_id: str
    physical_id: str
    resource_type: str = ""
    status: str = ""
