"""AWS transports over httpx, signed with botocore's SigV4 implementation.

Three services are used:

- **S3** — ``HEAD`` with ``If-None-Match`` for the unchanged check, ``PUT``
  for uploads.
- **CloudFormation** — ``DescribeStackResources`` (query API, XML reply).
- **Lambda** — ``UpdateFunctionCode`` (REST API, JSON body).

Credential resolution is delegated to ``boto3.Session`` so the usual
environment variables, profiles and instance roles all apply.
"""

from __future__ import annotations

import base64
import hashlib
import json
import logging
import xml.etree.ElementTree as ET
from typing import Any
from urllib.parse import quote, urlencode

import boto3
import httpx
from botocore.auth import S3SigV4Auth, S3SigV4QueryAuth, SigV4Auth, SigV4QueryAuth
from botocore.awsrequest import AWSRequest

from cfn_package.bridge.transport import RequestSigner, SignRequest, TransportResponse
from cfn_package.core.errors import MalformedResponseError, TransportError, UnexpectedStatusError
from cfn_package.models.resources import StackResource

logger = logging.getLogger(__name__)

DEFAULT_REGION = "us-east-1"
CLOUDFORMATION_API_VERSION = "2010-05-15"
LAMBDA_API_VERSION = "2015-03-31"


# ---------------------------------------------------------------------------
# Signing
# ---------------------------------------------------------------------------


class BotocoreSigner:
    """SigV4 request signer backed by a ``boto3.Session``.

    Parameters
    ----------
    session:
        Session providing credentials and the default region.
    region:
        Region override. Falls back to the session region, then ``us-east-1``.
    credentials:
        Explicit botocore credentials; skips session credential lookup.
    """

    def __init__(
        self,
        session: boto3.Session | None = None,
        region: str | None = None,
        *,
        credentials: Any = None,
    ) -> None:
        self._session = session or boto3.Session()
        self.region = region or self._session.region_name or DEFAULT_REGION
        self._credentials = credentials

    def _resolve_credentials(self) -> Any:
        if self._credentials is None:
            credentials = self._session.get_credentials()
            if credentials is None:
                raise TransportError("Unable to locate AWS credentials")
            self._credentials = credentials
        return self._credentials

    def sign(self, request: SignRequest) -> httpx.Request:
        """Sign a request description and return a ready-to-send ``httpx.Request``."""
        endpoint = request.endpoint or f"https://{request.service}.{self.region}.amazonaws.com"
        url = f"{endpoint}{request.path}"
        if request.query:
            url = f"{url}?{urlencode(sorted(request.query.items()), quote_via=quote)}"

        aws_request = AWSRequest(
            method=request.method,
            url=url,
            data=request.body or None,
            headers=dict(request.headers),
        )
        if request.service == "s3":
            auth_cls = S3SigV4QueryAuth if request.sign_query else S3SigV4Auth
        else:
            auth_cls = SigV4QueryAuth if request.sign_query else SigV4Auth
        auth_cls(self._resolve_credentials(), request.service, self.region).add_auth(aws_request)

        prepared = aws_request.prepare()
        return httpx.Request(
            prepared.method,
            prepared.url,
            headers=dict(prepared.headers.items()),
            content=prepared.body or b"",
        )


# ---------------------------------------------------------------------------
# Shared send helper
# ---------------------------------------------------------------------------


class _SignedTransport:
    """Sends signed requests through a shared ``httpx.AsyncClient``."""

    service_label = "AWS"

    def __init__(
        self,
        signer: RequestSigner,
        client: httpx.AsyncClient,
        *,
        region: str | None = None,
        endpoint_url: str | None = None,
    ) -> None:
        self._signer = signer
        self._client = client
        self.region = region or getattr(signer, "region", None) or DEFAULT_REGION
        self._endpoint_url = endpoint_url.rstrip("/") if endpoint_url else None

    async def _send(self, request: SignRequest) -> TransportResponse:
        signed = self._signer.sign(request)
        try:
            response = await self._client.send(signed)
        except httpx.HTTPError as exc:
            raise TransportError(
                f"{self.service_label} {request.method} {request.path} failed: {exc}"
            ) from exc
        return TransportResponse(
            status_code=response.status_code,
            reason=response.reason_phrase,
            body=response.content,
            headers=dict(response.headers.items()),
        )


# ---------------------------------------------------------------------------
# S3
# ---------------------------------------------------------------------------


class S3ObjectStorage(_SignedTransport):
    """``ObjectStorage`` over the S3 REST API.

    Uses virtual-hosted style addressing against AWS, and path style when
    ``endpoint_url`` points at an emulator.
    """

    service_label = "S3"

    def _locate(self, bucket: str, key: str) -> tuple[str, str]:
        quoted_key = quote(key, safe="/~")
        if self._endpoint_url:
            return self._endpoint_url, f"/{bucket}/{quoted_key}"
        return f"https://{bucket}.s3.{self.region}.amazonaws.com", f"/{quoted_key}"

    async def head_object(
        self, bucket: str, key: str, *, if_none_match: str | None = None
    ) -> TransportResponse:
        endpoint, path = self._locate(bucket, key)
        headers = {}
        if if_none_match is not None:
            headers["If-None-Match"] = f'"{if_none_match}"'
        return await self._send(SignRequest(
            method="HEAD", service="s3", endpoint=endpoint, path=path, headers=headers,
        ))

    async def put_object(self, bucket: str, key: str, body: bytes) -> TransportResponse:
        endpoint, path = self._locate(bucket, key)
        content_md5 = base64.b64encode(hashlib.md5(body, usedforsecurity=False).digest())
        headers = {
            "Content-Type": "application/octet-stream",
            "Content-MD5": content_md5.decode("ascii"),
        }
        return await self._send(SignRequest(
            method="PUT", service="s3", endpoint=endpoint, path=path,
            headers=headers, body=body,
        ))


# ---------------------------------------------------------------------------
# CloudFormation
# ---------------------------------------------------------------------------


def _local_name(tag: str) -> str:
    """Strip the XML namespace from an element tag."""
    return tag.rsplit("}", 1)[-1]


def _child_text(element: ET.Element, name: str) -> str:
    for child in element:
        if _local_name(child.tag) == name:
            return (child.text or "").strip()
    return ""


def _error_message(body: bytes) -> str:
    """Extract ``Code: Message`` from an AWS XML or JSON error body."""
    if not body:
        return ""
    try:
        root = ET.fromstring(body)
    except ET.ParseError:
        try:
            payload = json.loads(body)
        except ValueError:
            return ""
        if not isinstance(payload, dict):
            return ""
        message = payload.get("Message") or payload.get("message") or ""
        code = payload.get("Type") or payload.get("__type") or ""
        return f"{code}: {message}" if code else message
    for element in root.iter():
        if _local_name(element.tag) == "Error":
            code = _child_text(element, "Code")
            message = _child_text(element, "Message")
            return f"{code}: {message}" if code else message
    return ""


def parse_stack_resources(body: bytes) -> list[StackResource]:
    """Parse a DescribeStackResources XML reply into ``StackResource`` models."""
    try:
        root = ET.fromstring(body)
    except ET.ParseError as exc:
        raise MalformedResponseError(f"Unparsable DescribeStackResources response: {exc}") from exc

    containers = [el for el in root.iter() if _local_name(el.tag) == "StackResources"]
    if not containers:
        raise MalformedResponseError("DescribeStackResources response has no StackResources")

    resources = []
    for member in containers[0]:
        logical_id = _child_text(member, "LogicalResourceId")
        if not logical_id:
            raise MalformedResponseError("Stack resource without LogicalResourceId")
        resources.append(StackResource(
            logical_id=logical_id,
            physical_id=_child_text(member, "PhysicalResourceId"),
            resource_type=_child_text(member, "ResourceType"),
            status=_child_text(member, "ResourceStatus"),
        ))
    return resources


class CloudFormationStackDescriber(_SignedTransport):
    """``StackDescriber`` over the CloudFormation query API."""

    service_label = "CloudFormation"

    async def describe_stack_resources(self, stack_name: str) -> list[StackResource]:
        params = {
            "Action": "DescribeStackResources",
            "StackName": stack_name,
            "Version": CLOUDFORMATION_API_VERSION,
        }
        response = await self._send(SignRequest(
            method="POST",
            service="cloudformation",
            endpoint=self._endpoint_url,
            headers={"Content-Type": "application/x-www-form-urlencoded; charset=utf-8"},
            body=urlencode(params).encode("utf-8"),
        ))
        if not response.ok:
            reason = _error_message(response.body) or response.reason
            raise UnexpectedStatusError(self.service_label, response.status_code, reason)
        resources = parse_stack_resources(response.body)
        logger.debug("Stack %s has %d resources", stack_name, len(resources))
        return resources


# ---------------------------------------------------------------------------
# Lambda
# ---------------------------------------------------------------------------


class LambdaCodeUpdater(_SignedTransport):
    """``FunctionCodeUpdater`` over the Lambda REST API."""

    service_label = "Lambda"

    async def update_function_code(self, function_name: str, bucket: str, key: str) -> None:
        body = json.dumps({"S3Bucket": bucket, "S3Key": key}).encode("utf-8")
        response = await self._send(SignRequest(
            method="PUT",
            service="lambda",
            endpoint=self._endpoint_url,
            path=f"/{LAMBDA_API_VERSION}/functions/{quote(function_name, safe='')}/code",
            headers={"Content-Type": "application/json"},
            body=body,
        ))
        if not response.ok:
            reason = _error_message(response.body) or response.reason
            raise UnexpectedStatusError(self.service_label, response.status_code, reason)
