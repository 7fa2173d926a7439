"""Bridge layer between the packaging core and remote services.

Modules
-------
transport
    Protocols for object storage, stack description, function code
    updates, request signing and dependency packing.
aws
    Default implementations talking to S3, CloudFormation and Lambda over
    ``httpx`` with SigV4 signatures computed by ``botocore``.
"""
