"""cfn-package: content-addressed packaging of CloudFormation template artifacts.

Resolves local artifacts referenced by a template, uploads each one to
``s3://bucket/[prefix/]LogicalId-<hash>`` unless identical content is already
there, rewrites the template to point at the uploaded objects and, on
request, updates the code of the stack's deployed Lambda functions.
"""

__version__ = "0.1.0"

from cfn_package.core.packager import (
    TemplatePackager,
    package_template,
    package_template_sync,
)
from cfn_package.models.options import PackageOptions

__all__ = [
    "PackageOptions",
    "TemplatePackager",
    "package_template",
    "package_template_sync",
    "__version__",
]
