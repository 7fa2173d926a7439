"""Template source — load and dump CloudFormation templates.

YAML templates may use the short-form intrinsic function tags (``!Ref``,
``!GetAtt``, ``!Sub`` ...). They are loaded as their long-form mappings so
the rest of the pipeline only ever sees plain dicts, lists and scalars, and
they are written back out in long form.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import yaml

from cfn_package.core.errors import TemplateLoadError

_TIMESTAMP_TAG = "tag:yaml.org,2002:timestamp"


class TemplateLoader(yaml.SafeLoader):
    """SafeLoader with CloudFormation tags and without implicit timestamps."""


# AWSTemplateFormatVersion: 2010-09-09 must stay a string.
TemplateLoader.yaml_implicit_resolvers = {
    first: [(tag, regexp) for tag, regexp in resolvers if tag != _TIMESTAMP_TAG]
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}


def _construct_intrinsic(loader: TemplateLoader, tag_suffix: str, node: yaml.Node) -> dict[str, Any]:
    name = tag_suffix if tag_suffix in ("Ref", "Condition") else f"Fn::{tag_suffix}"

    if isinstance(node, yaml.ScalarNode):
        value: Any = loader.construct_scalar(node)
        if tag_suffix == "GetAtt" and isinstance(value, str):
            value = value.split(".", 1)
    elif isinstance(node, yaml.SequenceNode):
        value = loader.construct_sequence(node, deep=True)
    else:
        value = loader.construct_mapping(node, deep=True)
    return {name: value}


TemplateLoader.add_multi_constructor("!", _construct_intrinsic)


class TemplateDumper(yaml.SafeDumper):
    """SafeDumper that indents block sequences under their parent key."""

    def increase_indent(self, flow: bool = False, indentless: bool = False) -> None:
        return super().increase_indent(flow, False)


def parse_template(text: str, *, fmt: str | None = None) -> dict[str, Any]:
    """Parse template text as JSON when *fmt* is ``"json"``, else as YAML."""
    try:
        if fmt == "json":
            template = json.loads(text)
        else:
            template = yaml.load(text, Loader=TemplateLoader)
    except (ValueError, yaml.YAMLError) as exc:
        raise TemplateLoadError(f"Template is not valid {fmt or 'YAML'}: {exc}") from exc

    if not isinstance(template, dict):
        raise TemplateLoadError("Template must be a mapping at the top level")
    return template


def load_template(path: Path) -> dict[str, Any]:
    """Read and parse the template at *path*.

    Raises
    ------
    TemplateLoadError
        If the file cannot be read or parsed.
    """
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise TemplateLoadError(f"Cannot read template {path}: {exc}") from exc

    fmt = "json" if path.suffix.lower() == ".json" else "yaml"
    return parse_template(text, fmt=fmt)


def dump_template(template: dict[str, Any], fmt: str = "yaml") -> str:
    """Serialize a template as YAML (default) or JSON."""
    if fmt == "json":
        return json.dumps(template, indent=2) + "\n"
    return yaml.dump(
        template,
        Dumper=TemplateDumper,
        default_flow_style=False,
        sort_keys=False,
        allow_unicode=True,
    )
