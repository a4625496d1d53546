"""
Node document rendering for the n8n skill pack
Turns one packaged node into a self-contained markdown document body
"""

import json
from typing import Any, Dict, List

from ..markdown_utils import escape_table_cell, format_code_block, format_heading
from ..models.nodes import CoreProperty, Operation, PackagedNode

MAX_OPERATION_EXAMPLES = 2

_TYPE_DEFAULTS = {
    "string": "",
    "number": 0,
    "boolean": False,
    "json": {},
    "object": {},
    "array": [],
}


def _default_for_type(prop_type: str) -> Any:
    value = _TYPE_DEFAULTS.get(prop_type, "")
    # fresh containers per example
    return type(value)() if isinstance(value, (dict, list)) else value


def build_basic_example(node: PackagedNode) -> Dict[str, Any]:
    example: Dict[str, Any] = {
        "name": node.display_name,
        "type": node.node_type,
        "typeVersion": 1,
        "position": [250, 300],
        "parameters": {},
    }

    properties = node.record.properties
    if properties:
        for prop in properties.core_properties:
            if not prop.required:
                continue
            if prop.default is not None:
                example["parameters"][prop.name] = prop.default
            elif prop.options:
                example["parameters"][prop.name] = prop.options[0].value
            else:
                example["parameters"][prop.name] = _default_for_type(prop.type)
    return example


def build_operation_example(node: PackagedNode, operation: Operation) -> Dict[str, Any]:
    example = build_basic_example(node)
    if operation.resource:
        example["parameters"]["resource"] = operation.resource
    example["parameters"]["operation"] = operation.value
    return example


def _append_basic_info(lines: List[str], node: PackagedNode) -> None:
    record = node.record
    scored = node.scored

    lines.append(format_heading("Basic Information", 2))
    lines.append("")
    lines.append(f"- Node type: `{record.node_type}`")
    lines.append(f"- Category: {node.category}")
    if node.subcategory:
        lines.append(f"- Subcategory: {node.subcategory}")
    if record.package_name:
        lines.append(f"- Package: {record.package_name}")
    if record.usage_count > 0:
        lines.append(f"- Usage count: {record.usage_count}")
    if record.usage_percentage > 0:
        lines.append(f"- Usage share: {record.usage_percentage:.2f}%")
    if record.has_credentials:
        lines.append("- Requires credentials: yes")
    lines.append(f"- Priority: {scored.tier.value} (rank {scored.rank}, score {scored.score:.3f})")
    lines.append("")


def _append_operations(lines: List[str], operations: List[Operation]) -> None:
    lines.append(format_heading("Operations", 2))
    lines.append("")
    for op in operations:
        lines.append(format_heading(op.name, 3))
        if op.description:
            lines.append(op.description)
        lines.append(f"- Value: `{op.value}`")
        if op.resource:
            lines.append(f"- Resource: `{op.resource}`")
        lines.append("")


def _append_properties(lines: List[str], properties: List[CoreProperty]) -> None:
    lines.append(format_heading("Core Properties", 2))
    lines.append("")
    lines.append("| Property | Type | Required | Default | Description |")
    lines.append("|----------|------|----------|---------|-------------|")
    for prop in properties:
        default = f"`{json.dumps(prop.default)}`" if prop.default is not None else "-"
        description = escape_table_cell(prop.description) or "-"
        required = "yes" if prop.required else "no"
        lines.append(f"| `{prop.name}` | {prop.type} | {required} | {default} | {description} |")
    lines.append("")

    with_options = [p for p in properties if p.options]
    if not with_options:
        return

    lines.append(format_heading("Property Details", 3))
    lines.append("")
    for prop in with_options:
        lines.append(format_heading(f"{prop.display_name} (`{prop.name}`)", 4))
        lines.append("")
        if prop.description:
            lines.append(prop.description)
            lines.append("")
        lines.append("Options:")
        for opt in prop.options:
            suffix = f" - {opt.description}" if opt.description else ""
            lines.append(f"- `{opt.value}`: {opt.name}{suffix}")
        lines.append("")


def _append_examples(lines: List[str], node: PackagedNode) -> None:
    lines.append(format_heading("JSON Configuration Examples", 2))
    lines.append("")
    lines.append(format_heading("Basic Configuration", 3))
    lines.append(format_code_block(json.dumps(build_basic_example(node), indent=2), "json"))
    lines.append("")

    properties = node.record.properties
    operations = list(properties.operations) if properties else []
    for operation in operations[:MAX_OPERATION_EXAMPLES]:
        lines.append(format_heading(f"{operation.name} Example", 3))
        lines.append(format_code_block(json.dumps(build_operation_example(node, operation), indent=2), "json"))
        lines.append("")


def _append_grouping(lines: List[str], node: PackagedNode) -> None:
    grouping = node.grouping
    if grouping is None:
        return

    lines.append(format_heading("Related Nodes", 2))
    lines.append("")
    lines.append(f"- Usage frequency: {grouping.usage_frequency.value}")
    lines.append(f"- Functional groups: {', '.join(g.value for g in grouping.functional_groups)}")
    if grouping.tags:
        lines.append(f"- Tags: {', '.join(grouping.tags)}")
    if grouping.related_nodes:
        lines.append(f"- Related: {', '.join(f'`{n}`' for n in grouping.related_nodes)}")
    lines.append("")


def render_node_document(node: PackagedNode) -> str:
    """Full markdown document for one node, starting with its title heading"""
    record = node.record
    lines: List[str] = [format_heading(record.display_name, 1), ""]

    _append_basic_info(lines, node)

    if record.description:
        lines.append(format_heading("Description", 2))
        lines.append("")
        lines.append(record.description)
        lines.append("")

    properties = record.properties
    if properties and properties.operations:
        _append_operations(lines, list(properties.operations))
    if properties and properties.core_properties:
        _append_properties(lines, list(properties.core_properties))

    _append_examples(lines, node)
    _append_grouping(lines, node)

    if record.documentation_url:
        lines.append(format_heading("More Information", 2))
        lines.append("")
        lines.append(f"[Official documentation]({record.documentation_url})")
        lines.append("")

    return "\n".join(lines)
