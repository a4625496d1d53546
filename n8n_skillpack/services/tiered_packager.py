"""
Tiered packaging for the n8n skill pack
High-priority nodes get one document each, the rest are merged per category
into size-bounded files whose per-node line ranges are recorded for partial reads
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from tqdm import tqdm

from ..markdown_utils import (
    escape_table_cell,
    format_heading,
    format_link,
    format_list,
    iter_headings,
    name_sort_key,
    split_lines,
    truncate,
    unique_anchor,
)
from ..models.nodes import (
    MergedFileInfo,
    NodePosition,
    PackagedNode,
    PackagingResult,
    ResourceFile,
)
from .node_renderer import render_node_document

logger = logging.getLogger(__name__)

NodeRenderer = Callable[[PackagedNode], str]

DEFAULT_MAX_NODES_PER_MERGED_FILE = 100
BLOCK_SEPARATOR = ("", "---", "")


def safe_file_stem(node_type: str) -> str:
    """File name stem for a node identity (scoped packages lose their @ and /)"""
    return node_type.replace("/", "_").replace("@", "")


def merged_file_name(category: str, part_number: int, part_count: int) -> str:
    if part_count <= 1:
        return f"{category}-merged.md"
    return f"{category}-merged-{part_number}.md"


def split_into_parts(nodes: Sequence[PackagedNode], max_per_file: int) -> List[List[PackagedNode]]:
    """Sort alphabetically by display name and cut into consecutive parts of at most max_per_file"""
    if max_per_file < 1:
        raise ValueError("max_per_file must be at least 1")
    ordered = sorted(nodes, key=lambda n: (name_sort_key(n.display_name), n.node_type))
    return [list(ordered[i:i + max_per_file]) for i in range(0, len(ordered), max_per_file)]


def group_by_packaging_category(nodes: Sequence[PackagedNode]) -> Dict[str, List[PackagedNode]]:
    grouped: Dict[str, List[PackagedNode]] = {}
    for node in nodes:
        grouped.setdefault(node.category, []).append(node)
    return grouped


@dataclass
class MergedDocument:
    """Assembled merged file: its lines and where each node landed"""
    lines: List[str]
    positions: List[NodePosition]

    @property
    def text(self) -> str:
        return "\n".join(self.lines) + "\n"


def assemble_merged_document(
    title: str,
    file_name: str,
    rendered: Sequence[Tuple[PackagedNode, str]],
    description_max_length: int = 120,
) -> MergedDocument:
    """Lay out the header, table of contents and node blocks of one merged file

    Bodies are already rendered, so each node's start line is fixed from
    the lines emitted so far and its line count is the exact number of
    lines in its own block.
    """
    blocks = [split_lines(body) for _, body in rendered]
    contents_heading = "Contents"

    # Anchors follow every heading in document order, not only node titles
    seen: Dict[str, int] = {}
    unique_anchor(title, seen)
    unique_anchor(contents_heading, seen)
    anchors = []
    for (node, _), block in zip(rendered, blocks):
        anchor = None
        for heading in iter_headings(block):
            slug = unique_anchor(heading, seen)
            if anchor is None and heading == node.display_name:
                anchor = slug
        anchors.append(anchor or unique_anchor(node.display_name, seen))

    lines: List[str] = [
        format_heading(title, 1),
        "",
        f"This file contains {len(rendered)} nodes. "
        "Use the line ranges listed in INDEX.md to read a single node.",
        "",
        format_heading(contents_heading, 2),
        "",
    ]
    lines.extend(
        f"- {format_link(node.display_name, '#' + anchor)}"
        for (node, _), anchor in zip(rendered, anchors)
    )
    lines.append("")

    positions: List[NodePosition] = []
    for (node, _), block, anchor in zip(rendered, blocks, anchors):
        if positions:
            lines.extend(BLOCK_SEPARATOR)
        start_line = len(lines) + 1
        lines.extend(block)
        positions.append(NodePosition(
            node_type=node.node_type,
            display_name=node.display_name,
            file_name=file_name,
            start_line=start_line,
            line_count=len(block),
            anchor=anchor,
            description=truncate(escape_table_cell(node.description), description_max_length),
            usage_percentage=node.record.usage_percentage,
        ))

    return MergedDocument(lines=lines, positions=positions)


def _write_text(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8", newline="\n") as f:
        f.write(text)


class TieredPackager:
    """Writes individual and merged node documents under one output directory"""

    def __init__(
        self,
        output_dir: Path,
        max_nodes_per_merged_file: int = DEFAULT_MAX_NODES_PER_MERGED_FILE,
        description_max_length: int = 120,
        category_names: Optional[Mapping[str, str]] = None,
        show_progress: bool = True,
    ):
        if max_nodes_per_merged_file < 1:
            raise ValueError("max_nodes_per_merged_file must be at least 1")
        self.output_dir = Path(output_dir)
        self.max_nodes_per_merged_file = max_nodes_per_merged_file
        self.description_max_length = description_max_length
        self.category_names = dict(category_names or {})
        self.show_progress = show_progress

    def category_title(self, category: str) -> str:
        return self.category_names.get(category, category.replace("-", " ").title())

    def generate_tiered(
        self,
        high_priority: Sequence[PackagedNode],
        low_priority: Sequence[PackagedNode],
        renderer: NodeRenderer = render_node_document,
    ) -> PackagingResult:
        """Package both tiers and write one README.md per category"""
        result = PackagingResult(resource_files=[], merged_files=[], failed_nodes=[])

        self.generate_individual_files(high_priority, renderer, result)

        low_by_category = group_by_packaging_category(low_priority)
        for category in tqdm(low_by_category, desc="Merged categories", disable=not self.show_progress):
            self.generate_merged_files(category, low_by_category[category], renderer, result)

        self.generate_category_readmes(result)

        logger.info(
            f"Packaged {len(result.resource_files)} individual files and "
            f"{len(result.merged_files)} merged files, {len(result.failed_nodes)} nodes failed"
        )
        return result

    def generate_individual_files(
        self,
        nodes: Sequence[PackagedNode],
        renderer: NodeRenderer,
        result: PackagingResult,
    ) -> None:
        for node in tqdm(nodes, desc="Individual files", disable=not self.show_progress):
            file_name = f"{safe_file_stem(node.node_type)}.md"
            relative_path = f"{node.category}/{file_name}"
            try:
                body = renderer(node)
                _write_text(self.output_dir / relative_path, "\n".join(split_lines(body)) + "\n")
            except Exception as e:
                logger.error(f"Failed to write {node.node_type}: {e}")
                result.failed_nodes.append(node.node_type)
                continue

            result.resource_files.append(ResourceFile(
                name=node.display_name,
                node_type=node.node_type,
                path=relative_path,
                description=truncate(escape_table_cell(node.description), self.description_max_length),
                category=node.category,
            ))

    def _render_all(
        self,
        nodes: Sequence[PackagedNode],
        renderer: NodeRenderer,
        result: PackagingResult,
    ) -> List[Tuple[PackagedNode, str]]:
        rendered = []
        for node in nodes:
            try:
                rendered.append((node, renderer(node)))
            except Exception as e:
                logger.error(f"Failed to render {node.node_type}: {e}")
                result.failed_nodes.append(node.node_type)
        return rendered

    def generate_merged_files(
        self,
        category: str,
        nodes: Sequence[PackagedNode],
        renderer: NodeRenderer,
        result: PackagingResult,
    ) -> List[MergedFileInfo]:
        parts = split_into_parts(nodes, self.max_nodes_per_merged_file)
        written = []

        for part_number, part in enumerate(parts, start=1):
            file_name = merged_file_name(category, part_number, len(parts))
            title = f"{self.category_title(category)} Nodes"
            if len(parts) > 1:
                title += f" (Part {part_number} of {len(parts)})"

            rendered = self._render_all(part, renderer, result)
            if not rendered:
                logger.warning(f"No nodes left to write in {category}/{file_name}")
                continue

            document = assemble_merged_document(title, file_name, rendered, self.description_max_length)
            try:
                _write_text(self.output_dir / category / file_name, document.text)
            except OSError as e:
                logger.error(f"Failed to write {category}/{file_name}: {e}")
                result.failed_nodes.extend(node.node_type for node, _ in rendered)
                continue

            info = MergedFileInfo(
                file_name=file_name,
                category=category,
                node_count=len(document.positions),
                positions=document.positions,
            )
            logger.debug(f"Wrote {info.path} with {info.node_count} nodes, {len(document.lines)} lines")
            result.merged_files.append(info)
            written.append(info)

        return written

    def build_category_readme(
        self,
        category: str,
        resource_files: Sequence[ResourceFile],
        merged_files: Sequence[MergedFileInfo],
    ) -> str:
        lines = [format_heading(f"{self.category_title(category)} Nodes", 1), ""]

        if resource_files:
            lines.append(format_heading("High-Priority Nodes", 2))
            lines.append("")
            items = []
            for resource in sorted(resource_files, key=lambda r: name_sort_key(r.name)):
                link = format_link(resource.name, Path(resource.path).name)
                suffix = f" - {resource.description}" if resource.description else ""
                items.append(f"{link}{suffix}")
            lines.append(format_list(items))
            lines.append("")

        if merged_files:
            total = sum(info.node_count for info in merged_files)
            lines.append(format_heading("Other Nodes", 2))
            lines.append("")
            if len(merged_files) == 1:
                info = merged_files[0]
                lines.append(f"All {total} nodes are documented in {format_link(info.file_name, info.file_name)}.")
                lines.append("")
            else:
                lines.append(f"{total} nodes are split across {len(merged_files)} files:")
                lines.append("")
                for info in merged_files:
                    first = info.positions[0].display_name
                    last = info.positions[-1].display_name
                    lines.append(
                        f"- {format_link(info.file_name, info.file_name)}: "
                        f"{info.node_count} nodes ({first} - {last})"
                    )
                lines.append("")
                lines.append(format_heading("All Nodes", 3))
                lines.append("")
                names = sorted(
                    (p.display_name for info in merged_files for p in info.positions),
                    key=name_sort_key,
                )
                lines.append(format_list(names))
                lines.append("")

        return "\n".join(lines)

    def generate_category_readmes(self, result: PackagingResult) -> List[Path]:
        resources_by_category: Dict[str, List[ResourceFile]] = {}
        for resource in result.resource_files:
            resources_by_category.setdefault(resource.category, []).append(resource)
        merged_by_category: Dict[str, List[MergedFileInfo]] = {}
        for info in result.merged_files:
            merged_by_category.setdefault(info.category, []).append(info)

        categories = list(resources_by_category)
        categories += [c for c in merged_by_category if c not in resources_by_category]

        written = []
        for category in categories:
            content = self.build_category_readme(
                category,
                resources_by_category.get(category, []),
                merged_by_category.get(category, []),
            )
            path = self.output_dir / category / "README.md"
            try:
                _write_text(path, content + "\n")
            except OSError as e:
                logger.error(f"Failed to write {path}: {e}")
                continue
            written.append(path)
        return written
