"""
Master index generation for the n8n skill pack
Builds INDEX.md, the single navigation document over every packaged node
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

from ..markdown_utils import escape_table_cell, format_heading, format_link, format_table, truncate
from ..models.nodes import (
    MergedFileInfo,
    NodePosition,
    NodeRelationship,
    PackagedNode,
    PackagingResult,
    PriorityTier,
    ResourceFile,
)
from ..models.schemas import CategoryConfig, CommunityPackage

logger = logging.getLogger(__name__)

CANONICAL_CATEGORY_ORDER = ("transform", "input", "output", "trigger", "organization", "misc")

INDEX_FILE_NAME = "INDEX.md"


@dataclass(frozen=True)
class HighPriorityRow:
    node: PackagedNode
    resource: ResourceFile


@dataclass(frozen=True)
class LowPriorityRow:
    node: PackagedNode
    merged_file: MergedFileInfo
    position: NodePosition


def category_order(categories: Sequence[str], category_config: Optional[CategoryConfig] = None) -> List[str]:
    """Canonical categories first, then configured ones by priority, then any others by name"""
    present = set(categories)
    ordered = [c for c in CANONICAL_CATEGORY_ORDER if c in present]

    if category_config is not None:
        by_priority = sorted(category_config.categories.items(), key=lambda item: (item[1].priority, item[0]))
        ordered += [key for key, _ in by_priority if key in present and key not in ordered]

    ordered += sorted(c for c in present if c not in ordered)
    return ordered


def collect_high_priority_rows(
    high_priority: Sequence[PackagedNode],
    resource_files: Sequence[ResourceFile],
) -> Dict[str, List[HighPriorityRow]]:
    """Rows per category, most used first; nodes without a written file are left out"""
    resources = {r.node_type: r for r in resource_files}
    rows: Dict[str, List[HighPriorityRow]] = {}
    for node in high_priority:
        resource = resources.get(node.node_type)
        if resource is None:
            logger.debug(f"No individual file for {node.node_type}, leaving it out of the index")
            continue
        rows.setdefault(node.category, []).append(HighPriorityRow(node=node, resource=resource))

    for category_rows in rows.values():
        category_rows.sort(key=lambda row: (
            -row.node.record.usage_percentage,
            -row.node.scored.score,
            row.node.display_name,
        ))
    return rows


def collect_low_priority_rows(
    low_priority: Sequence[PackagedNode],
    merged_files: Sequence[MergedFileInfo],
) -> Dict[str, List[LowPriorityRow]]:
    """Rows per category in file order, looked up from the recorded positions

    A node whose position is missing is omitted.
    """
    lookup: Dict[Tuple[str, str], Tuple[int, MergedFileInfo, NodePosition]] = {}
    for file_index, info in enumerate(merged_files):
        for position in info.positions:
            lookup[(info.category, position.node_type)] = (file_index, info, position)

    keyed: Dict[str, List[Tuple[int, int, LowPriorityRow]]] = {}
    for node in low_priority:
        found = lookup.get((node.category, node.node_type))
        if found is None:
            logger.debug(f"No merged position for {node.node_type}, leaving it out of the index")
            continue
        file_index, info, position = found
        row = LowPriorityRow(node=node, merged_file=info, position=position)
        keyed.setdefault(node.category, []).append((file_index, position.start_line, row))

    return {
        category: [row for _, _, row in sorted(entries, key=lambda e: (e[0], e[1]))]
        for category, entries in keyed.items()
    }


class MasterIndexBuilder:
    """Assembles and writes INDEX.md from the packaging output"""

    def __init__(
        self,
        title: str = "n8n Node Documentation Index",
        version: Optional[str] = None,
        category_config: Optional[CategoryConfig] = None,
        description_max_length: int = 120,
    ):
        self.title = title
        self.version = version
        self.category_config = category_config
        self.description_max_length = description_max_length

    def category_title(self, category: str) -> str:
        if self.category_config is not None and category in self.category_config.categories:
            return self.category_config.categories[category].name
        return category.replace("-", " ").title()

    def _description(self, text: str) -> str:
        return truncate(escape_table_cell(text), self.description_max_length) or "-"

    def build(
        self,
        high_priority: Sequence[PackagedNode],
        low_priority: Sequence[PackagedNode],
        packaging: PackagingResult,
        relationships: Sequence[NodeRelationship] = (),
        community_packages: Sequence[CommunityPackage] = (),
    ) -> str:
        high_rows = collect_high_priority_rows(high_priority, packaging.resource_files)
        low_rows = collect_low_priority_rows(low_priority, packaging.merged_files)

        lines = [format_heading(self.title, 1), ""]
        if self.version:
            lines.append(f"Version: {self.version}")
            lines.append("")
        lines.append(
            "High-priority nodes have their own document. All other nodes live in merged "
            "files per category: read lines `start` to `start + lines - 1` of the listed "
            "file to get a single node without loading the rest."
        )
        lines.append("")

        lines.extend(self._high_priority_section(high_rows))
        lines.extend(self._low_priority_section(low_rows))
        if community_packages:
            lines.extend(self._community_section(community_packages))
        if relationships:
            lines.extend(self._relationship_section(relationships))
        lines.extend(self._statistics_section(high_rows, low_rows))

        return "\n".join(lines).rstrip("\n") + "\n"

    def _high_priority_section(self, rows: Dict[str, List[HighPriorityRow]]) -> List[str]:
        lines = [format_heading("High-Priority Nodes", 2), ""]
        if not rows:
            lines.extend(["No high-priority nodes.", ""])
            return lines

        for category in category_order(list(rows), self.category_config):
            table = format_table(
                ["Name", "Node Type", "File", "Description"],
                [
                    [
                        escape_table_cell(row.node.display_name),
                        f"`{row.node.node_type}`",
                        format_link(row.resource.path, row.resource.path),
                        self._description(row.node.description),
                    ]
                    for row in rows[category]
                ],
            )
            lines.extend([format_heading(self.category_title(category), 3), "", table, ""])
        return lines

    def _low_priority_section(self, rows: Dict[str, List[LowPriorityRow]]) -> List[str]:
        lines = [format_heading("Other Nodes", 2), ""]
        if not rows:
            lines.extend(["No merged nodes.", ""])
            return lines

        for category in category_order(list(rows), self.category_config):
            table = format_table(
                ["Name", "Node Type", "File", "Start Line", "Lines", "Description"],
                [
                    [
                        escape_table_cell(row.node.display_name),
                        f"`{row.node.node_type}`",
                        format_link(row.merged_file.path, f"{row.merged_file.path}#{row.position.anchor}"),
                        str(row.position.start_line),
                        str(row.position.line_count),
                        self._description(row.node.description),
                    ]
                    for row in rows[category]
                ],
            )
            lines.extend([format_heading(self.category_title(category), 3), "", table, ""])
        return lines

    def _community_section(self, packages: Sequence[CommunityPackage]) -> List[str]:
        rows = []
        for package in sorted(packages, key=lambda p: (p.category, p.name)):
            name = format_link(package.name, package.npm_url) if package.npm_url else package.name
            rows.append([name, package.category, package.version or "-", self._description(package.description)])
        table = format_table(["Package", "Category", "Version", "Description"], rows)
        return [format_heading("Community Packages", 2), "", table, ""]

    def _relationship_section(self, relationships: Sequence[NodeRelationship]) -> List[str]:
        lines = [format_heading("Node Relationships", 2), ""]
        for rel in relationships:
            suffix = f": {rel.description}" if rel.description else ""
            lines.append(f"- **{rel.source_node}** -> **{rel.target_node}** ({rel.relationship_type.value}){suffix}")
        lines.append("")
        return lines

    def _statistics_section(
        self,
        high_rows: Dict[str, List[HighPriorityRow]],
        low_rows: Dict[str, List[LowPriorityRow]],
    ) -> List[str]:
        """Counts taken from the rows emitted above"""
        listed = [row.node for rows in high_rows.values() for row in rows]
        listed += [row.node for rows in low_rows.values() for row in rows]

        tier_counts = {tier: 0 for tier in PriorityTier}
        for node in listed:
            tier_counts[node.scored.tier] += 1

        high_total = sum(len(rows) for rows in high_rows.values())
        low_total = sum(len(rows) for rows in low_rows.values())

        category_rows = []
        for category in category_order(list(high_rows) + list(low_rows), self.category_config):
            high_count = len(high_rows.get(category, []))
            low_count = len(low_rows.get(category, []))
            category_rows.append([
                self.category_title(category), str(high_count), str(low_count), str(high_count + low_count),
            ])

        lines = [
            format_heading("Statistics", 2),
            "",
            f"- Total nodes: {len(listed)}",
            f"- High-priority nodes: {high_total}",
            f"- Merged nodes: {low_total}",
        ]
        for tier in PriorityTier:
            lines.append(f"- {tier.value.title()} tier: {tier_counts[tier]}")
        lines.append("")
        table = format_table(["Category", "High-Priority", "Merged", "Total"], category_rows)
        if table:
            lines.extend([table, ""])
        return lines

    def write(self, output_dir: Path, content: str) -> Path:
        path = Path(output_dir) / INDEX_FILE_NAME
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8", newline="\n") as f:
            f.write(content)
        logger.info(f"Wrote master index to {path}")
        return path
