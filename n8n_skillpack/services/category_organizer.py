"""
Category organization for the n8n skill pack
Maps node types onto the declarative category table and selects the top nodes
"""

import logging
from dataclasses import dataclass, replace
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from ..models.nodes import CategorizedNode, NodeRecord, OrganizationResult
from ..models.schemas import CategoryConfig, CategoryDefinition

logger = logging.getLogger(__name__)

UNKNOWN_CATEGORY_PRIORITY = 999


@dataclass(frozen=True)
class CategoryLookup:
    """node type name -> (category, subcategory), plus category priorities"""
    assignments: Mapping[str, Tuple[str, Optional[str]]]
    priorities: Mapping[str, int]

    @classmethod
    def from_config(cls, config: CategoryConfig) -> "CategoryLookup":
        assignments: Dict[str, Tuple[str, Optional[str]]] = {}
        priorities: Dict[str, int] = {}

        for category_key, definition in config.categories.items():
            priorities[category_key] = definition.priority

            for node_type in definition.nodes:
                assignments[node_type] = (category_key, None)

            for subcategory_key, node_types in definition.subcategories.items():
                for node_type in node_types:
                    assignments[node_type] = (category_key, subcategory_key)

        return cls(assignments=assignments, priorities=priorities)

    def lookup(self, node_type: str) -> Optional[Tuple[str, Optional[str]]]:
        return self.assignments.get(extract_node_type_key(node_type))


def extract_node_type_key(node_type: str) -> str:
    """nodes-base.slack -> slack, n8n-nodes-langchain.openAi -> openAi"""
    return node_type.rsplit(".", 1)[-1]


def organize_nodes(
    nodes: Sequence[NodeRecord],
    lookup: CategoryLookup,
    top_nodes_limit: int = 50,
) -> OrganizationResult:
    """Categorize nodes, sort by (priority, display name) and split off the top N

    Nodes without a matching rule are returned by identity in
    uncategorized_nodes instead of raising.
    """
    categorized: List[CategorizedNode] = []
    uncategorized: List[str] = []

    for node in nodes:
        match = lookup.lookup(node.node_type)
        if match is None:
            uncategorized.append(node.node_type)
            continue

        category, subcategory = match
        categorized.append(CategorizedNode(
            node_type=node.node_type,
            display_name=node.display_name,
            category=category,
            subcategory=subcategory,
            priority=lookup.priorities.get(category, UNKNOWN_CATEGORY_PRIORITY),
        ))

    categorized.sort(key=lambda n: (n.priority, n.display_name))

    limit = max(top_nodes_limit, 0)
    top_nodes = [replace(n, is_top_node=True) for n in categorized[:limit]]
    remaining_nodes = [replace(n, is_top_node=False) for n in categorized[limit:]]

    if uncategorized:
        logger.warning(f"{len(uncategorized)} nodes matched no category rule")

    return OrganizationResult(
        top_nodes=top_nodes,
        remaining_nodes=remaining_nodes,
        uncategorized_nodes=uncategorized,
    )


def group_by_category(nodes: Sequence[CategorizedNode]) -> Dict[str, List[CategorizedNode]]:
    """Group by category, or category.subcategory, keeping insertion order"""
    grouped: Dict[str, List[CategorizedNode]] = {}
    for node in nodes:
        grouped.setdefault(node.group_key, []).append(node)
    return grouped


class CategoryOrganizer:
    """Category table bound to one configuration"""

    def __init__(self, config: CategoryConfig):
        self.config = config
        self.lookup = CategoryLookup.from_config(config)

    def organize(self, nodes: Sequence[NodeRecord], top_nodes_limit: int = 50) -> OrganizationResult:
        return organize_nodes(nodes, self.lookup, top_nodes_limit)

    def group_by_category(self, nodes: Sequence[CategorizedNode]) -> Dict[str, List[CategorizedNode]]:
        return group_by_category(nodes)

    def get_category_info(self, category_key: str) -> Optional[CategoryDefinition]:
        return self.config.categories.get(category_key)

    def get_categories_by_priority(self) -> List[Tuple[str, CategoryDefinition]]:
        return sorted(self.config.categories.items(), key=lambda item: item[1].priority)

    def generate_statistics(self, result: OrganizationResult) -> Dict:
        category_counts: Dict[str, int] = {}
        for node in result.top_nodes + result.remaining_nodes:
            category_counts[node.group_key] = category_counts.get(node.group_key, 0) + 1

        return {
            "total_nodes": len(result.top_nodes) + len(result.remaining_nodes) + len(result.uncategorized_nodes),
            "top_nodes_count": len(result.top_nodes),
            "remaining_nodes_count": len(result.remaining_nodes),
            "uncategorized_count": len(result.uncategorized_nodes),
            "category_counts": category_counts,
        }
