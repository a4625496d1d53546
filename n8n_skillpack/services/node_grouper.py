"""
Functional grouping for the n8n skill pack
Buckets nodes by usage frequency, tags them with functional groups,
discovers related nodes and applies the named relationship table
"""

import logging
import re
from dataclasses import dataclass, replace
from typing import Callable, Dict, List, Sequence, Tuple

from ..models.nodes import (
    FunctionalGroup,
    GroupedNode,
    GroupingResult,
    NodeRecord,
    NodeRelationship,
    UsageFrequency,
)
from ..models.schemas import FunctionalRule, GroupingRules

logger = logging.getLogger(__name__)

NodePredicate = Callable[[NodeRecord], bool]


def _keyword_predicate(keywords: Sequence[str], flags: Sequence[str] = ()) -> NodePredicate:
    lowered = tuple(k.lower() for k in keywords)
    flags = tuple(flags)

    def predicate(node: NodeRecord) -> bool:
        if any(getattr(node, flag) for flag in flags):
            return True
        node_type = node.node_type.lower()
        return any(keyword in node_type for keyword in lowered)

    return predicate


def _normalize_identity(node_type: str) -> str:
    return node_type.lower().rsplit(".", 1)[-1]


def _normalize_endpoint(name: str) -> str:
    return re.sub(r"\s+", "", name.lower())


@dataclass(frozen=True)
class GroupingTables:
    """Rule tables compiled once into ordered (predicate, label) pairs"""
    frequency_rules: Tuple[Tuple[NodePredicate, UsageFrequency], ...]
    functional_rules: Tuple[Tuple[NodePredicate, FunctionalGroup], ...]
    relationships: Tuple[NodeRelationship, ...]
    max_related_nodes: int = 5

    @classmethod
    def from_rules(cls, rules: GroupingRules) -> "GroupingTables":
        frequency_rules = (
            (_keyword_predicate(rules.frequency.essential), UsageFrequency.ESSENTIAL),
            (_keyword_predicate(rules.frequency.common), UsageFrequency.COMMON),
        )

        def compile_rule(rule: FunctionalRule) -> Tuple[NodePredicate, FunctionalGroup]:
            return _keyword_predicate(rule.keywords, rule.flags), rule.group

        relationships = tuple(
            NodeRelationship(
                source_node=r.source,
                target_node=r.target,
                relationship_type=r.relationship_type,
                description=r.description,
            )
            for r in rules.relationships
        )

        return cls(
            frequency_rules=frequency_rules,
            functional_rules=tuple(compile_rule(r) for r in rules.functional_groups),
            relationships=relationships,
            max_related_nodes=rules.max_related_nodes,
        )


def classify_frequency(node: NodeRecord, tables: GroupingTables) -> UsageFrequency:
    """First matching keyword list wins; no match means specialized"""
    for predicate, frequency in tables.frequency_rules:
        if predicate(node):
            return frequency
    return UsageFrequency.SPECIALIZED


def classify_functions(node: NodeRecord, tables: GroupingTables) -> Tuple[FunctionalGroup, ...]:
    groups: List[FunctionalGroup] = []
    for predicate, group in tables.functional_rules:
        if predicate(node) and group not in groups:
            groups.append(group)
    if not groups:
        groups.append(FunctionalGroup.UTILITY)
    return tuple(groups)


def generate_tags(node: NodeRecord) -> Tuple[str, ...]:
    tags = []
    if node.is_trigger:
        tags.append("trigger")
    if node.is_webhook:
        tags.append("webhook")
    if node.is_ai_tool:
        tags.append("ai")
    if node.has_credentials:
        tags.append("requires-auth")
    if node.has_operations:
        tags.append("multi-operation")
    return tuple(tags)


def classify_node(node: NodeRecord, tables: GroupingTables) -> GroupedNode:
    return GroupedNode(
        node_type=node.node_type,
        display_name=node.display_name,
        description=node.description,
        usage_frequency=classify_frequency(node, tables),
        functional_groups=classify_functions(node, tables),
        tags=generate_tags(node),
    )


def find_related_nodes(node: GroupedNode, all_nodes: Sequence[GroupedNode], limit: int = 5) -> Tuple[str, ...]:
    """Other nodes sharing at least one functional group, in input order"""
    related = []
    groups = set(node.functional_groups)
    for other in all_nodes:
        if len(related) >= limit:
            break
        if other.node_type == node.node_type:
            continue
        if groups.intersection(other.functional_groups):
            related.append(other.node_type)
    return tuple(related)


def applicable_relationships(
    nodes: Sequence[NodeRecord],
    relationships: Sequence[NodeRelationship],
) -> List[NodeRelationship]:
    """Keep relationships whose two endpoints both appear among the nodes"""
    identities = [_normalize_identity(node.node_type) for node in nodes]

    def present(name: str) -> bool:
        needle = _normalize_endpoint(name)
        return any(needle in identity for identity in identities)

    return [r for r in relationships if present(r.source_node) and present(r.target_node)]


def group_nodes(nodes: Sequence[NodeRecord], tables: GroupingTables) -> GroupingResult:
    classified = [classify_node(node, tables) for node in nodes]
    grouped = [
        replace(node, related_nodes=find_related_nodes(node, classified, tables.max_related_nodes))
        for node in classified
    ]

    by_frequency: Dict[UsageFrequency, List[GroupedNode]] = {f: [] for f in UsageFrequency}
    by_function: Dict[FunctionalGroup, List[GroupedNode]] = {g: [] for g in FunctionalGroup}
    for node in grouped:
        by_frequency[node.usage_frequency].append(node)
        for group in node.functional_groups:
            by_function[group].append(node)

    relationships = applicable_relationships(nodes, tables.relationships)
    logger.info(f"Grouped {len(grouped)} nodes, {len(relationships)} relationships apply")

    return GroupingResult(
        nodes=grouped,
        by_frequency=by_frequency,
        by_function=by_function,
        relationships=relationships,
    )


class NodeGrouper:
    """Grouping rules bound to one configuration"""

    def __init__(self, rules: GroupingRules):
        self.rules = rules
        self.tables = GroupingTables.from_rules(rules)

    def group(self, nodes: Sequence[NodeRecord]) -> GroupingResult:
        return group_nodes(nodes, self.tables)

    @staticmethod
    def get_nodes_by_frequency(result: GroupingResult, frequency: UsageFrequency) -> List[GroupedNode]:
        return result.by_frequency.get(frequency, [])

    @staticmethod
    def get_nodes_by_function(result: GroupingResult, group: FunctionalGroup) -> List[GroupedNode]:
        return result.by_function.get(group, [])

    @staticmethod
    def generate_statistics(result: GroupingResult) -> Dict:
        return {
            "total_nodes": len(result.nodes),
            "frequency_distribution": {f.value: len(n) for f, n in result.by_frequency.items()},
            "function_distribution": {g.value: len(n) for g, n in result.by_function.items()},
            "relationships_count": len(result.relationships),
        }
