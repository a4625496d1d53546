"""
Node priority ranking for the n8n skill pack
Scores every node on usage, documentation, popularity and versatility,
then ranks the nodes and assigns them to essential / common / specialized tiers
"""

import logging
import re
from dataclasses import dataclass, replace
from typing import Dict, FrozenSet, Iterable, List, Mapping, Sequence

from ..models.nodes import NodeRecord, PriorityTier, ScoredNode, ScoringFactors
from ..models.schemas import PriorityConfig, ScoringWeights

logger = logging.getLogger(__name__)

_PRODUCT_PREFIX = re.compile(r"^(@n8n/)?(n8n-)?")
_NAMESPACE_PREFIX = re.compile(r"^(nodes-base\.|nodes-langchain\.|langchain\.)")


def normalize_node_name(node_name: str) -> str:
    """Lower-case a node identity and strip its product and package prefixes

    n8n-nodes-base.Slack, nodes-base.slack and slack all normalize to "slack".
    """
    name = node_name.strip().lower()
    name = _PRODUCT_PREFIX.sub("", name, count=1)
    return _NAMESPACE_PREFIX.sub("", name, count=1)


@dataclass(frozen=True)
class ScoringTables:
    """Lookup tables derived once from the priority configuration"""
    essential: FrozenSet[str]
    common: FrozenSet[str]
    boosted: FrozenSet[str]
    core: FrozenSet[str]
    category_base_scores: Mapping[str, float]
    weights: ScoringWeights
    default_category_score: float = 0.2

    @classmethod
    def from_config(cls, config: PriorityConfig) -> "ScoringTables":
        def normalized(names: Iterable[str]) -> FrozenSet[str]:
            return frozenset(normalize_node_name(n) for n in names)

        return cls(
            essential=normalized(config.priority_tiers.essential.nodes),
            common=normalized(config.priority_tiers.common.nodes),
            boosted=normalized(config.boosted_nodes.nodes),
            core=normalized(config.core_nodes),
            category_base_scores=dict(config.category_base_scores),
            weights=config.weights,
        )


def usage_frequency_factor(usage_count: int, max_usage_count: int) -> float:
    if max_usage_count <= 0:
        return 0.0
    return min(max(usage_count, 0) / max_usage_count, 1.0)


def documentation_quality_factor(node: NodeRecord) -> float:
    score = 0.0
    if node.description:
        score += 0.3
    if node.has_documentation:
        score += 0.5
    if node.property_count > 0:
        score += 0.2
    return min(score, 1.0)


def community_popularity_factor(node: NodeRecord, tables: ScoringTables) -> float:
    """Curated list membership, falling back to a per-category base score"""
    name = normalize_node_name(node.node_type)
    if name in tables.essential:
        return 1.0
    if name in tables.common:
        return 0.7
    if name in tables.boosted:
        return 0.8
    return tables.category_base_scores.get(node.category, tables.default_category_score)


def versatility_factor(node: NodeRecord, tables: ScoringTables) -> float:
    score = 0.0
    if normalize_node_name(node.node_type) in tables.core:
        score += 0.5

    if node.property_count > 10:
        score += 0.3
    elif node.property_count > 5:
        score += 0.2
    elif node.property_count > 0:
        score += 0.1

    # Entry points of a workflow
    if node.structural_category in ("trigger", "webhook"):
        score += 0.2

    return min(score, 1.0)


def score_node(node: NodeRecord, max_usage_count: int, tables: ScoringTables) -> ScoredNode:
    factors = ScoringFactors(
        usage_frequency=usage_frequency_factor(node.usage_count, max_usage_count),
        documentation_quality=documentation_quality_factor(node),
        community_popularity=community_popularity_factor(node, tables),
        versatility=versatility_factor(node, tables),
    )
    weights = tables.weights
    total = (
        factors.usage_frequency * weights.usage_frequency
        + factors.documentation_quality * weights.documentation_quality
        + factors.community_popularity * weights.community_popularity
        + factors.versatility * weights.versatility
    )
    return ScoredNode(record=node, factors=factors, score=min(max(total, 0.0), 1.0))


def score_nodes(nodes: Sequence[NodeRecord], tables: ScoringTables) -> List[ScoredNode]:
    """Score nodes in input order; usage is normalized against the busiest node"""
    max_usage_count = max([node.usage_count for node in nodes] + [1])
    return [score_node(node, max_usage_count, tables) for node in nodes]


def sort_by_score(scored_nodes: Iterable[ScoredNode]) -> List[ScoredNode]:
    """Descending score; ties fall back to display name, then identity"""
    return sorted(
        scored_nodes,
        key=lambda n: (-n.score, n.record.display_name, n.record.node_type),
    )


def assign_tiers(
    sorted_nodes: Sequence[ScoredNode],
    essential_max: int,
    common_max: int,
) -> List[ScoredNode]:
    """Give each node its 1-based rank and a tier by position

    The first essential_max nodes are essential, the next common_max are
    common and everything after is specialized.
    """
    essential_max = max(essential_max, 0)
    common_max = max(common_max, 0)

    tiered = []
    for index, node in enumerate(sorted_nodes):
        if index < essential_max:
            tier = PriorityTier.ESSENTIAL
        elif index < essential_max + common_max:
            tier = PriorityTier.COMMON
        else:
            tier = PriorityTier.SPECIALIZED
        tiered.append(replace(node, rank=index + 1, tier=tier))
    return tiered


class PriorityRanker:
    """Rank nodes against one priority configuration"""

    def __init__(self, config: PriorityConfig):
        self.config = config
        self.tables = ScoringTables.from_config(config)

    def rank_nodes(self, nodes: Sequence[NodeRecord]) -> List[ScoredNode]:
        scored = sort_by_score(score_nodes(nodes, self.tables))
        ranked = assign_tiers(
            scored,
            essential_max=self.config.priority_tiers.essential.max_nodes,
            common_max=self.config.priority_tiers.common.max_nodes,
        )
        logger.info(f"Ranked {len(ranked)} nodes")
        return ranked

    @staticmethod
    def group_by_tier(scored_nodes: Sequence[ScoredNode]) -> Dict[PriorityTier, List[ScoredNode]]:
        grouped = {tier: [] for tier in PriorityTier}
        for node in scored_nodes:
            grouped[node.tier].append(node)
        return grouped

    @staticmethod
    def get_nodes_by_tier(scored_nodes: Sequence[ScoredNode], tier: PriorityTier) -> List[ScoredNode]:
        return [node for node in scored_nodes if node.tier == tier]

    def generate_report(self, scored_nodes: Sequence[ScoredNode], top_count: int = 10) -> Dict:
        """Tier counts, average score per tier and the top ranked nodes"""
        grouped = self.group_by_tier(scored_nodes)

        def average(nodes: List[ScoredNode]) -> float:
            if not nodes:
                return 0.0
            return sum(n.score for n in nodes) / len(nodes)

        return {
            "total_nodes": len(scored_nodes),
            "tier_counts": {tier.value: len(nodes) for tier, nodes in grouped.items()},
            "average_scores": {tier.value: round(average(nodes), 4) for tier, nodes in grouped.items()},
            "top_nodes": [
                {
                    "rank": n.rank,
                    "node_type": n.node_type,
                    "display_name": n.display_name,
                    "score": round(n.score, 4),
                    "tier": n.tier.value,
                }
                for n in list(scored_nodes)[:top_count]
            ],
        }
