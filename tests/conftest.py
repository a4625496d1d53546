"""
Shared fixtures for the skill pack tests: node factories and inline configs
"""

from typing import Callable, Optional

import pytest

from n8n_skillpack.models.nodes import (
    NodeRecord,
    PackagedNode,
    PriorityTier,
    ScoredNode,
    ScoringFactors,
)
from n8n_skillpack.models.schemas import CategoryConfig, GroupingRules, PriorityConfig


def _make_record(node_type: str, display_name: Optional[str] = None, **kwargs) -> NodeRecord:
    if display_name is None:
        display_name = node_type.rsplit(".", 1)[-1].title()
    return NodeRecord(node_type=node_type, display_name=display_name, **kwargs)


def _make_packaged(
    node_type: str,
    display_name: Optional[str] = None,
    category: str = "misc",
    subcategory: Optional[str] = None,
    score: float = 0.5,
    rank: int = 1,
    tier: PriorityTier = PriorityTier.SPECIALIZED,
    **record_kwargs,
) -> PackagedNode:
    record = _make_record(node_type, display_name, **record_kwargs)
    scored = ScoredNode(
        record=record,
        factors=ScoringFactors(0.0, 0.0, 0.0, 0.0),
        score=score,
        rank=rank,
        tier=tier,
    )
    return PackagedNode(scored=scored, category=category, subcategory=subcategory)


@pytest.fixture
def make_record() -> Callable[..., NodeRecord]:
    return _make_record


@pytest.fixture
def make_packaged() -> Callable[..., PackagedNode]:
    return _make_packaged


@pytest.fixture
def simple_renderer() -> Callable[[PackagedNode], str]:
    """Title plus a body whose length varies with the display name"""

    def render(node: PackagedNode) -> str:
        body = [f"# {node.display_name}", ""]
        body.extend(f"detail {i} of {node.node_type}" for i in range(len(node.display_name) % 4 + 1))
        return "\n".join(body)

    return render


@pytest.fixture
def priority_config() -> PriorityConfig:
    return PriorityConfig.model_validate({
        "priority_tiers": {
            "essential": {"tier": 1, "max_nodes": 1, "nodes": ["httpRequest"]},
            "common": {"tier": 2, "max_nodes": 1, "nodes": ["slack"]},
            "specialized": {"tier": 3, "max_nodes": 1000, "include_all_others": True},
        },
        "boosted_nodes": {"nodes": ["lmChatOpenAi"]},
    })


@pytest.fixture
def category_config() -> CategoryConfig:
    return CategoryConfig.model_validate({
        "categories": {
            "core": {"name": "Core", "priority": 1, "nodes": ["code", "set", "if"]},
            "output": {
                "name": "Data Output",
                "priority": 3,
                "nodes": ["respondToWebhook"],
                "subcategories": {"communication": ["slack", "telegram"]},
            },
            "input": {
                "name": "Data Input",
                "priority": 2,
                "subcategories": {"databases": ["postgres", "mySql"]},
            },
        }
    })


@pytest.fixture
def grouping_rules() -> GroupingRules:
    return GroupingRules.model_validate({
        "frequency": {
            "essential": ["httpRequest", "code"],
            "common": ["slack"],
        },
        "functional_groups": [
            {"group": "communication", "keywords": ["slack", "telegram", "discord"]},
            {"group": "database", "keywords": ["postgres", "mysql"]},
            {"group": "automation", "keywords": ["webhook"], "flags": ["is_trigger"]},
        ],
        "relationships": [
            {
                "source": "Postgres",
                "target": "MySQL",
                "relationship_type": "alternative",
                "description": "Both are relational databases",
            },
            {
                "source": "Webhook",
                "target": "HTTP Request",
                "relationship_type": "complement",
                "description": "Receive and send",
            },
        ],
        "max_related_nodes": 5,
    })
