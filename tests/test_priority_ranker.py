"""
Priority Ranker Tests

Covers factor bounds, identity normalization, tie-breaking and the
position-based tier assignment.
"""

import pytest
from pydantic import ValidationError

from n8n_skillpack.models.nodes import PriorityTier
from n8n_skillpack.models.schemas import PriorityConfig
from n8n_skillpack.services.priority_ranker import (
    PriorityRanker,
    ScoringTables,
    assign_tiers,
    community_popularity_factor,
    documentation_quality_factor,
    normalize_node_name,
    score_nodes,
    sort_by_score,
    usage_frequency_factor,
    versatility_factor,
)


def _config(essential_max: int, common_max: int, **extra) -> PriorityConfig:
    data = {
        "priority_tiers": {
            "essential": {"tier": 1, "max_nodes": essential_max},
            "common": {"tier": 2, "max_nodes": common_max},
            "specialized": {"tier": 3, "max_nodes": 1000},
        }
    }
    data.update(extra)
    return PriorityConfig.model_validate(data)


@pytest.mark.parametrize("raw", [
    "n8n-nodes-base.Slack",
    "nodes-base.slack",
    "slack",
    "SLACK",
])
def test_normalize_node_name_strips_prefixes(raw):
    assert normalize_node_name(raw) == "slack"


def test_normalize_node_name_handles_scoped_langchain():
    assert normalize_node_name("@n8n/n8n-nodes-langchain.lmChatOpenAi") == "lmchatopenai"


def test_three_node_example_assigns_one_node_per_tier(make_record):
    nodes = [
        make_record("nodes-base.c", "C", usage_count=0),
        make_record("nodes-base.a", "A", usage_count=100),
        make_record("nodes-base.b", "B", usage_count=50),
    ]
    ranked = PriorityRanker(_config(1, 1)).rank_nodes(nodes)

    assert [(n.display_name, n.rank, n.tier) for n in ranked] == [
        ("A", 1, PriorityTier.ESSENTIAL),
        ("B", 2, PriorityTier.COMMON),
        ("C", 3, PriorityTier.SPECIALIZED),
    ]


def test_all_factors_and_totals_are_bounded(make_record, priority_config):
    nodes = [
        make_record(
            "n8n-nodes-base.httpRequest",
            "HTTP Request",
            description="Makes requests",
            has_documentation=True,
            property_count=25,
            usage_count=900,
            is_trigger=True,
        ),
        make_record("nodes-base.obscure", "Obscure", usage_count=0, category="Nope"),
        make_record("nodes-base.webhook", "Webhook", is_webhook=True, usage_count=10_000),
    ]
    scored = score_nodes(nodes, ScoringTables.from_config(priority_config))

    for node in scored:
        for value in (
            node.factors.usage_frequency,
            node.factors.documentation_quality,
            node.factors.community_popularity,
            node.factors.versatility,
            node.score,
        ):
            assert 0.0 <= value <= 1.0


def test_usage_factor_is_zero_when_nobody_is_used(make_record, priority_config):
    nodes = [make_record("nodes-base.a"), make_record("nodes-base.b")]
    scored = score_nodes(nodes, ScoringTables.from_config(priority_config))
    assert all(n.factors.usage_frequency == 0.0 for n in scored)
    assert usage_frequency_factor(5, 0) == 0.0
    assert usage_frequency_factor(5, 10) == 0.5


def test_documentation_quality_factor(make_record):
    assert documentation_quality_factor(make_record("x")) == 0.0
    assert documentation_quality_factor(make_record("x", description="d")) == pytest.approx(0.3)
    full = make_record("x", description="d", has_documentation=True, property_count=3)
    assert documentation_quality_factor(full) == pytest.approx(1.0)


def test_community_popularity_prefers_curated_lists(make_record, priority_config):
    tables = ScoringTables.from_config(priority_config)

    assert community_popularity_factor(make_record("n8n-nodes-base.HttpRequest"), tables) == 1.0
    assert community_popularity_factor(make_record("nodes-base.slack"), tables) == 0.7
    boosted = make_record("@n8n/n8n-nodes-langchain.lmChatOpenAi")
    assert community_popularity_factor(boosted, tables) == 0.8
    assert community_popularity_factor(make_record("nodes-base.x", category="Communication"), tables) == 0.5
    assert community_popularity_factor(make_record("nodes-base.x", category="Unheard Of"), tables) == 0.2


def test_versatility_factor(make_record, priority_config):
    tables = ScoringTables.from_config(priority_config)

    assert versatility_factor(make_record("nodes-base.code"), tables) == pytest.approx(0.5)
    assert versatility_factor(make_record("nodes-base.x", property_count=6), tables) == pytest.approx(0.2)
    assert versatility_factor(make_record("nodes-base.x", property_count=1), tables) == pytest.approx(0.1)
    trigger = make_record("nodes-base.x", is_trigger=True, property_count=11)
    assert versatility_factor(trigger, tables) == pytest.approx(0.5)
    explicit = make_record("nodes-base.x", node_category="webhook")
    assert versatility_factor(explicit, tables) == pytest.approx(0.2)
    maxed = make_record("nodes-base.webhook", is_webhook=True, property_count=40)
    assert versatility_factor(maxed, tables) == pytest.approx(1.0)


def test_ties_are_broken_by_display_name(make_record, priority_config):
    nodes = [
        make_record("nodes-base.zeta", "Beta"),
        make_record("nodes-base.alpha", "Alpha"),
    ]
    scored = sort_by_score(score_nodes(nodes, ScoringTables.from_config(priority_config)))
    assert scored[0].score == scored[1].score
    assert [n.display_name for n in scored] == ["Alpha", "Beta"]


@pytest.mark.parametrize("total,essential_max,common_max", [
    (10, 3, 4),
    (5, 10, 10),
    (7, 0, 3),
    (6, 2, 0),
    (0, 2, 2),
])
def test_tier_sizes_follow_caps(make_record, priority_config, total, essential_max, common_max):
    nodes = [make_record(f"nodes-base.n{i}", f"Node {i:02d}", usage_count=i) for i in range(total)]
    scored = sort_by_score(score_nodes(nodes, ScoringTables.from_config(priority_config)))
    tiered = assign_tiers(scored, essential_max, common_max)

    grouped = PriorityRanker.group_by_tier(tiered)
    expected_essential = min(essential_max, total)
    expected_common = min(common_max, max(total - essential_max, 0))
    assert len(grouped[PriorityTier.ESSENTIAL]) == expected_essential
    assert len(grouped[PriorityTier.COMMON]) == expected_common
    assert len(grouped[PriorityTier.SPECIALIZED]) == total - expected_essential - expected_common
    assert [n.rank for n in tiered] == list(range(1, total + 1))


def test_assign_tiers_is_idempotent(make_record, priority_config):
    nodes = [make_record(f"nodes-base.n{i}", usage_count=i) for i in range(6)]
    scored = sort_by_score(score_nodes(nodes, ScoringTables.from_config(priority_config)))
    once = assign_tiers(scored, 2, 2)
    assert assign_tiers(once, 2, 2) == once


def test_weights_over_one_are_rejected():
    with pytest.raises(ValidationError):
        _config(1, 1, ranking_criteria={
            "usage_frequency": {"weight": 0.6},
            "documentation_quality": {"weight": 0.6},
        })


def test_custom_weights_change_the_score(make_record):
    config = _config(1, 1, ranking_criteria={
        "usage_frequency": {"weight": 1.0},
        "documentation_quality": {"weight": 0.0},
        "community_popularity": {"weight": 0.0},
        "versatility": {"weight": 0.0},
    })
    ranked = PriorityRanker(config).rank_nodes([
        make_record("nodes-base.a", usage_count=10),
        make_record("nodes-base.b", usage_count=5, description="documented", has_documentation=True),
    ])
    assert [n.score for n in ranked] == [pytest.approx(1.0), pytest.approx(0.5)]


def test_generate_report(make_record):
    ranker = PriorityRanker(_config(1, 1))
    ranked = ranker.rank_nodes([make_record(f"nodes-base.n{i}", usage_count=i) for i in range(4)])
    report = ranker.generate_report(ranked, top_count=2)

    assert report["total_nodes"] == 4
    assert report["tier_counts"] == {"essential": 1, "common": 1, "specialized": 2}
    assert [n["rank"] for n in report["top_nodes"]] == [1, 2]
    assert report["average_scores"]["essential"] >= report["average_scores"]["specialized"]
