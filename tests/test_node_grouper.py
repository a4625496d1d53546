"""
Node Grouper Tests
"""

from n8n_skillpack.config import load_grouping_rules
from n8n_skillpack.models.nodes import FunctionalGroup, RelationshipType, UsageFrequency
from n8n_skillpack.services.node_grouper import (
    GroupingTables,
    NodeGrouper,
    applicable_relationships,
    classify_frequency,
    classify_functions,
    generate_tags,
    group_nodes,
)


def test_frequency_buckets(make_record, grouping_rules):
    tables = GroupingTables.from_rules(grouping_rules)
    assert classify_frequency(make_record("n8n-nodes-base.httpRequest"), tables) == UsageFrequency.ESSENTIAL
    assert classify_frequency(make_record("n8n-nodes-base.slack"), tables) == UsageFrequency.COMMON
    assert classify_frequency(make_record("n8n-nodes-base.postgres"), tables) == UsageFrequency.SPECIALIZED


def test_essential_keywords_are_checked_first(make_record, grouping_rules):
    tables = GroupingTables.from_rules(grouping_rules)
    both = make_record("n8n-nodes-base.slackCode")
    assert classify_frequency(both, tables) == UsageFrequency.ESSENTIAL


def test_functional_groups(make_record, grouping_rules):
    tables = GroupingTables.from_rules(grouping_rules)

    assert classify_functions(make_record("n8n-nodes-base.slack"), tables) == (FunctionalGroup.COMMUNICATION,)
    assert classify_functions(make_record("n8n-nodes-base.slackToPostgres"), tables) == (
        FunctionalGroup.COMMUNICATION,
        FunctionalGroup.DATABASE,
    )
    assert classify_functions(make_record("n8n-nodes-base.cron", is_trigger=True), tables) == (
        FunctionalGroup.AUTOMATION,
    )


def test_unmatched_node_is_utility(make_record, grouping_rules):
    tables = GroupingTables.from_rules(grouping_rules)
    assert classify_functions(make_record("n8n-nodes-base.zzz"), tables) == (FunctionalGroup.UTILITY,)


def test_tags_follow_flags(make_record):
    node = make_record(
        "n8n-nodes-base.x",
        is_trigger=True,
        is_webhook=True,
        is_ai_tool=True,
        has_credentials=True,
        has_operations=True,
    )
    assert generate_tags(node) == ("trigger", "webhook", "ai", "requires-auth", "multi-operation")
    assert generate_tags(make_record("n8n-nodes-base.y")) == ()


def test_related_nodes_are_capped_and_in_input_order(make_record, grouping_rules):
    names = ["slack", "telegram", "discord", "slackA", "slackB", "slackC", "slackD"]
    nodes = [make_record(f"n8n-nodes-base.{name}") for name in names]
    result = group_nodes(nodes, GroupingTables.from_rules(grouping_rules))

    first = result.nodes[0]
    assert first.related_nodes == tuple(f"n8n-nodes-base.{n}" for n in names[1:6])
    for node in result.nodes:
        assert node.node_type not in node.related_nodes
        assert len(node.related_nodes) <= 5


def test_related_nodes_need_a_shared_group(make_record, grouping_rules):
    nodes = [make_record("n8n-nodes-base.slack"), make_record("n8n-nodes-base.postgres")]
    result = group_nodes(nodes, GroupingTables.from_rules(grouping_rules))
    assert all(node.related_nodes == () for node in result.nodes)


def test_relationships_need_both_endpoints(make_record, grouping_rules):
    tables = GroupingTables.from_rules(grouping_rules)
    both = [make_record("n8n-nodes-base.postgres"), make_record("n8n-nodes-base.mySql")]
    one = [make_record("n8n-nodes-base.postgres")]

    found = applicable_relationships(both, tables.relationships)
    assert [(r.source_node, r.target_node) for r in found] == [("Postgres", "MySQL")]
    assert found[0].relationship_type == RelationshipType.ALTERNATIVE
    assert applicable_relationships(one, tables.relationships) == []


def test_relationship_endpoints_ignore_spaces(make_record, grouping_rules):
    tables = GroupingTables.from_rules(grouping_rules)
    nodes = [make_record("n8n-nodes-base.webhook"), make_record("n8n-nodes-base.httpRequest")]
    found = applicable_relationships(nodes, tables.relationships)
    assert [r.target_node for r in found] == ["HTTP Request"]


def test_grouper_buckets_and_statistics(make_record, grouping_rules):
    grouper = NodeGrouper(grouping_rules)
    result = grouper.group([
        make_record("n8n-nodes-base.code"),
        make_record("n8n-nodes-base.slack"),
        make_record("n8n-nodes-base.postgres"),
        make_record("n8n-nodes-base.mySql"),
    ])

    assert [n.node_type for n in grouper.get_nodes_by_frequency(result, UsageFrequency.ESSENTIAL)] == [
        "n8n-nodes-base.code"
    ]
    assert len(grouper.get_nodes_by_function(result, FunctionalGroup.DATABASE)) == 2

    stats = grouper.generate_statistics(result)
    assert stats["total_nodes"] == 4
    assert stats["frequency_distribution"] == {"essential": 1, "common": 1, "specialized": 2}
    assert stats["function_distribution"]["utility"] == 1
    assert stats["relationships_count"] == 1


def test_shipped_rules_tag_ai_nodes_by_flag(make_record):
    tables = GroupingTables.from_rules(load_grouping_rules())
    node = make_record("n8n-nodes-base.zzz", is_ai_tool=True)
    assert FunctionalGroup.AI_ML in classify_functions(node, tables)
