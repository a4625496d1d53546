"""
Configuration Loading Tests
"""

import json

import pytest

from n8n_skillpack.config import (
    ConfigurationError,
    load_build_config,
    load_category_config,
    load_community_packages,
    load_grouping_rules,
    load_priority_config,
)


def _write(path, data):
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


def test_packaged_defaults_load():
    categories = load_category_config()
    priorities = load_priority_config()
    rules = load_grouping_rules()
    build = load_build_config()

    assert {"trigger", "transform", "input", "output", "organization", "misc"} <= set(categories.categories)
    assert priorities.priority_tiers.essential.max_nodes == 10
    assert priorities.weights.usage_frequency == pytest.approx(0.4)
    assert rules.max_related_nodes == 5
    assert build.max_nodes_per_merged_file == 100
    assert build.high_priority_node_count == 50


def test_missing_file_is_a_configuration_error(tmp_path):
    with pytest.raises(ConfigurationError, match="not found"):
        load_category_config(tmp_path / "nope.json")


def test_invalid_json_is_a_configuration_error(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(ConfigurationError, match="Invalid JSON"):
        load_priority_config(path)


def test_category_without_priority_is_rejected(tmp_path):
    path = _write(tmp_path / "categories.json", {"categories": {"x": {"name": "X"}}})
    with pytest.raises(ConfigurationError):
        load_category_config(path)


def test_negative_tier_cap_is_rejected(tmp_path):
    path = _write(tmp_path / "priorities.json", {
        "priority_tiers": {
            "essential": {"tier": 1, "max_nodes": -1},
            "common": {"tier": 2, "max_nodes": 1},
            "specialized": {"tier": 3, "max_nodes": 1},
        }
    })
    with pytest.raises(ConfigurationError):
        load_priority_config(path)


def test_unknown_rule_flag_is_rejected(tmp_path):
    path = _write(tmp_path / "rules.json", {
        "functional_groups": [{"group": "automation", "flags": ["is_magic"]}]
    })
    with pytest.raises(ConfigurationError):
        load_grouping_rules(path)


def test_zero_merged_file_cap_is_rejected(tmp_path):
    path = _write(tmp_path / "build.json", {"max_nodes_per_merged_file": 0})
    with pytest.raises(ConfigurationError):
        load_build_config(path)


def test_community_packages_accept_list_or_object(tmp_path):
    as_list = _write(tmp_path / "list.json", [{"name": "n8n-nodes-a"}])
    as_object = _write(tmp_path / "object.json", {"packages": [{"name": "n8n-nodes-b", "category": "ai"}]})

    assert [p.name for p in load_community_packages(as_list)] == ["n8n-nodes-a"]
    packages = load_community_packages(as_object)
    assert packages[0].category == "ai"


def test_community_package_without_name_is_rejected(tmp_path):
    path = _write(tmp_path / "packages.json", [{"description": "nameless"}])
    with pytest.raises(ConfigurationError):
        load_community_packages(path)
