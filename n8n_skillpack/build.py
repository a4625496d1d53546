#!/usr/bin/env python3
"""
n8n skill pack builder
Ranks, categorizes and packages the node catalog into a tiered documentation corpus
"""

import argparse
import json
import logging
import os
import shutil
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .catalog import CatalogError, apply_usage_stats, load_node_catalog, load_usage_stats
from .config import (
    ConfigurationError,
    load_build_config,
    load_category_config,
    load_community_packages,
    load_grouping_rules,
    load_priority_config,
)
from .models.nodes import (
    CategorizedNode,
    GroupingResult,
    NodeRecord,
    OrganizationResult,
    PackagedNode,
    PackagingResult,
    ScoredNode,
)
from .models.schemas import CategoryConfig, CommunityPackage
from .services.category_organizer import CategoryOrganizer
from .services.master_index import MasterIndexBuilder
from .services.node_grouper import NodeGrouper
from .services.node_renderer import render_node_document
from .services.priority_ranker import PriorityRanker
from .services.tiered_packager import TieredPackager

logger = logging.getLogger(__name__)

FALLBACK_CATEGORY = "misc"
REPORT_FILE_NAME = "build-report.json"


class OutputDirectoryError(Exception):
    """The output directory cannot be safely regenerated"""


def prepare_output_dir(output_dir: Path) -> None:
    """Remove a previous build and recreate the directory

    Only empty directories or ones holding a previous build-report.json are removed.
    """
    if output_dir.exists():
        if not output_dir.is_dir():
            raise OutputDirectoryError(f"Output path is not a directory: {output_dir}")
        has_content = any(output_dir.iterdir())
        is_previous_build = (output_dir / REPORT_FILE_NAME).is_file()
        if has_content and not is_previous_build:
            raise OutputDirectoryError(
                f"Refusing to clean {output_dir}: it is not empty and holds no previous build"
            )
        shutil.rmtree(output_dir)
    output_dir.mkdir(parents=True)


def resolve_category(
    record: NodeRecord,
    categorized: Optional[CategorizedNode],
    category_config: CategoryConfig,
) -> Tuple[str, Optional[str]]:
    """Classifier match, else a catalog hint naming a configured category, else misc"""
    if categorized is not None:
        return categorized.category, categorized.subcategory
    if record.category in category_config.categories:
        return record.category, None
    return FALLBACK_CATEGORY, None


def split_by_priority(
    ranked: Sequence[PackagedNode],
    high_priority_count: int,
) -> Tuple[List[PackagedNode], List[PackagedNode]]:
    count = max(high_priority_count, 0)
    return list(ranked[:count]), list(ranked[count:])


class SkillPackBuilder:
    """Runs the whole build from catalog to INDEX.md"""

    def __init__(
        self,
        catalog_path: Path,
        output_dir: Path,
        usage_stats_path: Optional[Path] = None,
        categories_path: Optional[Path] = None,
        priorities_path: Optional[Path] = None,
        grouping_rules_path: Optional[Path] = None,
        build_config_path: Optional[Path] = None,
        community_packages_path: Optional[Path] = None,
        show_progress: bool = True,
    ):
        self.catalog_path = Path(catalog_path)
        self.output_dir = Path(output_dir)
        self.usage_stats_path = usage_stats_path
        self.categories_path = categories_path
        self.priorities_path = priorities_path
        self.grouping_rules_path = grouping_rules_path
        self.build_config_path = build_config_path
        self.community_packages_path = community_packages_path
        self.show_progress = show_progress

    def load_configuration(self) -> None:
        print(" Loading configuration...")
        self.category_config = load_category_config(self.categories_path)
        self.priority_config = load_priority_config(self.priorities_path)
        self.grouping_rules = load_grouping_rules(self.grouping_rules_path)
        self.build_config = load_build_config(self.build_config_path)

        self.community_packages: List[CommunityPackage] = []
        if self.community_packages_path:
            self.community_packages = load_community_packages(self.community_packages_path)

    def load_nodes(self) -> List[NodeRecord]:
        print(f" Loading node catalog from {self.catalog_path}...")
        records = load_node_catalog(self.catalog_path)
        if self.usage_stats_path:
            records = apply_usage_stats(records, load_usage_stats(self.usage_stats_path))
        print(f"   Nodes loaded: {len(records)}")
        return records

    def package_nodes(
        self,
        ranked: Sequence[ScoredNode],
        organization: OrganizationResult,
        grouping: GroupingResult,
    ) -> List[PackagedNode]:
        categorized = {n.node_type: n for n in organization.top_nodes + organization.remaining_nodes}
        grouped = {n.node_type: n for n in grouping.nodes}

        packaged = []
        for scored in ranked:
            category, subcategory = resolve_category(
                scored.record, categorized.get(scored.node_type), self.category_config
            )
            packaged.append(PackagedNode(
                scored=scored,
                category=category,
                subcategory=subcategory,
                grouping=grouped.get(scored.node_type),
            ))
        return packaged

    def build_report(
        self,
        ranker: PriorityRanker,
        ranked: Sequence[ScoredNode],
        organizer: CategoryOrganizer,
        organization: OrganizationResult,
        grouping: GroupingResult,
        packaging: PackagingResult,
    ) -> Dict[str, Any]:
        return {
            "version": self.build_config.version,
            "ranking": ranker.generate_report(ranked),
            "organization": {
                **organizer.generate_statistics(organization),
                "uncategorized_nodes": list(organization.uncategorized_nodes),
            },
            "grouping": NodeGrouper.generate_statistics(grouping),
            "packaging": {
                "individual_files": [r.path for r in packaging.resource_files],
                "merged_files": [
                    {"path": info.path, "node_count": info.node_count} for info in packaging.merged_files
                ],
                "failed_nodes": list(packaging.failed_nodes),
            },
        }

    def run_build(self) -> Dict[str, Any]:
        """Run every stage in order and return the build report"""
        print("\n Starting n8n Skill Pack Build\n")
        print("=" * 50)

        # Step 1: Configuration (fatal)
        self.load_configuration()

        # Step 2: Catalog
        records = self.load_nodes()

        # Step 3: Score and tier
        print(" Ranking nodes...")
        ranker = PriorityRanker(self.priority_config)
        ranked = ranker.rank_nodes(records)

        # Step 4: Classify and group
        print(" Organizing nodes by category and function...")
        organizer = CategoryOrganizer(self.category_config)
        organization = organizer.organize(records, self.build_config.top_nodes_limit)
        grouping = NodeGrouper(self.grouping_rules).group(records)
        if organization.uncategorized_nodes:
            print(f"   Uncategorized nodes: {len(organization.uncategorized_nodes)}")

        # Step 5-6: Resolve categories and split tiers
        packaged = self.package_nodes(ranked, organization, grouping)
        high_priority, low_priority = split_by_priority(packaged, self.build_config.high_priority_node_count)

        # Step 7: Package
        print(f" Packaging {len(high_priority)} individual and {len(low_priority)} merged nodes...")
        prepare_output_dir(self.output_dir)
        packager = TieredPackager(
            self.output_dir,
            max_nodes_per_merged_file=self.build_config.max_nodes_per_merged_file,
            description_max_length=self.build_config.description_max_length,
            category_names={key: c.name for key, c in self.category_config.categories.items()},
            show_progress=self.show_progress,
        )
        packaging = packager.generate_tiered(high_priority, low_priority, render_node_document)

        # Step 8: Master index
        print(" Building master index...")
        index_builder = MasterIndexBuilder(
            title=self.build_config.index_title,
            version=self.build_config.version,
            category_config=self.category_config,
            description_max_length=self.build_config.description_max_length,
        )
        content = index_builder.build(
            high_priority,
            low_priority,
            packaging,
            relationships=grouping.relationships,
            community_packages=self.community_packages,
        )
        index_builder.write(self.output_dir, content)

        # Step 9: Report
        report = self.build_report(ranker, ranked, organizer, organization, grouping, packaging)
        with open(self.output_dir / REPORT_FILE_NAME, "w", encoding="utf-8", newline="\n") as f:
            json.dump(report, f, indent=2, ensure_ascii=False)
            f.write("\n")

        print("\n" + "=" * 50)
        print(" Build Summary:")
        print(f"   Nodes ranked: {len(ranked)}")
        print(f"   Individual files: {len(packaging.resource_files)}")
        print(f"   Merged files: {len(packaging.merged_files)}")
        print(f"   Relationships: {len(grouping.relationships)}")
        if packaging.failed_nodes:
            print(f"   Failed nodes: {len(packaging.failed_nodes)}")
        print("\n Output directory: " + str(self.output_dir))
        print("\n Skill pack build complete!\n")
        return report


def setup_logging(verbose: bool = False, quiet: bool = False) -> None:
    if verbose:
        os.environ['LOG_LEVEL'] = 'DEBUG'
    elif quiet:
        os.environ['LOG_LEVEL'] = 'ERROR'

    level_name = os.getenv('LOG_LEVEL', 'INFO').upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Build the tiered n8n node documentation pack")
    parser.add_argument("--catalog", required=True, type=Path, help="Node catalog JSON file")
    parser.add_argument("--output", default=Path("./output"), type=Path, help="Output directory")
    parser.add_argument("--usage-stats", type=Path, help="Optional usage statistics JSON file")
    parser.add_argument("--categories", type=Path, help="Category configuration (defaults to packaged copy)")
    parser.add_argument("--priorities", type=Path, help="Priority configuration (defaults to packaged copy)")
    parser.add_argument("--grouping-rules", type=Path, help="Grouping rules (defaults to packaged copy)")
    parser.add_argument("--build-config", type=Path, help="Build settings (defaults to packaged copy)")
    parser.add_argument("--community-packages", type=Path, help="Optional community packages JSON file")
    parser.add_argument("--no-progress", action="store_true", help="Disable progress bars")
    parser.add_argument("--verbose", action="store_true", help="Enable verbose logging (DEBUG level)")
    parser.add_argument("--quiet", action="store_true", help="Minimal logging (ERROR level only)")
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    setup_logging(verbose=args.verbose, quiet=args.quiet)

    builder = SkillPackBuilder(
        catalog_path=args.catalog,
        output_dir=args.output,
        usage_stats_path=args.usage_stats,
        categories_path=args.categories,
        priorities_path=args.priorities,
        grouping_rules_path=args.grouping_rules,
        build_config_path=args.build_config,
        community_packages_path=args.community_packages,
        show_progress=not args.no_progress,
    )

    try:
        builder.run_build()
    except (ConfigurationError, CatalogError, OutputDirectoryError) as e:
        logger.error(str(e))
        print(f"❌ Build failed: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
