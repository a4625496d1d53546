"""
Pydantic models for the skill pack configuration documents
"""

from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from .nodes import FunctionalGroup, RelationshipType

DEFAULT_WEIGHTS = {
    "usage_frequency": 0.4,
    "documentation_quality": 0.2,
    "community_popularity": 0.2,
    "versatility": 0.2,
}

DEFAULT_CATEGORY_BASE_SCORES = {
    "Core Nodes": 0.6,
    "Communication": 0.5,
    "Data & Storage": 0.5,
    "Development": 0.4,
    "AI": 0.4,
    "Marketing": 0.3,
    "Analytics": 0.3,
}

DEFAULT_CORE_NODES = ["httpRequest", "code", "webhook", "function", "set", "if"]


class CategoryDefinition(BaseModel):
    name: str = Field(..., description="Human readable category name")
    description: str = Field(default="", description="Short category summary")
    icon: str = Field(default="")
    priority: int = Field(..., description="Lower value means more important")
    nodes: List[str] = Field(default_factory=list, description="Exact node type names")
    subcategories: Dict[str, List[str]] = Field(default_factory=dict)


class CategoryConfig(BaseModel):
    categories: Dict[str, CategoryDefinition]


class TierConfig(BaseModel):
    tier: int
    description: str = ""
    max_nodes: int = Field(..., ge=0)
    nodes: List[str] = Field(default_factory=list)
    include_all_others: bool = False


class PriorityTiers(BaseModel):
    essential: TierConfig
    common: TierConfig
    specialized: TierConfig


class RankingCriterion(BaseModel):
    weight: float = Field(..., ge=0.0, le=1.0)
    description: str = ""


class BoostedNodes(BaseModel):
    description: str = ""
    nodes: List[str] = Field(default_factory=list)


class ScoringWeights(BaseModel):
    usage_frequency: float
    documentation_quality: float
    community_popularity: float
    versatility: float


class PriorityConfig(BaseModel):
    priority_tiers: PriorityTiers
    ranking_criteria: Dict[str, RankingCriterion] = Field(default_factory=dict)
    boosted_nodes: BoostedNodes = Field(default_factory=BoostedNodes)
    category_base_scores: Dict[str, float] = Field(
        default_factory=lambda: dict(DEFAULT_CATEGORY_BASE_SCORES)
    )
    core_nodes: List[str] = Field(default_factory=lambda: list(DEFAULT_CORE_NODES))

    @model_validator(mode="after")
    def check_weight_total(self) -> "PriorityConfig":
        total = sum(self.weights.model_dump().values())
        if total > 1.0 + 1e-9:
            raise ValueError(f"ranking weights sum to {total:.3f}, must not exceed 1.0")
        return self

    @property
    def weights(self) -> ScoringWeights:
        values = {}
        for key, default in DEFAULT_WEIGHTS.items():
            criterion = self.ranking_criteria.get(key)
            values[key] = criterion.weight if criterion is not None else default
        return ScoringWeights(**values)


NODE_FLAGS = (
    "is_trigger",
    "is_webhook",
    "is_ai_tool",
    "has_credentials",
    "has_operations",
    "has_documentation",
)


class FunctionalRule(BaseModel):
    group: FunctionalGroup
    keywords: List[str] = Field(default_factory=list)
    flags: List[str] = Field(default_factory=list, description="NodeRecord boolean attributes")

    @field_validator("flags")
    @classmethod
    def check_flags(cls, flags: List[str]) -> List[str]:
        unknown = [flag for flag in flags if flag not in NODE_FLAGS]
        if unknown:
            raise ValueError(f"unknown node flags {unknown}, expected any of {list(NODE_FLAGS)}")
        return flags


class RelationshipRule(BaseModel):
    source: str
    target: str
    relationship_type: RelationshipType
    description: str = ""


class FrequencyKeywords(BaseModel):
    essential: List[str] = Field(default_factory=list)
    common: List[str] = Field(default_factory=list)


class GroupingRules(BaseModel):
    frequency: FrequencyKeywords = Field(default_factory=FrequencyKeywords)
    functional_groups: List[FunctionalRule] = Field(default_factory=list)
    relationships: List[RelationshipRule] = Field(default_factory=list)
    max_related_nodes: int = Field(default=5, ge=0)


class BuildConfig(BaseModel):
    version: str = "1.0.0"
    index_title: str = "n8n Node Documentation Index"
    high_priority_node_count: int = Field(default=50, ge=0)
    max_nodes_per_merged_file: int = Field(default=100, ge=1)
    top_nodes_limit: int = Field(default=50, ge=0)
    description_max_length: int = Field(default=120, ge=10)


class CommunityPackage(BaseModel):
    name: str
    description: str = ""
    category: str = "utilities"
    npm_url: str = ""
    version: Optional[str] = None
    maintainer: Optional[str] = None
    repository: Optional[str] = None
