"""
Node data structures for the n8n skill pack builder
Immutable records flowing between the ranking, organizing and packaging stages
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class PriorityTier(str, Enum):
    """Importance tiers assigned by rank position"""
    ESSENTIAL = "essential"
    COMMON = "common"
    SPECIALIZED = "specialized"


class UsageFrequency(str, Enum):
    """Keyword-based usage buckets, independent of PriorityTier"""
    ESSENTIAL = "essential"
    COMMON = "common"
    SPECIALIZED = "specialized"


class FunctionalGroup(str, Enum):
    """Functional tags a node can carry"""
    COMMUNICATION = "communication"
    PRODUCTIVITY = "productivity"
    DEVELOPMENT = "development"
    MARKETING = "marketing"
    DATABASE = "database"
    STORAGE = "storage"
    AI_ML = "ai_ml"
    AUTOMATION = "automation"
    ANALYTICS = "analytics"
    UTILITY = "utility"


class RelationshipType(str, Enum):
    ALTERNATIVE = "alternative"
    COMPLEMENT = "complement"
    PREREQUISITE = "prerequisite"
    SUCCESSOR = "successor"


@dataclass(frozen=True)
class PropertyOption:
    name: str
    value: str
    description: str = ""


@dataclass(frozen=True)
class CoreProperty:
    """One configurable node parameter"""
    name: str
    display_name: str
    type: str
    required: bool = False
    description: str = ""
    default: Any = None
    options: Tuple[PropertyOption, ...] = ()


@dataclass(frozen=True)
class Operation:
    """One resource/operation pair exposed by a node"""
    name: str
    value: str
    description: str = ""
    resource: Optional[str] = None


@dataclass(frozen=True)
class ParsedProperties:
    """Already-parsed property block of a node"""
    core_properties: Tuple[CoreProperty, ...] = ()
    operations: Tuple[Operation, ...] = ()
    has_credentials: bool = False
    total_property_count: int = 0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ParsedProperties":
        core_properties = []
        for prop in data.get("coreProperties", []):
            options = tuple(
                PropertyOption(
                    name=str(opt.get("name", opt.get("value", ""))),
                    value=str(opt.get("value", "")),
                    description=opt.get("description") or "",
                )
                for opt in prop.get("options") or []
            )
            core_properties.append(CoreProperty(
                name=prop["name"],
                display_name=prop.get("displayName", prop["name"]),
                type=prop.get("type", "string"),
                required=bool(prop.get("required", False)),
                description=prop.get("description") or "",
                default=prop.get("default"),
                options=options,
            ))

        operations = tuple(
            Operation(
                name=op.get("name", op.get("value", "")),
                value=str(op.get("value", "")),
                description=op.get("description") or "",
                resource=op.get("resource"),
            )
            for op in data.get("operations", [])
        )

        return cls(
            core_properties=tuple(core_properties),
            operations=operations,
            has_credentials=bool(data.get("hasCredentials", False)),
            total_property_count=int(data.get("totalPropertyCount", len(core_properties))),
        )


@dataclass(frozen=True)
class NodeRecord:
    """Structure for one catalog node, immutable once loaded"""
    node_type: str
    display_name: str
    description: str = ""
    category: str = ""
    package_name: str = ""
    version: str = ""
    node_category: Optional[str] = None
    is_trigger: bool = False
    is_webhook: bool = False
    is_ai_tool: bool = False
    has_credentials: bool = False
    has_operations: bool = False
    has_documentation: bool = False
    usage_count: int = 0
    usage_percentage: float = 0.0
    property_count: int = 0
    documentation_url: Optional[str] = None
    properties: Optional[ParsedProperties] = None

    @property
    def structural_category(self) -> str:
        """trigger / webhook / action, preferring an explicit nodeCategory"""
        if self.node_category:
            return self.node_category
        if self.is_trigger:
            return "trigger"
        if self.is_webhook:
            return "webhook"
        return "action"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "NodeRecord":
        """Build a record from the catalog's camelCase node object"""
        properties = None
        if data.get("properties"):
            properties = ParsedProperties.from_dict(data["properties"])

        property_count = data.get("propertyCount")
        if property_count is None:
            property_count = properties.total_property_count if properties else 0

        has_credentials = bool(data.get("hasCredentials", False))
        if properties and properties.has_credentials:
            has_credentials = True

        return cls(
            node_type=data["nodeType"],
            display_name=data["displayName"],
            description=data.get("description") or "",
            category=data.get("category") or "",
            package_name=data.get("packageName") or data.get("package") or "",
            version=str(data.get("version") or ""),
            node_category=data.get("nodeCategory"),
            is_trigger=bool(data.get("isTrigger", False)),
            is_webhook=bool(data.get("isWebhook", False)),
            is_ai_tool=bool(data.get("isAITool", False)),
            has_credentials=has_credentials,
            has_operations=bool(data.get("hasOperations", False)),
            has_documentation=bool(data.get("hasDocumentation", False)),
            usage_count=max(int(data.get("usageCount") or 0), 0),
            usage_percentage=float(data.get("usagePercentage") or 0.0),
            property_count=int(property_count),
            documentation_url=data.get("documentationUrl"),
            properties=properties,
        )


@dataclass(frozen=True)
class ScoringFactors:
    """The four component factors, each in [0, 1]"""
    usage_frequency: float
    documentation_quality: float
    community_popularity: float
    versatility: float


@dataclass(frozen=True)
class ScoredNode:
    """NodeRecord plus its score, rank and tier"""
    record: NodeRecord
    factors: ScoringFactors
    score: float
    rank: int = 0
    tier: PriorityTier = PriorityTier.SPECIALIZED

    @property
    def node_type(self) -> str:
        return self.record.node_type

    @property
    def display_name(self) -> str:
        return self.record.display_name


@dataclass(frozen=True)
class CategorizedNode:
    node_type: str
    display_name: str
    category: str
    priority: int
    subcategory: Optional[str] = None
    is_top_node: bool = False

    @property
    def group_key(self) -> str:
        if self.subcategory:
            return f"{self.category}.{self.subcategory}"
        return self.category


@dataclass
class OrganizationResult:
    """Output of the category classifier"""
    top_nodes: List[CategorizedNode]
    remaining_nodes: List[CategorizedNode]
    uncategorized_nodes: List[str]


@dataclass(frozen=True)
class GroupedNode:
    node_type: str
    display_name: str
    description: str
    usage_frequency: UsageFrequency
    functional_groups: Tuple[FunctionalGroup, ...]
    related_nodes: Tuple[str, ...] = ()
    tags: Tuple[str, ...] = ()


@dataclass(frozen=True)
class NodeRelationship:
    source_node: str
    target_node: str
    relationship_type: RelationshipType
    description: str = ""


@dataclass
class GroupingResult:
    """Output of the functional grouper"""
    nodes: List[GroupedNode]
    by_frequency: Dict[UsageFrequency, List[GroupedNode]]
    by_function: Dict[FunctionalGroup, List[GroupedNode]]
    relationships: List[NodeRelationship]


@dataclass(frozen=True)
class PackagedNode:
    """A ranked node with its resolved packaging category"""
    scored: ScoredNode
    category: str
    subcategory: Optional[str] = None
    grouping: Optional[GroupedNode] = None

    @property
    def record(self) -> NodeRecord:
        return self.scored.record

    @property
    def node_type(self) -> str:
        return self.scored.record.node_type

    @property
    def display_name(self) -> str:
        return self.scored.record.display_name

    @property
    def description(self) -> str:
        return self.scored.record.description


@dataclass(frozen=True)
class ResourceFile:
    """Reference to an individually written node document"""
    name: str
    node_type: str
    path: str
    description: str
    category: str


@dataclass(frozen=True)
class NodePosition:
    """Where one node's block lives inside a merged file (1-based, inclusive)"""
    node_type: str
    display_name: str
    file_name: str
    start_line: int
    line_count: int
    anchor: str
    description: str = ""
    usage_percentage: float = 0.0

    @property
    def end_line(self) -> int:
        return self.start_line + self.line_count - 1


@dataclass
class MergedFileInfo:
    file_name: str
    category: str
    node_count: int
    positions: List[NodePosition] = field(default_factory=list)

    @property
    def path(self) -> str:
        return f"{self.category}/{self.file_name}"


@dataclass
class PackagingResult:
    resource_files: List[ResourceFile]
    merged_files: List[MergedFileInfo]
    failed_nodes: List[str] = field(default_factory=list)
