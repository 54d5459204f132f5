"""Immutable feature catalog types."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Tuple


class FeatureCategory(str, Enum):
    """Display grouping for features, keyed by category id."""

    CORE = "core"
    INVENTORY = "inventory"
    WAREHOUSE = "warehouse"
    ADVANCED = "advanced"
    BUSINESS = "business"
    MONITORING = "monitoring"
    QUALITY = "quality"
    LOGISTICS = "logistics"
    PROCUREMENT = "procurement"
    SECURITY = "security"
    FINANCE = "finance"
    COMPLIANCE = "compliance"
    COMMUNICATION = "communication"

    @property
    def info(self) -> "CategoryInfo":
        return CATEGORY_INFO[self]


@dataclass(frozen=True)
class CategoryInfo:
    name: str
    description: str
    icon: str = ""
    color: str = "gray"

    def to_dict(self) -> Dict[str, str]:
        return {
            "name": self.name,
            "description": self.description,
            "icon": self.icon,
            "color": self.color,
        }


CATEGORY_INFO: Dict[FeatureCategory, CategoryInfo] = {
    FeatureCategory.CORE: CategoryInfo("Core Features", "Essential inventory management features", "⚡", "blue"),
    FeatureCategory.INVENTORY: CategoryInfo("Inventory Management", "Advanced inventory tracking and management", "📦", "green"),
    FeatureCategory.WAREHOUSE: CategoryInfo("Warehouse Management", "Physical warehouse and storage management", "🏭", "purple"),
    FeatureCategory.ADVANCED: CategoryInfo("Advanced Features", "Layout and placement tooling for power users", "🚀", "indigo"),
    FeatureCategory.BUSINESS: CategoryInfo("Business Intelligence", "Analytics, reporting, and insights", "📈", "yellow"),
    FeatureCategory.MONITORING: CategoryInfo("Monitoring & Alerts", "Real-time monitoring and notification systems", "👁️", "red"),
    FeatureCategory.QUALITY: CategoryInfo("Quality Assurance", "Quality control and inspection features", "✅", "emerald"),
    FeatureCategory.LOGISTICS: CategoryInfo("Logistics & Distribution", "Shipping, distribution, and logistics management", "🚚", "orange"),
    FeatureCategory.PROCUREMENT: CategoryInfo("Procurement", "Purchasing and supplier management", "🛒", "teal"),
    FeatureCategory.SECURITY: CategoryInfo("Security", "Activity logging and access auditing", "🔒", "gray"),
    FeatureCategory.FINANCE: CategoryInfo("Finance", "Costing, valuation, and financial integrations", "💰", "lime"),
    FeatureCategory.COMPLIANCE: CategoryInfo("Compliance", "Compliance tracking and audit controls", "📋", "slate"),
    FeatureCategory.COMMUNICATION: CategoryInfo("Communication", "Notifications and escalation workflows", "🔔", "pink"),
}


@dataclass(frozen=True)
class FeatureScope:
    """Where a feature has meaning: the global layer, tenants, or both."""

    system_level: bool = True
    facility_level: bool = True

    @property
    def is_valid(self) -> bool:
        return self.system_level or self.facility_level

    @property
    def system_only(self) -> bool:
        return self.system_level and not self.facility_level

    def allows(self, facility_scoped: bool) -> bool:
        return self.facility_level if facility_scoped else self.system_level


@dataclass(frozen=True)
class FeatureDefinition:
    id: str
    name: str
    description: str
    category: FeatureCategory
    dependencies: Tuple[str, ...] = ()
    default_enabled: bool = False
    scope: FeatureScope = field(default_factory=FeatureScope)
    icon: str = ""
    version: str = "1.0.0"
    enterprise: bool = False
    components: Tuple[str, ...] = ()
    api_routes: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "category": self.category.value,
            "dependencies": list(self.dependencies),
            "default_enabled": self.default_enabled,
            "system_level": self.scope.system_level,
            "facility_level": self.scope.facility_level,
            "icon": self.icon,
            "version": self.version,
            "enterprise": self.enterprise,
            "components": list(self.components),
            "api_routes": list(self.api_routes),
        }
