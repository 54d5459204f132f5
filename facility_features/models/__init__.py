from .feature import (
    CATEGORY_INFO,
    CategoryInfo,
    FeatureCategory,
    FeatureDefinition,
    FeatureScope,
)

__all__ = [
    "CATEGORY_INFO",
    "CategoryInfo",
    "FeatureCategory",
    "FeatureDefinition",
    "FeatureScope",
]
