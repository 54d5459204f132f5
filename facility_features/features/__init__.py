from .catalog import FEATURE_CATALOG_SECTIONS

__all__ = ["FEATURE_CATALOG_SECTIONS"]
