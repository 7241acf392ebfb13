"""DAL interfaces shared by the query service and its dialect implementations."""

from .catalog_introspector import CatalogIntrospector

__all__ = ["CatalogIntrospector"]
