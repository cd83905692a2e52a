"""Catalog package - Prerequisite graph and course definitions."""

from coursegate.catalog.catalog import Catalog
from coursegate.catalog.exceptions import CatalogError, CycleDetectedError
from coursegate.catalog.graph import CourseGraph

__all__ = [
    "Catalog",
    "CatalogError",
    "CourseGraph",
    "CycleDetectedError",
]
