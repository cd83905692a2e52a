"""Exceptions for the Catalog module."""


class CatalogError(Exception):
    """Base exception for catalog errors."""

    pass


class CycleDetectedError(CatalogError):
    """Raised when a prerequisite edit would make a course require itself."""

    def __init__(self, course_id: str, cycle_path: list[str]) -> None:
        """Initialize with the offending course and the cycle.

        Args:
            course_id: The course whose prerequisites were being edited.
            cycle_path: Course ids forming the cycle, first and last equal.
        """
        self.course_id = course_id
        self.cycle_path = cycle_path
        cycle_str = " -> ".join(cycle_path)
        super().__init__(f"Prerequisite cycle detected for course '{course_id}': {cycle_str}")
