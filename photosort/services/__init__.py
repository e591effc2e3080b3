"""Service layer - business logic."""
from .scanner import DirectoryScanner
from .date_resolver import DateResolver, first_success
from .planner import PlacementPlanner, plan_destination
from .file_ops import FileManager
from .sorter import SortEngine, SortDependencies, create_dependencies

__all__ = [
    "DirectoryScanner",
    "DateResolver",
    "first_success",
    "PlacementPlanner",
    "plan_destination",
    "FileManager",
    "SortEngine",
    "SortDependencies",
    "create_dependencies",
]
