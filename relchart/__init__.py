"""relchart package initialization."""

from importlib.metadata import version, PackageNotFoundError

from .api import build_chart, run_layout
from .chart import ChartOptions, RelationshipChart
from .errors import LayoutConstraintError, StructureError
from .graph import RelationshipGraph

__all__ = [
    "__version__",
    "ChartOptions",
    "LayoutConstraintError",
    "RelationshipChart",
    "RelationshipGraph",
    "StructureError",
    "build_chart",
    "run_layout",
]

try:
    __version__ = version("relchart")
except PackageNotFoundError:  # pragma: no cover
    __version__ = "0.1.0"
