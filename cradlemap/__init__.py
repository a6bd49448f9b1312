"""cradlemap - cross-file index of dependency-injection container keys."""

__version__ = "0.1.0"

from cradlemap.config import AnalysisConfig  # noqa: E402
from cradlemap.pipeline import build_index  # noqa: E402
from cradlemap.service import IndexService  # noqa: E402

__all__ = ["AnalysisConfig", "IndexService", "build_index", "__version__"]
