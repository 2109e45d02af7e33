from .formatter import format_analysis
from .invoker import AnalysisInvoker, TierOutcome
from .schema import AnalysisMetadata, AnalysisResult

__all__ = ["AnalysisInvoker", "AnalysisMetadata", "AnalysisResult", "TierOutcome", "format_analysis"]
