"""
Review Insight - code review coverage and line survival from git history

Replays the first-parent history of a branch to learn when every line was
born and when it died, attributes each commit to the pull request that
reviewed it, and reports how reviewed and unreviewed code fare over time.
"""

__version__ = "0.1.0"

from .config import AnalysisConfig, load_config
from .pipeline import PipelineResult, ReviewPipeline

__all__ = [
    "AnalysisConfig",
    "PipelineResult",
    "ReviewPipeline",
    "load_config",
]
