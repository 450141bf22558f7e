"""Status Bar Forge - Section extraction and regex rule previews for chat status bars."""

from .pipeline import RulePreviewPipeline
from .rule_store import RuleStore
from .brain import RuleDesignerBrain

__version__ = "0.1.0"
__all__ = ["RulePreviewPipeline", "RuleStore", "RuleDesignerBrain"]
