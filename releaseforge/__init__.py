"""releaseforge: snapshot-to-release build promotion with compensating rollback.

Promotes a staged build into a release repository:
  - Relocates artifacts, stripping integration revisions from their paths
  - Rewrites Maven POM and Ivy descriptor versions
  - Relinks inter-module dependencies to the released coordinates
  - Records the release build as ``<number>-r``
  - Rolls every side effect back when any step fails
"""

__version__ = "0.1.0"
__description__ = "Snapshot-to-release build promotion with compensating rollback"

from releaseforge.core.orchestrator import PromotionOrchestrator
from releaseforge.models.promotion import PromotionRequest, PromotionResult

__all__ = ["PromotionOrchestrator", "PromotionRequest", "PromotionResult", "__version__"]
