"""
Engagements Module (``grant_modules.engagements``).

Financial commitments against sub-budget lines.  Each engagement carries a
three-slot approval state and contributes its amount (0 once rejected) to
the engaged amount of its sub-line and budget line.
"""

from grant_modules.engagements.models import Engagement, EngagementStatus

__all__ = ["Engagement", "EngagementStatus"]
