"""
GBP Manager models, re-exported so callers can `from gbp_manager.models import X`.
"""

# Tenancy
from gbp_manager.models.auth import Organization, User, OAuthAccount

# Listings and insights
from gbp_manager.models.profiles import BusinessProfile, BusinessInsight

# Content
from gbp_manager.models.content import Post, PostMetrics, PostImage, Question, Answer

# Reviews
from gbp_manager.models.reviews import Review, ReviewResponse

# Ops
from gbp_manager.models.ops import ActivityLog

__all__ = [
    # Tenancy
    "Organization", "User", "OAuthAccount",
    # Listings
    "BusinessProfile", "BusinessInsight",
    # Content
    "Post", "PostMetrics", "PostImage", "Question", "Answer",
    # Reviews
    "Review", "ReviewResponse",
    # Ops
    "ActivityLog",
]
