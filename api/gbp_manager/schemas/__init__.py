from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List, Dict, Any
from uuid import UUID
from datetime import datetime, date
from enum import Enum


# ─── Enums ───
class Period(str, Enum):
    week = "week"
    month = "month"
    quarter = "quarter"


class ProfileStatus(str, Enum):
    ACTIVE = "ACTIVE"
    SUSPENDED = "SUSPENDED"
    CLOSED = "CLOSED"
    PENDING_VERIFICATION = "PENDING_VERIFICATION"


class ReviewStatus(str, Enum):
    NEW = "NEW"
    RESPONDED = "RESPONDED"
    FLAGGED = "FLAGGED"
    ARCHIVED = "ARCHIVED"


class Sentiment(str, Enum):
    POSITIVE = "POSITIVE"
    NEUTRAL = "NEUTRAL"
    NEGATIVE = "NEGATIVE"


class ToggleType(str, Enum):
    analytics = "analytics"
    status = "status"


# ─── Analytics Schemas ───
class AnalyticsMetrics(BaseModel):
    total_views: int = 0
    total_searches: int = 0
    website_clicks: int = 0
    phone_call_clicks: int = 0
    direction_requests: int = 0
    photo_views: int = 0
    average_rating: float = 0.0
    total_reviews: int = 0
    total_posts: int = 0
    total_questions: int = 0


class AnalyticsTrend(BaseModel):
    date: str  # YYYY-MM-DD
    value: int
    label: str  # "Mar 05"


class AnalyticsTrends(BaseModel):
    views: List[AnalyticsTrend] = []
    searches: List[AnalyticsTrend] = []
    actions: List[AnalyticsTrend] = []


class LocationComparison(BaseModel):
    location_id: UUID
    location_name: str
    metrics: AnalyticsMetrics


class TopPost(BaseModel):
    id: UUID
    content: str
    views: int
    clicks: int
    published_at: Optional[datetime] = None
    location_name: str


class RecentReview(BaseModel):
    id: UUID
    rating: int
    content: str
    reviewer_name: str
    published_at: datetime
    location_name: str


class AnalyticsData(BaseModel):
    period: Period
    start_date: date
    end_date: date
    overview: AnalyticsMetrics
    trends: AnalyticsTrends
    location_comparison: List[LocationComparison]
    top_performing_posts: List[TopPost]
    recent_reviews: List[RecentReview]
    includes_synthetic_data: bool = False


class AnalyticsResponse(BaseModel):
    success: bool = True
    data: AnalyticsData
    period: Period
    business_profile_id: Optional[UUID] = None
    synced: bool = False


class AnalyticsExportRequest(BaseModel):
    period: Period = Period.month
    business_profile_id: Optional[UUID] = None


# ─── Sync Schemas ───
class SyncError(BaseModel):
    account: Optional[str] = None
    location: Optional[str] = None
    error_type: str
    message: str


class ProfileSyncResult(BaseModel):
    accounts_processed: int = 0
    locations_seen: int = 0
    created: int = 0
    updated: int = 0
    failed: int = 0
    profile_ids: List[UUID] = []
    errors: List[SyncError] = []


class ReviewSyncRequest(BaseModel):
    business_profile_id: UUID


class ReviewSyncResult(BaseModel):
    synced_count: int = 0
    new_count: int = 0
    is_synthetic_data: bool = False


class InsightSyncResult(BaseModel):
    profiles_processed: int = 0
    rows_created: int = 0
    rows_skipped: int = 0
    is_synthetic_data: bool = True


# ─── Listing Schemas ───
class ListingItem(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: UUID
    google_business_id: Optional[str] = None
    name: str
    description: Optional[str] = None
    address: Dict[str, Any] = {}
    phone_number: Optional[str] = None
    website: Optional[str] = None
    email: Optional[str] = None
    is_verified: bool
    status: ProfileStatus
    last_sync_at: Optional[datetime] = None
    categories: List[Any] = []
    is_selected: bool = Field(validation_alias="selected_for_analytics")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ListingToggleRequest(BaseModel):
    listing_id: UUID
    toggle_type: ToggleType = ToggleType.analytics


class ListingToggleResponse(BaseModel):
    success: bool = True
    is_selected: Optional[bool] = None
    status: Optional[ProfileStatus] = None
    message: str


# ─── Review Schemas ───
class ReviewReplyRequest(BaseModel):
    content: str = Field(min_length=1, max_length=4096)


class ReviewReplyResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    review_id: UUID
    content: str
    created_by: Optional[UUID] = None
    published_at: Optional[datetime] = None


class ReviewStatusRequest(BaseModel):
    status: ReviewStatus


class ReviewOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    business_profile_id: UUID
    google_review_id: str
    reviewer_name: str
    rating: int
    content: Optional[str] = None
    published_at: datetime
    status: ReviewStatus
    sentiment: Optional[Sentiment] = None
    is_synthetic: bool = False
    response: Optional[ReviewReplyResponse] = None


class ReviewStats(BaseModel):
    total: int = 0
    average_rating: float = 0.0
    response_rate: int = 0  # percent, rounded
    sentiment_breakdown: Dict[str, int] = {}
    rating_breakdown: Dict[int, int] = {}


class ReviewListResponse(BaseModel):
    success: bool = True
    reviews: List[ReviewOut]
    stats: ReviewStats
    count: int


# ─── Post Schemas ───
class PostStatus(str, Enum):
    DRAFT = "DRAFT"
    SCHEDULED = "SCHEDULED"
    PUBLISHED = "PUBLISHED"
    FAILED = "FAILED"
    DELETED = "DELETED"


class CallToActionType(str, Enum):
    BOOK = "BOOK"
    ORDER = "ORDER"
    SHOP = "SHOP"
    LEARN_MORE = "LEARN_MORE"
    SIGN_UP = "SIGN_UP"
    CALL = "CALL"
    NONE = "NONE"


class CallToAction(BaseModel):
    type: CallToActionType
    url: Optional[str] = None
    phone_number: Optional[str] = None


class PostImageIn(BaseModel):
    url: str = Field(min_length=1)
    alt: Optional[str] = None
    order: int = Field(0, ge=0)


class PostImageOut(PostImageIn):
    model_config = ConfigDict(from_attributes=True)

    id: UUID


class PostMetricsOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    views: int = 0
    clicks: int = 0
    engagement: int = 0


class PostCreate(BaseModel):
    business_profile_id: UUID
    content: str = Field(min_length=1, max_length=1500)
    status: PostStatus = PostStatus.DRAFT
    call_to_action: Optional[CallToAction] = None
    scheduled_at: Optional[datetime] = None
    images: List[PostImageIn] = Field(default_factory=list, max_length=10)


class PostUpdate(BaseModel):
    content: Optional[str] = Field(None, min_length=1, max_length=1500)
    status: Optional[PostStatus] = None
    call_to_action: Optional[CallToAction] = None
    scheduled_at: Optional[datetime] = None
    images: List[PostImageIn] = Field(default_factory=list, max_length=10)


class PostOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    business_profile_id: UUID
    content: str
    status: PostStatus
    call_to_action: Optional[Dict[str, Any]] = None
    scheduled_at: Optional[datetime] = None
    published_at: Optional[datetime] = None
    created_by: Optional[UUID] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    images: List[PostImageOut] = []
    metrics: Optional[PostMetricsOut] = None


# ─── Business Profile Schemas ───
class BusinessProfileCreate(BaseModel):
    name: str = Field(min_length=2)
    description: Optional[str] = None
    phone_number: Optional[str] = None
    website: Optional[str] = None
    email: Optional[str] = None
    address: Dict[str, Any]
    categories: List[Dict[str, Any]] = []
    attributes: Dict[str, Any] = {}


class BusinessProfileUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2)
    description: Optional[str] = None
    phone_number: Optional[str] = None
    website: Optional[str] = None
    email: Optional[str] = None
    address: Optional[Dict[str, Any]] = None
    categories: Optional[List[Dict[str, Any]]] = None
    attributes: Optional[Dict[str, Any]] = None


class BusinessProfileResult(BaseModel):
    success: bool = True
    profile: ListingItem
    pushed_to_google: bool = False
