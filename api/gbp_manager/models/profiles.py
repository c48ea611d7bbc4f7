"""Business profiles (GBP listings) and their daily insight rows."""
from gbp_manager.models.base import *


PROFILE_STATUSES = ("ACTIVE", "SUSPENDED", "CLOSED", "PENDING_VERIFICATION")
INSIGHT_PERIODS = ("DAILY", "WEEKLY", "MONTHLY")


class BusinessProfile(Base):
    __tablename__ = "business_profiles"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    organization_id = Column(
        Uuid(as_uuid=True), ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False
    )
    # Last segment of accounts/{a}/locations/{l}; never rewritten once set
    google_business_id = Column(String, unique=True, nullable=True, index=True)
    google_location_name = Column(String, nullable=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    address = Column(JSONType, nullable=False, default=dict)
    phone_number = Column(String, nullable=True)
    website = Column(String, nullable=True)
    email = Column(String, nullable=True)
    is_verified = Column(Boolean, nullable=False, default=False)
    status = Column(String, nullable=False, default="ACTIVE")
    categories = Column(JSONType, nullable=False, default=list)
    attributes = Column(JSONType, nullable=False, default=dict)
    selected_for_analytics = Column(Boolean, nullable=False, default=False)
    last_sync_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow)

    organization = relationship("Organization", back_populates="business_profiles")
    insights = relationship("BusinessInsight", back_populates="business_profile", cascade="all, delete-orphan")
    posts = relationship("Post", back_populates="business_profile", cascade="all, delete-orphan")
    reviews = relationship("Review", back_populates="business_profile", cascade="all, delete-orphan")
    questions = relationship("Question", back_populates="business_profile", cascade="all, delete-orphan")

    __table_args__ = (
        CheckConstraint(
            "status IN ('ACTIVE', 'SUSPENDED', 'CLOSED', 'PENDING_VERIFICATION')",
            name="ck_business_profiles_status",
        ),
        Index("idx_business_profiles_org", "organization_id"),
    )


class BusinessInsight(Base):
    __tablename__ = "business_insights"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    business_profile_id = Column(
        Uuid(as_uuid=True), ForeignKey("business_profiles.id", ondelete="CASCADE"), nullable=False
    )
    date = Column(Date, nullable=False)
    period = Column(String, nullable=False, default="DAILY")

    total_views = Column(Integer, nullable=False, default=0)
    direct_views = Column(Integer, nullable=False, default=0)
    discovery_views = Column(Integer, nullable=False, default=0)
    branded_views = Column(Integer, nullable=False, default=0)

    total_searches = Column(Integer, nullable=False, default=0)
    direct_searches = Column(Integer, nullable=False, default=0)
    discovery_searches = Column(Integer, nullable=False, default=0)
    branded_searches = Column(Integer, nullable=False, default=0)

    website_clicks = Column(Integer, nullable=False, default=0)
    phone_call_clicks = Column(Integer, nullable=False, default=0)
    direction_requests = Column(Integer, nullable=False, default=0)
    photo_views = Column(Integer, nullable=False, default=0)

    is_synthetic = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow)

    business_profile = relationship("BusinessProfile", back_populates="insights")

    __table_args__ = (
        UniqueConstraint("business_profile_id", "date", "period", name="uq_insights_profile_date_period"),
        CheckConstraint("period IN ('DAILY', 'WEEKLY', 'MONTHLY')", name="ck_insights_period"),
        Index("idx_insights_profile_date", "business_profile_id", "date"),
    )
