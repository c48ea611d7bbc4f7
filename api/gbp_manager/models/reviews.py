"""Customer reviews and the business's (single) response to each."""
from gbp_manager.models.base import *


REVIEW_STATUSES = ("NEW", "RESPONDED", "FLAGGED", "ARCHIVED")
SENTIMENTS = ("POSITIVE", "NEUTRAL", "NEGATIVE")


class Review(Base):
    __tablename__ = "reviews"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    business_profile_id = Column(
        Uuid(as_uuid=True), ForeignKey("business_profiles.id", ondelete="CASCADE"), nullable=False
    )
    google_review_id = Column(String, unique=True, nullable=False)
    google_review_name = Column(String, nullable=True)  # accounts/../locations/../reviews/..
    reviewer_name = Column(String, nullable=False, default="Anonymous")
    reviewer_photo_url = Column(Text, nullable=True)
    rating = Column(Integer, nullable=False)
    content = Column(Text, nullable=True)
    published_at = Column(DateTime(timezone=True), nullable=False)
    status = Column(String, nullable=False, default="NEW")
    sentiment = Column(String, nullable=True)
    is_verified = Column(Boolean, nullable=False, default=False)
    is_synthetic = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow)

    business_profile = relationship("BusinessProfile", back_populates="reviews")
    response = relationship(
        "ReviewResponse", back_populates="review", uselist=False, cascade="all, delete-orphan"
    )

    __table_args__ = (
        CheckConstraint("rating BETWEEN 1 AND 5", name="ck_reviews_rating"),
        CheckConstraint("status IN ('NEW', 'RESPONDED', 'FLAGGED', 'ARCHIVED')", name="ck_reviews_status"),
        CheckConstraint(
            "sentiment IS NULL OR sentiment IN ('POSITIVE', 'NEUTRAL', 'NEGATIVE')",
            name="ck_reviews_sentiment",
        ),
        Index("idx_reviews_profile_published", "business_profile_id", "published_at"),
    )


class ReviewResponse(Base):
    __tablename__ = "review_responses"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    review_id = Column(
        Uuid(as_uuid=True), ForeignKey("reviews.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    content = Column(Text, nullable=False)
    created_by = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=True)  # NULL = replied on Google
    published_at = Column(DateTime(timezone=True), default=datetime.utcnow)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow)

    review = relationship("Review", back_populates="response")
