"""Posts (with metrics and images) and customer questions."""
from gbp_manager.models.base import *
from gbp_manager.exceptions import InvalidTransitionError


# Forward-only lifecycle. FAILED is terminal except for a re-edit back to DRAFT.
POST_TRANSITIONS = {
    "DRAFT": {"SCHEDULED", "PUBLISHED", "FAILED", "DELETED"},
    "SCHEDULED": {"PUBLISHED", "FAILED", "DELETED"},
    "PUBLISHED": {"DELETED"},
    "FAILED": {"DRAFT"},
    "DELETED": set(),
}


class Post(Base):
    __tablename__ = "posts"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    business_profile_id = Column(
        Uuid(as_uuid=True), ForeignKey("business_profiles.id", ondelete="CASCADE"), nullable=False
    )
    google_post_id = Column(String, nullable=True, unique=True)
    content = Column(Text, nullable=False)
    call_to_action = Column(JSONType, nullable=True)
    status = Column(String, nullable=False, default="DRAFT")
    scheduled_at = Column(DateTime(timezone=True), nullable=True)
    published_at = Column(DateTime(timezone=True), nullable=True)
    created_by = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow)

    business_profile = relationship("BusinessProfile", back_populates="posts")
    metrics = relationship("PostMetrics", back_populates="post", uselist=False, cascade="all, delete-orphan")
    images = relationship(
        "PostImage", back_populates="post", order_by="PostImage.order", cascade="all, delete-orphan"
    )

    __table_args__ = (
        CheckConstraint(
            "status IN ('DRAFT', 'SCHEDULED', 'PUBLISHED', 'FAILED', 'DELETED')",
            name="ck_posts_status",
        ),
        Index("idx_posts_profile_published", "business_profile_id", "published_at"),
    )

    def transition_to(self, status: str, at: datetime = None) -> None:
        """Move the post along its lifecycle, stamping publish time on PUBLISHED."""
        allowed = POST_TRANSITIONS.get(self.status or "DRAFT", set())
        if status not in allowed:
            raise InvalidTransitionError("post", self.status, status)
        self.status = status
        if status == "PUBLISHED":
            self.published_at = at or datetime.utcnow()


class PostMetrics(Base):
    __tablename__ = "post_metrics"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    post_id = Column(Uuid(as_uuid=True), ForeignKey("posts.id", ondelete="CASCADE"), nullable=False, unique=True)
    views = Column(Integer, nullable=False, default=0)
    clicks = Column(Integer, nullable=False, default=0)
    engagement = Column(Integer, nullable=False, default=0)
    last_updated = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow)

    post = relationship("Post", back_populates="metrics")


class PostImage(Base):
    __tablename__ = "post_images"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    post_id = Column(Uuid(as_uuid=True), ForeignKey("posts.id", ondelete="CASCADE"), nullable=False)
    url = Column(Text, nullable=False)
    alt = Column(String, nullable=True)
    order = Column(Integer, nullable=False, default=0)

    post = relationship("Post", back_populates="images")


class Question(Base):
    __tablename__ = "questions"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    business_profile_id = Column(
        Uuid(as_uuid=True), ForeignKey("business_profiles.id", ondelete="CASCADE"), nullable=False
    )
    google_question_id = Column(String, unique=True, nullable=False)
    author_name = Column(String, nullable=True)
    content = Column(Text, nullable=False)
    status = Column(String, nullable=False, default="UNANSWERED")
    published_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow)

    business_profile = relationship("BusinessProfile", back_populates="questions")
    answer = relationship("Answer", back_populates="question", uselist=False, cascade="all, delete-orphan")

    __table_args__ = (
        CheckConstraint("status IN ('UNANSWERED', 'ANSWERED', 'ARCHIVED')", name="ck_questions_status"),
        Index("idx_questions_profile_status", "business_profile_id", "status"),
    )


class Answer(Base):
    __tablename__ = "answers"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    question_id = Column(
        Uuid(as_uuid=True), ForeignKey("questions.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    content = Column(Text, nullable=False)
    created_by = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=True)
    published_at = Column(DateTime(timezone=True), default=datetime.utcnow)

    question = relationship("Question", back_populates="answer")
