"""Audit trail of sync runs and user actions."""
from gbp_manager.models.base import *


class ActivityLog(Base):
    __tablename__ = "activity_logs"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    action = Column(String, nullable=False)
    resource = Column(String, nullable=False)
    resource_id = Column(String, nullable=True)
    description = Column(Text, nullable=True)
    metadata_json = Column("metadata", JSONType, nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow)

    __table_args__ = (
        CheckConstraint("action IN ('CREATE', 'READ', 'UPDATE', 'DELETE')", name="ck_activity_action"),
        Index("idx_activity_user_created", "user_id", "created_at"),
    )
