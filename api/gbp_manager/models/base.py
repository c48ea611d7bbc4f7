"""Shared imports for all model modules."""
import uuid
from datetime import datetime, date
from sqlalchemy import (
    Column, String, Text, Integer, Boolean,
    Date, DateTime, ForeignKey, UniqueConstraint, CheckConstraint, Index, JSON, Uuid
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship
from gbp_manager.database import Base

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")
