from sqlalchemy import Column, Index, String
import uuid

from blog_analytics.db.database import Base
from blog_analytics.db.types import GUID, JSONB, UTCDateTime


class AnalyticsEvent(Base):
    __tablename__ = "analytics"

    id = Column(GUID(), primary_key=True, default=uuid.uuid4)  # Store-assigned
    timestamp = Column(UTCDateTime(), nullable=False, index=True)  # Server-stamped
    type = Column(String(32), nullable=False, index=True)
    session_id = Column(String, nullable=False, index=True)
    country = Column(String, nullable=False, index=True)
    page = Column(String, nullable=False)
    extra = Column(JSONB(), nullable=False, default=dict)

    # Stats queries filter on type and order by timestamp
    __table_args__ = (Index("idx_analytics_type_timestamp", "type", "timestamp"),)
