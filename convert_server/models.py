# convert_server/models.py
from datetime import datetime
from sqlalchemy import Boolean, Column, String, Text, Integer, DateTime, ForeignKey, Index, JSON
from convert_server.database import Base


def utcnow() -> datetime:
    return datetime.utcnow()


class User(Base):
    __tablename__ = "users"

    id = Column(String, primary_key=True)
    email = Column(String, unique=True, nullable=False)
    password_hash = Column(String, nullable=False)
    plan = Column(String, nullable=False, default="free")
    daily_limit = Column(Integer, nullable=False)
    monthly_limit = Column(Integer, nullable=False)
    daily_usage = Column(Integer, nullable=False, default=0)
    monthly_usage = Column(Integer, nullable=False, default=0)
    usage_day = Column(String, nullable=False)  # YYYY-MM-DD the daily counter belongs to
    usage_month = Column(String, nullable=False)  # YYYY-MM
    subscription_status = Column(String, nullable=False, default="active")
    is_admin = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=utcnow)


class ApiKey(Base):
    __tablename__ = "api_keys"

    id = Column(String, primary_key=True)
    user_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    key_hash = Column(String, unique=True, nullable=False)
    key_prefix = Column(String, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    usage_count = Column(Integer, nullable=False, default=0)
    last_used = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow)


class ConversionJob(Base):
    __tablename__ = "conversion_jobs"

    id = Column(String, primary_key=True)
    user_id = Column(String, ForeignKey("users.id"), nullable=True)
    api_key_id = Column(String, ForeignKey("api_keys.id"), nullable=True)
    tool_type = Column(String, nullable=False)
    status = Column(String, nullable=False, default="pending")
    input_filename = Column(String, nullable=False)
    output_filename = Column(String, nullable=True)
    input_file_size = Column(Integer, nullable=True)
    output_file_size = Column(Integer, nullable=True)
    processing_time = Column(Integer, nullable=True)  # milliseconds
    error_message = Column(Text, nullable=True)
    options = Column(JSON, nullable=True)
    input_ref = Column(String, nullable=True)
    output_ref = Column(String, nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow)

    __table_args__ = (
        Index("idx_jobs_owner_created", "user_id", "created_at"),
    )

    @property
    def download_url(self):
        if self.status == "completed" and self.output_filename:
            return f"/api/download/{self.id}"
        return None
