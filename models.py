from sqlalchemy import JSON, BigInteger, Column, Index, String, Text
from db import Base


class GameplayLog(Base):
    __tablename__ = "gameplay_logs"

    id = Column(String(32), primary_key=True)          # uuid4 hex, assigned by the store
    app_id = Column(String(120), nullable=False)       # document-store namespace
    owner_id = Column(String(255), nullable=False)     # opaque user id
    created_at_us = Column(BigInteger, nullable=False) # server timestamp, microseconds since epoch

    source_text = Column(Text, nullable=True)          # submitted gameplay text
    source_file_url = Column(Text, nullable=True)      # uploaded log file
    source_file_name = Column(String(512), nullable=True)
    source_file_mime_type = Column(String(255), nullable=True)

    # AI result; present iff analysis_text is not NULL
    analysis_text = Column(Text, nullable=True)
    suggestions = Column(JSON, nullable=True)
    errors_detected = Column(JSON, nullable=True)
    model_name = Column(String(120), nullable=True)

    __table_args__ = (
        Index("ix_gameplay_logs_owner", "app_id", "owner_id", "created_at_us"),
    )
