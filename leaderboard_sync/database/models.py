from sqlalchemy import Column, Integer, String, DateTime, Text
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()

class KeyValueRecord(Base):
    """Local key/value JSON storage (one row per key)"""
    __tablename__ = 'kv_store'

    key = Column(String(200), primary_key=True)
    value = Column(Text, nullable=False)  # JSON document

    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<KeyValueRecord(key='{self.key}')>"

class LeaderboardPartition(Base):
    """Server-side versioned leaderboard record"""
    __tablename__ = 'leaderboard_partitions'

    id = Column(String(100), primary_key=True)
    scores = Column(Text, nullable=False, default='[]')  # JSON list of entries
    version = Column(Integer, nullable=False, default=0)

    # Metadata
    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<LeaderboardPartition(id='{self.id}', version={self.version})>"
