"""数据库 ORM 模型."""

from datetime import datetime

from sqlalchemy import Column, DateTime, String, Text
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class RecordRow(Base):
    """通用数据记录表.

    本地数据服务把各逻辑表的记录以 JSON 文本保存在同一张表中，
    ``table_name`` 区分所属逻辑表（例如 ``shirts``）。
    """

    __tablename__ = "records"

    id = Column(String(36), primary_key=True)
    table_name = Column(String(64), nullable=False, index=True)
    data_json = Column(Text, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self) -> str:
        return f"<RecordRow(table={self.table_name}, id={self.id})>"
