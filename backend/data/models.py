from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, JSON, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from .database import Base

class Business(Base):
    __tablename__ = "businesses"

    id = Column(String, primary_key=True, index=True)
    name = Column(String, nullable=False)
    type = Column(String)
    specialization = Column(String)
    location = Column(String)
    description = Column(Text)
    phone = Column(String)
    email = Column(String)
    address = Column(String)
    website = Column(String)
    keywords = Column(JSON, nullable=False, default=list)
    # chatbot settings: initial_message, system_prompt
    config = Column(JSON, nullable=False, default=dict)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    knowledge_entries = relationship("KnowledgeBaseEntry", back_populates="business",
                                     cascade="all, delete-orphan")

class KnowledgeBaseEntry(Base):
    __tablename__ = "knowledge_base"

    id = Column(Integer, primary_key=True, index=True)
    business_id = Column(String, ForeignKey("businesses.id"), nullable=False, index=True)
    question = Column(Text, nullable=False)
    answer = Column(Text, nullable=False)
    category = Column(String)
    priority = Column(Integer, nullable=False, default=0)
    source = Column(String)  # e.g. "manual" or an uploaded file name
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    business = relationship("Business", back_populates="knowledge_entries")
