"""SQLAlchemy ORM models for FlowMatch.

All models use SQLite-compatible types:
- String(36) for UUID primary keys
- JSON for structured data (no JSONB)
- DateTime for timestamps (no TIMESTAMPTZ)

Only ``SuggestionInteraction`` is written by the suggestion engine. The
company, resource and type tables belong to the directory and import
services and are read-only here.
"""

import uuid

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    JSON,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from flowmatch.infra.database import Base


# ---------------------------------------------------------------------------
# Auth / User
# ---------------------------------------------------------------------------


class User(Base):
    """Platform user. Credentials live in the account service."""

    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String(255), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=False)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=func.now())

    # Relationships
    companies = relationship("Company", back_populates="owner")


# ---------------------------------------------------------------------------
# Company directory
# ---------------------------------------------------------------------------


class Company(Base):
    """A company profile with its declared material flows."""

    __tablename__ = "companies"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    owner_id = Column(String(36), ForeignKey("users.id"), nullable=True, index=True)
    name = Column(String(255), nullable=False)
    sector = Column(String(255), nullable=True)
    address = Column(String(500), nullable=True)
    description = Column(Text, nullable=True)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    validation_status = Column(String(20), nullable=False, default="pending", index=True)
    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    # Relationships
    owner = relationship("User", back_populates="companies")
    outputs = relationship("CompanyOutput", back_populates="company")
    inputs = relationship("CompanyInput", back_populates="company")
    type_links = relationship("CompanyTypeLink", back_populates="company")


class ResourceFamily(Base):
    """Curated, coarse classification of a resource (e.g. "Plastic")."""

    __tablename__ = "resource_families"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), unique=True, nullable=False)


class CompanyType(Base):
    """Curated activity type a company can declare (e.g. "Recycling")."""

    __tablename__ = "company_types"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), unique=True, nullable=False)


class CompanyTypeLink(Base):
    """Association between a company and its declared types."""

    __tablename__ = "company_type_links"
    __table_args__ = (
        UniqueConstraint("company_id", "type_id", name="uq_company_type_link"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    company_id = Column(String(36), ForeignKey("companies.id"), nullable=False, index=True)
    type_id = Column(Integer, ForeignKey("company_types.id"), nullable=False)

    company = relationship("Company", back_populates="type_links")
    type = relationship("CompanyType")


class CompanyOutput(Base):
    """Something a company produces or discards (waste when ``is_waste``)."""

    __tablename__ = "company_outputs"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    company_id = Column(String(36), ForeignKey("companies.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    category = Column(String(255), nullable=True)
    unit_measure = Column(String(50), nullable=True)
    description = Column(Text, nullable=True)
    is_waste = Column(Boolean, default=False, nullable=False)
    family_id = Column(Integer, ForeignKey("resource_families.id"), nullable=True)
    created_at = Column(DateTime, default=func.now())

    company = relationship("Company", back_populates="outputs")
    family = relationship("ResourceFamily")


class CompanyInput(Base):
    """A resource a company is looking for."""

    __tablename__ = "company_inputs"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    company_id = Column(String(36), ForeignKey("companies.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    category = Column(String(255), nullable=True)
    unit_measure = Column(String(50), nullable=True)
    description = Column(Text, nullable=True)
    family_id = Column(Integer, ForeignKey("resource_families.id"), nullable=True)
    created_at = Column(DateTime, default=func.now())

    company = relationship("Company", back_populates="inputs")
    family = relationship("ResourceFamily")


# ---------------------------------------------------------------------------
# Suggestions
# ---------------------------------------------------------------------------


class SuggestionInteraction(Base):
    """Per (user, target company) record of the last computed suggestion.

    ``status`` is user-controlled; recomputation refreshes the score,
    distance, reasons and metadata but never touches it.
    """

    __tablename__ = "suggestion_interactions"
    __table_args__ = (
        UniqueConstraint("user_id", "target_company_id", name="uq_suggestion_user_company"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    target_company_id = Column(String(36), ForeignKey("companies.id"), nullable=False)
    status = Column(String(20), nullable=False, default="new")  # new, saved, ignored, contacted
    last_score = Column(Integer, nullable=True)
    distance_km = Column(Float, nullable=True)
    reasons = Column(JSON, default=list)
    # "metadata" is reserved on declarative classes
    meta = Column("metadata", JSON, nullable=True)
    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    target_company = relationship("Company")
