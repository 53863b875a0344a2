"""SQLAlchemy ORM models — maps to PostgreSQL tables."""

from datetime import datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
    text,
)
from sqlalchemy.dialects.postgresql import ARRAY, JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fieldops.adapters.persistence.database import Base

ACTIVE_ASSIGNMENT_INDEX = "uq_assignments_pending_order"


class ServiceOrderModel(Base):
    __tablename__ = "service_orders"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    external_ref: Mapped[str | None] = mapped_column(String(100), unique=True, nullable=True)
    country_code: Mapped[str] = mapped_column(String(2), nullable=False)
    service_type: Mapped[str] = mapped_column(String(50), nullable=False)
    scheduled_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    status: Mapped[str] = mapped_column(String(30), nullable=False, default="CREATED")
    required_certifications: Mapped[list[str]] = mapped_column(
        ARRAY(String(50)), nullable=False, default=list
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    assignments: Mapped[list["AssignmentModel"]] = relationship(back_populates="service_order")

    __table_args__ = (Index("idx_service_orders_country", "country_code"),)


class ProviderModel(Base):
    __tablename__ = "providers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(200), unique=True, nullable=False)
    country_code: Mapped[str] = mapped_column(String(2), nullable=False)
    tier: Mapped[int] = mapped_column(Integer, nullable=False, default=2)
    risk_status: Mapped[str] = mapped_column(String(20), nullable=False, default="OK")
    certifications: Mapped[list[str]] = mapped_column(ARRAY(String(50)), nullable=False, default=list)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    available: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    work_teams: Mapped[list["WorkTeamModel"]] = relationship(back_populates="provider")

    __table_args__ = (
        Index("idx_providers_country", "country_code"),
        CheckConstraint("tier BETWEEN 1 AND 3", name="ck_providers_tier"),
    )


class WorkTeamModel(Base):
    __tablename__ = "work_teams"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    provider_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("providers.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    certifications: Mapped[list[str]] = mapped_column(ARRAY(String(50)), nullable=False, default=list)

    provider: Mapped["ProviderModel"] = relationship(back_populates="work_teams")

    __table_args__ = (Index("idx_work_teams_provider", "provider_id"),)


class AssignmentModel(Base):
    __tablename__ = "assignments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    service_order_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("service_orders.id", ondelete="CASCADE"), nullable=False
    )
    provider_id: Mapped[int] = mapped_column(Integer, ForeignKey("providers.id"), nullable=False)
    work_team_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("work_teams.id"), nullable=True
    )
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    assignment_mode: Mapped[str] = mapped_column(String(20), nullable=False)
    original_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    proposed_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    accepted_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    date_negotiation_round: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    offer_expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    accepted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    refused_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    refusal_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    provider_score: Mapped[float | None] = mapped_column(Float, nullable=True)
    funnel: Mapped[list | None] = mapped_column(JSONB, nullable=True)
    candidate_provider_ids: Mapped[list[int]] = mapped_column(
        ARRAY(Integer), nullable=False, default=list
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    service_order: Mapped["ServiceOrderModel"] = relationship(back_populates="assignments")
    negotiations: Mapped[list["DateNegotiationModel"]] = relationship(
        back_populates="assignment",
        lazy="selectin",
        order_by="DateNegotiationModel.round",
    )

    __table_args__ = (
        Index("idx_assignments_provider", "provider_id"),
        Index("idx_assignments_status_expiry", "status", "offer_expires_at"),
        Index(
            ACTIVE_ASSIGNMENT_INDEX,
            "service_order_id",
            unique=True,
            postgresql_where=text("status = 'PENDING'"),
        ),
        CheckConstraint(
            "date_negotiation_round BETWEEN 0 AND 3", name="ck_assignments_round"
        ),
    )


class DateNegotiationModel(Base):
    __tablename__ = "date_negotiations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    assignment_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("assignments.id", ondelete="CASCADE"), nullable=False
    )
    round: Mapped[int] = mapped_column(Integer, nullable=False)
    proposed_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    proposed_by: Mapped[str] = mapped_column(String(20), nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    assignment: Mapped["AssignmentModel"] = relationship(back_populates="negotiations")

    __table_args__ = (
        UniqueConstraint("assignment_id", "round", name="uq_date_negotiations_round"),
        CheckConstraint("round BETWEEN 1 AND 3", name="ck_date_negotiations_round"),
    )
