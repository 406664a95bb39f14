import uuid
from datetime import UTC, datetime

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import declarative_base, relationship

from ..enums import (
    NotificationLevel,
    SubscriptionPlan,
    SubscriptionReferenceType,
    SubscriptionStatus,
    TriggerType,
)

Base = declarative_base()


def _new_uuid() -> str:
    return str(uuid.uuid4())


# Association table for many-to-many relationship between users and organizations
organization_members_association = Table(
    "organization_members",
    Base.metadata,
    Column("user_id", Integer, ForeignKey("users.id"), primary_key=True),
    Column(
        "organization_id", Integer, ForeignKey("organizations.id"), primary_key=True
    ),
)


class UserModel(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True, index=True)
    provider_id = Column(String, unique=True, index=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC))
    workflows = relationship("WorkflowModel", back_populates="user")
    organizations = relationship(
        "OrganizationModel",
        secondary=organization_members_association,
        back_populates="members",
    )


class OrganizationModel(Base):
    __tablename__ = "organizations"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC))

    members = relationship(
        "UserModel",
        secondary=organization_members_association,
        back_populates="organizations",
    )


class WorkflowModel(Base):
    """Execution target for webhook triggers.

    The graph itself (live editor state and deployed snapshot) is owned by the
    executor service; this table only carries ownership and deployment state.
    """

    __tablename__ = "workflows"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    name = Column(String, nullable=False)
    is_deployed = Column(
        Boolean, nullable=False, default=False, server_default=text("false")
    )
    deployed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC))
    updated_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
    )

    user = relationship("UserModel", back_populates="workflows")
    webhooks = relationship("WebhookModel", back_populates="workflow")
    notification_webhooks = relationship(
        "NotificationWebhookModel", back_populates="workflow"
    )


class WebhookModel(Base):
    """Inbound trigger registration, resolved by path on every provider call."""

    __tablename__ = "webhooks"

    id = Column(String(36), primary_key=True, default=_new_uuid)
    workflow_id = Column(
        Integer, ForeignKey("workflows.id", ondelete="CASCADE"), nullable=False
    )
    block_id = Column(String, nullable=True)
    path = Column(String, nullable=False)
    provider = Column(String, nullable=False, default="generic")
    # Provider specific settings: secrets, verification tokens, header names
    provider_config = Column(JSON, nullable=False, default=dict)
    is_active = Column(
        Boolean, nullable=False, default=True, server_default=text("true")
    )
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC))
    updated_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
    )

    workflow = relationship("WorkflowModel", back_populates="webhooks")

    __table_args__ = (
        # Only one active webhook may own a path
        Index(
            "ix_webhooks_active_path",
            "path",
            unique=True,
            postgresql_where=text("is_active"),
        ),
        Index("ix_webhooks_workflow_id", "workflow_id"),
    )


class SubscriptionModel(Base):
    """Billing subscription, written by the billing service and read here."""

    __tablename__ = "subscriptions"

    id = Column(Integer, primary_key=True, index=True)
    reference_id = Column(Integer, nullable=False)
    reference_type = Column(
        Enum(
            *[t.value for t in SubscriptionReferenceType],
            name="subscription_reference_type",
        ),
        nullable=False,
        default=SubscriptionReferenceType.USER.value,
    )
    plan = Column(
        Enum(*[p.value for p in SubscriptionPlan], name="subscription_plan"),
        nullable=False,
        default=SubscriptionPlan.FREE.value,
    )
    status = Column(
        Enum(*[s.value for s in SubscriptionStatus], name="subscription_status"),
        nullable=False,
        default=SubscriptionStatus.ACTIVE.value,
    )
    seats = Column(Integer, nullable=False, default=1, server_default=text("1"))
    period_start = Column(DateTime(timezone=True), nullable=True)
    period_end = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("ix_subscriptions_reference", "reference_type", "reference_id"),
    )


class UserStatsModel(Base):
    """Per-user billing aggregate for the current period."""

    __tablename__ = "user_stats"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    current_period_cost = Column(
        Float, nullable=False, default=0.0, server_default=text("0")
    )
    # Overrides the plan limit when set
    current_usage_limit = Column(Float, nullable=True)
    updated_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
    )


class NotificationWebhookModel(Base):
    """Outbound endpoint that receives workflow execution events."""

    __tablename__ = "notification_webhooks"

    id = Column(String(36), primary_key=True, default=_new_uuid)
    workflow_id = Column(
        Integer, ForeignKey("workflows.id", ondelete="CASCADE"), nullable=False
    )
    url = Column(String(2048), nullable=False)
    secret = Column(String(256), nullable=True)  # HMAC signing key, write-only
    include_final_output = Column(Boolean, nullable=False, default=False)
    include_trace_spans = Column(Boolean, nullable=False, default=False)
    include_rate_limits = Column(Boolean, nullable=False, default=False)
    include_usage_data = Column(Boolean, nullable=False, default=False)
    level_filter = Column(
        JSON, nullable=False, default=lambda: [l.value for l in NotificationLevel]
    )
    trigger_filter = Column(
        JSON, nullable=False, default=lambda: [t.value for t in TriggerType]
    )
    active = Column(Boolean, nullable=False, default=True, server_default=text("true"))
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC))
    updated_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
    )

    workflow = relationship("WorkflowModel", back_populates="notification_webhooks")

    __table_args__ = (
        UniqueConstraint("workflow_id", "url", name="uq_notification_webhook_url"),
        Index("ix_notification_webhooks_workflow_id", "workflow_id"),
    )
