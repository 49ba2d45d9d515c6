from sqlalchemy import Column, String, DateTime, Integer, Float, Boolean, ForeignKey, Index, UniqueConstraint, text
from sqlalchemy.orm import relationship
from datetime import datetime, timezone
from .session import Base
import uuid


def gen_uuid():
    return str(uuid.uuid4())


def utcnow():
    return datetime.now(timezone.utc)


class User(Base):
    __tablename__ = "users"
    id = Column(String, primary_key=True, default=gen_uuid)
    email = Column(String, unique=True, nullable=False)
    hashed_password = Column(String, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)


class UserPreferences(Base):
    __tablename__ = "user_preferences"
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    theme = Column(String, nullable=False, default="dark")
    updated_at = Column(DateTime, nullable=False, default=utcnow)


class EffortGraph(Base):
    __tablename__ = "effort_graphs"
    id = Column(String, primary_key=True, default=gen_uuid)
    name = Column(String, nullable=False)
    description = Column(String, nullable=True)
    author_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow)

    workstreams = relationship(
        "Workstream",
        back_populates="graph",
        cascade="all, delete-orphan",
        order_by="Workstream.created_at",
    )
    shares = relationship("SharedEffort", back_populates="graph", cascade="all, delete-orphan")
    permissions = relationship("GraphPermission", back_populates="graph", cascade="all, delete-orphan")


class Workstream(Base):
    __tablename__ = "workstreams"
    id = Column(String, primary_key=True, default=gen_uuid)
    name = Column(String, nullable=False)
    effort = Column(Float, nullable=False, default=0.0)  # raw magnitude, normalized at read time
    color = Column(String, nullable=False)
    graph_id = Column(String, ForeignKey("effort_graphs.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow)

    graph = relationship("EffortGraph", back_populates="workstreams")


class SharedEffort(Base):
    __tablename__ = "shared_efforts"
    id = Column(String, primary_key=True, default=gen_uuid)
    graph_id = Column(String, ForeignKey("effort_graphs.id", ondelete="CASCADE"), nullable=False, index=True)
    share_token = Column(String, unique=True, nullable=False)
    created_by = Column(String, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    view_count = Column(Integer, nullable=False, default=0)
    slack_view_count = Column(Integer, nullable=False, default=0)
    last_viewed_at = Column(DateTime, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    graph = relationship("EffortGraph", back_populates="shares")

    __table_args__ = (
        # one canonical active share per graph
        Index(
            "uq_shared_efforts_active_graph",
            "graph_id",
            unique=True,
            sqlite_where=text("is_active = 1"),
            postgresql_where=text("is_active"),
        ),
    )


class GraphPermission(Base):
    __tablename__ = "graph_permissions"
    id = Column(String, primary_key=True, default=gen_uuid)
    graph_id = Column(String, ForeignKey("effort_graphs.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    permission_level = Column(String, nullable=False, default="viewer")
    created_at = Column(DateTime, nullable=False, default=utcnow)

    graph = relationship("EffortGraph", back_populates="permissions")

    __table_args__ = (UniqueConstraint("graph_id", "user_id", name="uq_graph_permissions_graph_user"),)


class SlackUser(Base):
    __tablename__ = "slack_users"
    id = Column(String, primary_key=True, default=gen_uuid)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    slack_user_id = Column(String, unique=True, nullable=False)
    slack_team_id = Column(String, nullable=False)
    slack_access_token_encrypted = Column(String, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow)
