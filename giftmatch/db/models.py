from __future__ import annotations

import enum

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    String,
    Table,
    UniqueConstraint,
    true,
)
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()


class GroupStatus(str, enum.Enum):
    OPEN = "open"
    LOCKED = "locked"
    ASSIGNED = "assigned"
    ARCHIVED = "archived"


group_participants = Table(
    "group_participants",
    Base.metadata,
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("group_id", Integer, ForeignKey("groups.id", ondelete="CASCADE"), primary_key=True),
    UniqueConstraint("user_id", "group_id", name="uq_group_participants_user_group"),
)


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    telegram_id = Column(BigInteger, unique=True, nullable=False, index=True)
    telegram_username = Column(String, nullable=True)
    display_name = Column(String, nullable=True)
    has_private_chat = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    groups = relationship("Group", secondary=group_participants, back_populates="participants")

    def __repr__(self) -> str:
        return (
            "<User(id={0}, telegram_id={1}, username={2}, has_private_chat={3})>"
        ).format(self.id, self.telegram_id, self.telegram_username, self.has_private_chat)


class Group(Base):
    __tablename__ = "groups"

    id = Column(Integer, primary_key=True)
    telegram_id = Column(BigInteger, unique=True, nullable=False, index=True)
    title = Column(String, nullable=True)
    status = Column(
        Enum(GroupStatus, name="group_status", values_callable=lambda statuses: [s.value for s in statuses]),
        nullable=False,
        default=GroupStatus.OPEN,
        server_default=GroupStatus.OPEN.value,
    )
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    locked_at = Column(DateTime(timezone=True), nullable=True)
    assigned_at = Column(DateTime(timezone=True), nullable=True)
    created_by_telegram_id = Column(BigInteger, nullable=True)
    last_assignment_seed = Column(BigInteger, nullable=True)
    avoid_repeats = Column(Boolean, nullable=False, default=True, server_default=true())

    participants = relationship("User", secondary=group_participants, back_populates="groups")
    assignments = relationship("Assignment", back_populates="group", cascade="all, delete-orphan")
    exclusions = relationship("Exclusion", back_populates="group", cascade="all, delete-orphan")

    def __repr__(self) -> str:
        return f"<Group(id={self.id}, telegram_id={self.telegram_id}, status={self.status})>"


class Assignment(Base):
    __tablename__ = "assignments"

    id = Column(Integer, primary_key=True)
    group_id = Column(Integer, ForeignKey("groups.id", ondelete="CASCADE"), nullable=False)
    giver_user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    receiver_user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    group = relationship("Group", back_populates="assignments")
    giver = relationship("User", foreign_keys=[giver_user_id])
    receiver = relationship("User", foreign_keys=[receiver_user_id])

    __table_args__ = (
        UniqueConstraint("group_id", "giver_user_id", name="uq_assignments_group_giver"),
    )


class AssignmentHistory(Base):
    __tablename__ = "assignment_history"

    id = Column(Integer, primary_key=True)
    group_id = Column(Integer, ForeignKey("groups.id", ondelete="CASCADE"), nullable=False)
    giver_user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    receiver_user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    round_number = Column(Integer, nullable=False, default=1, server_default="1")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class Exclusion(Base):
    """Two participants of a group who must not draw each other.

    Stored once per unordered pair, smaller user id first.
    """

    __tablename__ = "exclusions"

    id = Column(Integer, primary_key=True)
    group_id = Column(Integer, ForeignKey("groups.id", ondelete="CASCADE"), nullable=False)
    first_user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    second_user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    group = relationship("Group", back_populates="exclusions")
    first_user = relationship("User", foreign_keys=[first_user_id])
    second_user = relationship("User", foreign_keys=[second_user_id])

    __table_args__ = (
        UniqueConstraint("group_id", "first_user_id", "second_user_id", name="uq_exclusions_group_pair"),
        CheckConstraint("first_user_id < second_user_id", name="ck_exclusions_ordered_pair"),
    )


class WishlistItem(Base):
    __tablename__ = "wishlist_items"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    group_id = Column(Integer, ForeignKey("groups.id", ondelete="CASCADE"), nullable=False)
    text = Column(String, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
