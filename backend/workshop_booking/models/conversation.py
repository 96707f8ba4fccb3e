"""
Conversations between one parent/child and the staff side, with an append-only message log.
"""

from sqlalchemy import Column, Integer, Text, DateTime, ForeignKey, Index, func

from workshop_booking.db.base import Base, TimestampMixin, utcnow


class Conversation(Base, TimestampMixin):
    __tablename__ = "conversations"

    id = Column(Integer, primary_key=True, index=True)
    # The single non-staff participant; staff is the implicit other party
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False, unique=True, index=True)

    def __repr__(self) -> str:
        return f"<Conversation(id={self.id}, owner={self.owner_id})>"


class ConversationMessage(Base):
    __tablename__ = "conversation_messages"

    id = Column(Integer, primary_key=True, index=True)
    conversation_id = Column(Integer, ForeignKey("conversations.id"), nullable=False)
    sender_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    body = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())

    __table_args__ = (
        Index("ix_conversation_messages_conversation_created", "conversation_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<ConversationMessage(id={self.id}, conversation={self.conversation_id}, sender={self.sender_id})>"
