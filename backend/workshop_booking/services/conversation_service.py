"""
Conversations between a parent/child and the staff side.

Each conversation belongs to exactly one non-staff user; staff and admins are
the implicit other party. Messages are append-only and go through the same
fan-out as booking events: the live room "conversation:<id>" always, and a web
push to the owner when staff wrote the message.
"""

from typing import Optional

from workshop_booking.core.logging import get_logger
from workshop_booking.db.base import utcnow
from workshop_booking.domain.errors import Forbidden, NotFound, ValidationError
from workshop_booking.domain.principal import Principal, Role
from workshop_booking.models import Conversation, ConversationMessage
from workshop_booking.repositories.interfaces import ConversationRepository, UnitOfWork, UserReader
from workshop_booking.services.interfaces.publisher import conversation_room
from workshop_booking.services.notifications import Notifier
from workshop_booking.services.push_service import Notification

logger = get_logger(__name__)

OWNER_ROLES = (Role.PARENT.value, Role.CHILD.value)
PREVIEW_LENGTH = 50


def message_payload(message: ConversationMessage) -> dict:
    return {
        "id": message.id,
        "conversation_id": message.conversation_id,
        "sender_id": message.sender_id,
        "body": message.body,
        "created_at": message.created_at.isoformat() if message.created_at else None,
    }


def preview(body: str) -> str:
    if len(body) > PREVIEW_LENGTH:
        return body[:PREVIEW_LENGTH] + "..."
    return body


class ConversationService:
    def __init__(
        self,
        users: UserReader,
        conversations: ConversationRepository,
        uow: UnitOfWork,
        notifier: Notifier,
    ) -> None:
        self._users = users
        self._conversations = conversations
        self._uow = uow
        self._notifier = notifier

    async def start_conversation(self, actor: Principal, owner_id: Optional[int] = None) -> Conversation:
        """
        Return the owner's conversation, creating it on first use.

        Parents and children always get their own. Staff and admins pass the
        owner they want to talk to.
        """
        if actor.is_staff:
            if owner_id is None:
                raise ValidationError("owner_id is required")
            owner = await self._users.get_user(owner_id)
            if owner is None:
                raise NotFound("User", owner_id)
            if owner.role not in OWNER_ROLES:
                raise ValidationError(f"User {owner_id} is staff and cannot own a conversation")
        else:
            if owner_id is not None and owner_id != actor.user_id:
                raise Forbidden("You can only start your own conversation")
            owner_id = actor.user_id

        conversation = await self._get_or_create(owner_id)
        await self._uow.commit()
        return conversation

    async def append_message(self, actor: Principal, conversation_id: int, body: Optional[str]) -> ConversationMessage:
        if body is None or not body.strip():
            raise ValidationError("Message cannot be empty")

        conversation = await self._conversations.get(conversation_id)
        if conversation is None:
            raise NotFound("Conversation", conversation_id)
        if not actor.is_staff and conversation.owner_id != actor.user_id:
            raise Forbidden("No access to this conversation")

        message = await self._append(conversation, actor.user_id, body.strip())
        await self._uow.commit()

        logger.info(
            "message_sent",
            conversation_id=conversation.id,
            message_id=message.id,
            sender_id=actor.user_id,
        )
        await self._deliver(conversation, message, actor, title="New message")
        return message

    async def broadcast(self, actor: Principal, body: Optional[str]) -> int:
        """Post the same message into every active parent/child conversation. Admin only."""
        if not actor.is_admin:
            raise Forbidden("Only administrators can message everyone")
        if body is None or not body.strip():
            raise ValidationError("Message cannot be empty")
        body = body.strip()

        recipients = await self._users.list_active_by_roles(OWNER_ROLES)
        delivered: list[tuple[Conversation, ConversationMessage]] = []
        for user in recipients:
            conversation = await self._get_or_create(user.id)
            delivered.append((conversation, await self._append(conversation, actor.user_id, body)))
        await self._uow.commit()

        logger.info("message_broadcast", sender_id=actor.user_id, recipients=len(recipients))
        for conversation, message in delivered:
            await self._deliver(conversation, message, actor, title="Message from the administrator")
        return len(recipients)

    async def list_conversations(self, actor: Principal) -> list[Conversation]:
        if actor.is_staff:
            return await self._conversations.find()
        return await self._conversations.find(owner_id=actor.user_id)

    async def list_messages(self, actor: Principal, conversation_id: int) -> list[ConversationMessage]:
        conversation = await self._conversations.get(conversation_id)
        if conversation is None:
            raise NotFound("Conversation", conversation_id)
        if not actor.is_staff and conversation.owner_id != actor.user_id:
            raise Forbidden("No access to this conversation")
        return await self._conversations.list_messages(conversation_id)

    async def _get_or_create(self, owner_id: int) -> Conversation:
        conversation = await self._conversations.get_by_owner(owner_id)
        if conversation is None:
            conversation = await self._conversations.add(Conversation(owner_id=owner_id))
            logger.info("conversation_started", conversation_id=conversation.id, owner_id=owner_id)
        return conversation

    async def _append(self, conversation: Conversation, sender_id: int, body: str) -> ConversationMessage:
        message = await self._conversations.add_message(
            ConversationMessage(
                conversation_id=conversation.id,
                sender_id=sender_id,
                body=body,
                created_at=utcnow(),
            )
        )
        conversation.updated_at = message.created_at
        return message

    async def _deliver(
        self,
        conversation: Conversation,
        message: ConversationMessage,
        actor: Principal,
        title: str,
    ) -> None:
        await self._notifier.publish(
            conversation_room(conversation.id),
            "chat:message",
            {"conversation_id": conversation.id, "message": message_payload(message)},
        )
        # The owner is the only non-staff participant; staff is reached on the live channel
        if actor.is_staff and conversation.owner_id != actor.user_id:
            await self._notifier.push(
                [conversation.owner_id],
                Notification(
                    title=title,
                    body=preview(message.body),
                    data={
                        "type": "chat_message",
                        "conversation_id": conversation.id,
                        "message_id": message.id,
                    },
                    tag=f"conversation-{conversation.id}",
                ),
            )
