"""
Tests for conversations: ownership, live delivery and push to the owner.
"""

import pytest

from workshop_booking.domain.errors import Forbidden, NotFound, ValidationError
from workshop_booking.domain.principal import Role
from workshop_booking.models import PushSubscription

from conftest import principal


async def subscribe(db_session, user_id: int, endpoint: str) -> None:
    db_session.add(PushSubscription(user_id=user_id, endpoint=endpoint, p256dh="k", auth="a"))
    await db_session.commit()


@pytest.mark.asyncio
async def test_parent_gets_one_conversation(conversation_service, seed):
    parent = principal(seed.parent_id, Role.PARENT)

    first = await conversation_service.start_conversation(parent)
    again = await conversation_service.start_conversation(parent)

    assert first.owner_id == seed.parent_id
    assert again.id == first.id


@pytest.mark.asyncio
async def test_staff_starts_conversation_with_owner(conversation_service, seed):
    staff = principal(seed.staff_id, Role.STAFF)

    conversation = await conversation_service.start_conversation(staff, owner_id=seed.child_id)
    assert conversation.owner_id == seed.child_id

    with pytest.raises(ValidationError):
        await conversation_service.start_conversation(staff)
    with pytest.raises(ValidationError):
        await conversation_service.start_conversation(staff, owner_id=seed.admin_id)
    with pytest.raises(NotFound):
        await conversation_service.start_conversation(staff, owner_id=999)


@pytest.mark.asyncio
async def test_parent_cannot_open_someone_elses_conversation(conversation_service, seed):
    with pytest.raises(Forbidden):
        await conversation_service.start_conversation(principal(seed.parent_id, Role.PARENT), owner_id=seed.other_parent_id)


@pytest.mark.asyncio
async def test_owner_message_goes_live_without_push(conversation_service, db_session, publisher, transport, seed):
    await subscribe(db_session, seed.parent_id, "https://push.test/parent")
    parent = principal(seed.parent_id, Role.PARENT)
    conversation = await conversation_service.start_conversation(parent)

    message = await conversation_service.append_message(parent, conversation.id, "  Is there parking?  ")

    assert message.body == "Is there parking?"
    room, event, payload = publisher.events[-1]
    assert (room, event) == (f"conversation:{conversation.id}", "chat:message")
    assert payload["conversation_id"] == conversation.id
    assert payload["message"]["body"] == "Is there parking?"
    assert payload["message"]["sender_id"] == seed.parent_id
    assert transport.sent == []


@pytest.mark.asyncio
async def test_staff_reply_is_pushed_to_owner(conversation_service, db_session, transport, seed):
    await subscribe(db_session, seed.parent_id, "https://push.test/parent")
    await subscribe(db_session, seed.staff_id, "https://push.test/staff")
    conversation = await conversation_service.start_conversation(principal(seed.parent_id, Role.PARENT))

    await conversation_service.append_message(principal(seed.staff_id, Role.STAFF), conversation.id, "Yes, behind the studio")

    assert [endpoint for endpoint, _ in transport.sent] == ["https://push.test/parent"]
    _, payload = transport.sent[0]
    assert payload["title"] == "New message"
    assert payload["body"] == "Yes, behind the studio"
    assert payload["data"]["conversation_id"] == conversation.id


@pytest.mark.asyncio
async def test_empty_message_is_rejected(conversation_service, seed):
    parent = principal(seed.parent_id, Role.PARENT)
    conversation = await conversation_service.start_conversation(parent)

    for body in (None, "", "   "):
        with pytest.raises(ValidationError):
            await conversation_service.append_message(parent, conversation.id, body)


@pytest.mark.asyncio
async def test_outsider_cannot_post_or_read(conversation_service, seed):
    conversation = await conversation_service.start_conversation(principal(seed.parent_id, Role.PARENT))
    outsider = principal(seed.other_parent_id, Role.PARENT)

    with pytest.raises(Forbidden):
        await conversation_service.append_message(outsider, conversation.id, "hello")
    with pytest.raises(Forbidden):
        await conversation_service.list_messages(outsider, conversation.id)


@pytest.mark.asyncio
async def test_message_to_unknown_conversation(conversation_service, seed):
    with pytest.raises(NotFound):
        await conversation_service.append_message(principal(seed.staff_id, Role.STAFF), 999, "hello")


@pytest.mark.asyncio
async def test_messages_are_listed_in_order(conversation_service, seed):
    parent = principal(seed.parent_id, Role.PARENT)
    staff = principal(seed.staff_id, Role.STAFF)
    conversation = await conversation_service.start_conversation(parent)

    await conversation_service.append_message(parent, conversation.id, "one")
    await conversation_service.append_message(staff, conversation.id, "two")
    await conversation_service.append_message(parent, conversation.id, "three")

    messages = await conversation_service.list_messages(staff, conversation.id)
    assert [m.body for m in messages] == ["one", "two", "three"]


@pytest.mark.asyncio
async def test_broadcast_reaches_every_parent_and_child(conversation_service, publisher, seed):
    recipients = await conversation_service.broadcast(principal(seed.admin_id, Role.ADMIN), "Studio closed Monday")

    assert recipients == 4
    conversations = await conversation_service.list_conversations(principal(seed.staff_id, Role.STAFF))
    assert sorted(c.owner_id for c in conversations) == sorted(
        [seed.parent_id, seed.child_id, seed.other_parent_id, seed.other_child_id]
    )
    assert publisher.names().count("chat:message") == 4


@pytest.mark.asyncio
async def test_broadcast_is_admin_only(conversation_service, seed):
    with pytest.raises(Forbidden):
        await conversation_service.broadcast(principal(seed.staff_id, Role.STAFF), "hi")


@pytest.mark.asyncio
async def test_parent_lists_only_own_conversation(conversation_service, seed):
    await conversation_service.start_conversation(principal(seed.parent_id, Role.PARENT))
    await conversation_service.start_conversation(principal(seed.other_parent_id, Role.PARENT))

    mine = await conversation_service.list_conversations(principal(seed.parent_id, Role.PARENT))
    assert [c.owner_id for c in mine] == [seed.parent_id]
