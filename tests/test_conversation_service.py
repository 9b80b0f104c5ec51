import asyncio
import uuid

from src.Domain import (
    FailureKind,
    MessageDirection,
    DeliveryStatus,
    AttachmentEntity,
    MediaKind,
    ConversationStatus
)


def test_concurrent_find_or_create_yields_one_conversation(conversations, conversation_repo, instance_repo, user):
    instance = instance_repo.add(user.id)

    async def scenario():
        return await asyncio.gather(*[
            conversations.find_or_create_conversation(user, instance.id, "5511988887777")
            for _ in range(3)
        ])

    results = asyncio.run(scenario())

    assert all(result.ok for result in results)
    assert len({result.value.id for result in results}) == 1
    assert len(conversation_repo.rows) == 1


def test_two_inbound_messages_for_new_contact(conversations, conversation_repo, message_repo, instance_repo, user):
    instance = instance_repo.add(user.id)

    async def scenario():
        return await asyncio.gather(
            conversations.receive_inbound(user, instance.id, "5511988887777", "Olá"),
            conversations.receive_inbound(user, instance.id, "5511988887777", "Tudo bem?")
        )

    first, second = asyncio.run(scenario())

    assert first.ok and second.ok
    assert len(conversation_repo.rows) == 1
    conversation = next(iter(conversation_repo.rows.values()))
    assert conversation.unread_count == 2
    assert len(message_repo.rows) == 2
    last = max(message_repo.rows, key=lambda m: (m.created_at, m.seq))
    assert conversation.last_message_preview == last.content
    assert conversation.last_message_direction == "inbound"


def test_messages_come_back_in_order(conversations, instance_repo, clock, user):
    instance = instance_repo.add(user.id)

    async def scenario():
        conversation = (await conversations.find_or_create_conversation(user, instance.id, "5511")).value
        await conversations.receive_inbound(user, instance.id, "5511", "primeira")
        clock.frozen = True
        await conversations.send_message(user, conversation.id, "segunda")
        await conversations.send_message(user, conversation.id, "terceira")
        clock.frozen = False
        return await conversations.list_messages(user, conversation.id)

    listed = asyncio.run(scenario())

    assert [m.content for m in listed.value] == ["primeira", "segunda", "terceira"]
    assert listed.value[1].created_at == listed.value[2].created_at
    assert listed.value[1].delivery_status == DeliveryStatus.SENT
    assert listed.value[0].delivery_status is None


def test_attachment_only_message_and_inferred_kind(conversations, conversation_repo, instance_repo, user):
    instance = instance_repo.add(user.id)

    result = asyncio.run(conversations.receive_inbound(
        user, instance.id, "5511", "",
        attachment=AttachmentEntity(url="https://cdn.example.com/files/nota.mp3")
    ))

    assert result.value.attachment.kind == MediaKind.AUDIO
    conversation = conversation_repo.rows[result.value.conversation_id]
    assert conversation.last_message_preview == "[audio]"


def test_empty_message_is_rejected(conversations, message_repo, instance_repo, user):
    instance = instance_repo.add(user.id)

    result = asyncio.run(conversations.receive_inbound(user, instance.id, "5511", "   "))

    assert result.failure == FailureKind.VALIDATION
    assert message_repo.rows == []


def test_duplicate_external_id_is_ignored(conversations, conversation_repo, message_repo, instance_repo, user):
    instance = instance_repo.add(user.id)

    async def scenario():
        first = await conversations.receive_inbound(user, instance.id, "5511", "oi", external_id="wamid.1")
        again = await conversations.receive_inbound(user, instance.id, "5511", "oi", external_id="wamid.1")
        return first, again

    first, again = asyncio.run(scenario())

    assert again.ok
    assert again.value.id == first.value.id
    assert len(message_repo.rows) == 1
    assert next(iter(conversation_repo.rows.values())).unread_count == 1


def test_mark_read_resets_unread(conversations, instance_repo, user):
    instance = instance_repo.add(user.id)

    async def scenario():
        message = (await conversations.receive_inbound(user, instance.id, "5511", "oi")).value
        return await conversations.mark_read(user, message.conversation_id)

    read = asyncio.run(scenario())

    assert read.value.unread_count == 0
    assert read.value.last_read_at is not None


def test_outbound_does_not_count_as_unread(conversations, instance_repo, user):
    instance = instance_repo.add(user.id)

    async def scenario():
        conversation = (await conversations.find_or_create_conversation(user, instance.id, "5511")).value
        await conversations.send_message(user, conversation.id, "bom dia")
        return await conversations.list_conversations(user)

    listed = asyncio.run(scenario())

    assert listed.value[0].unread_count == 0
    assert listed.value[0].last_message_direction == "outbound"


def test_preview_never_moves_backwards(conversations, conversation_repo, instance_repo, clock, user):
    instance = instance_repo.add(user.id)

    async def scenario():
        conversation = (await conversations.find_or_create_conversation(user, instance.id, "5511")).value
        await conversations.send_message(user, conversation.id, "recente")
        # Resumo atrasado chegando depois do mais novo
        await conversation_repo.apply_message(
            user.id, conversation.id, "antiga", clock.now.replace(year=2025), "inbound", 1
        )
        return (await conversations.list_conversations(user)).value[0]

    conversation = asyncio.run(scenario())

    assert conversation.last_message_preview == "recente"
    assert conversation.unread_count == 1


def test_failed_summary_update_is_healed_by_reconcile(conversations, conversation_repo, instance_repo, user):
    instance = instance_repo.add(user.id)

    async def scenario():
        conversation = (await conversations.find_or_create_conversation(user, instance.id, "5511")).value
        await conversations.receive_inbound(user, instance.id, "5511", "um")
        conversation_repo.fail_next.add("apply_message")
        result = await conversations.receive_inbound(user, instance.id, "5511", "dois")
        return conversation, result

    conversation, result = asyncio.run(scenario())

    assert result.ok
    stored = conversation_repo.rows[conversation.id]
    assert stored.unread_count == 2
    assert stored.last_message_preview == "dois"


def test_unhealed_summary_is_consistency_failure(conversations, conversation_repo, message_repo, instance_repo, user):
    instance = instance_repo.add(user.id)

    async def scenario():
        conversation = (await conversations.find_or_create_conversation(user, instance.id, "5511")).value
        conversation_repo.fail_next.update({"apply_message", "set_summary"})
        return await conversations.send_message(user, conversation.id, "olá")

    result = asyncio.run(scenario())

    assert result.failure == FailureKind.CONSISTENCY
    assert result.value.content == "olá"
    assert len(message_repo.rows) == 1


def test_reconcile_counts_inbound_after_last_read(conversations, conversation_repo, instance_repo, user):
    instance = instance_repo.add(user.id)

    async def scenario():
        first = (await conversations.receive_inbound(user, instance.id, "5511", "a")).value
        await conversations.mark_read(user, first.conversation_id)
        await conversations.receive_inbound(user, instance.id, "5511", "b")
        await conversations.send_message(user, first.conversation_id, "c")
        await conversations.receive_inbound(user, instance.id, "5511", "d")
        row = conversation_repo.rows[first.conversation_id]
        row.unread_count = 42
        row.last_message_preview = "lixo"
        return await conversations.reconcile_conversation(user, first.conversation_id)

    reconciled = asyncio.run(scenario())

    assert reconciled.value.unread_count == 2
    assert reconciled.value.last_message_preview == "d"
    assert reconciled.value.last_message_direction == "inbound"


def test_delivery_status_only_moves_forward(conversations, instance_repo, user):
    instance = instance_repo.add(user.id)

    async def scenario():
        conversation = (await conversations.find_or_create_conversation(user, instance.id, "5511")).value
        message = (await conversations.send_message(user, conversation.id, "oi")).value
        read = await conversations.update_delivery_status(user, message.id, DeliveryStatus.READ)
        back = await conversations.update_delivery_status(user, message.id, DeliveryStatus.DELIVERED)
        return read, back

    read, back = asyncio.run(scenario())

    assert read.value.delivery_status == DeliveryStatus.READ
    assert back.ok and back.value.delivery_status == DeliveryStatus.READ


def test_delivery_status_is_for_outbound_only(conversations, instance_repo, user):
    instance = instance_repo.add(user.id)

    async def scenario():
        message = (await conversations.receive_inbound(user, instance.id, "5511", "oi")).value
        inbound = await conversations.update_delivery_status(user, message.id, DeliveryStatus.READ)
        missing = await conversations.update_delivery_status(user, uuid.uuid4(), DeliveryStatus.READ)
        return inbound, missing

    inbound, missing = asyncio.run(scenario())

    assert inbound.failure == FailureKind.VALIDATION
    assert missing.failure == FailureKind.NOT_FOUND


def test_archive_starts_a_fresh_conversation(conversations, conversation_repo, instance_repo, user):
    instance = instance_repo.add(user.id)

    async def scenario():
        old = (await conversations.find_or_create_conversation(user, instance.id, "5511")).value
        archived = await conversations.archive_conversation(user, old.id)
        blocked = await conversations.send_message(user, old.id, "ainda aí?")
        fresh = await conversations.find_or_create_conversation(user, instance.id, "5511")
        listed = await conversations.list_conversations(user)
        return old, archived, blocked, fresh, listed

    old, archived, blocked, fresh, listed = asyncio.run(scenario())

    assert archived.value.status == ConversationStatus.ARCHIVED
    assert blocked.failure == FailureKind.BLOCKED
    assert fresh.value.id != old.id
    assert [c.id for c in listed.value] == [fresh.value.id]


def test_foreign_instance_and_conversation_are_not_found(conversations, instance_repo, user, other_user):
    instance = instance_repo.add(user.id)

    async def scenario():
        conversation = (await conversations.find_or_create_conversation(user, instance.id, "5511")).value
        foreign_open = await conversations.find_or_create_conversation(other_user, instance.id, "5511")
        foreign_list = await conversations.list_messages(other_user, conversation.id)
        return foreign_open, foreign_list

    foreign_open, foreign_list = asyncio.run(scenario())

    assert foreign_open.failure == FailureKind.NOT_FOUND
    assert foreign_list.failure == FailureKind.NOT_FOUND


def test_list_conversations_filters_by_instance(conversations, instance_repo, user):
    first = instance_repo.add(user.id, name="A")
    second = instance_repo.add(user.id, name="B")

    async def scenario():
        await conversations.receive_inbound(user, first.id, "5511", "oi")
        await conversations.receive_inbound(user, second.id, "5522", "olá")
        everything = await conversations.list_conversations(user)
        only_second = await conversations.list_conversations(user, second.id)
        return everything, only_second

    everything, only_second = asyncio.run(scenario())

    assert [c.contact_id for c in everything.value] == ["5522", "5511"]
    assert [c.contact_id for c in only_second.value] == ["5522"]
    assert only_second.value[0].instance_id == second.id


def test_append_then_list_returns_same_message(conversations, instance_repo, user):
    instance = instance_repo.add(user.id)
    attachment = AttachmentEntity(url="https://cdn.example.com/fotos/recibo.jpg")

    async def scenario():
        conversation = (await conversations.find_or_create_conversation(user, instance.id, "5511")).value
        appended = await conversations.append_message(
            user, conversation.id, MessageDirection.OUTBOUND, "segue o recibo", attachment=attachment
        )
        listed = await conversations.list_messages(user, conversation.id)
        return appended.value, listed.value

    appended, listed = asyncio.run(scenario())

    assert len(listed) == 1
    stored = listed[0]
    assert (stored.id, stored.content, stored.direction) == (appended.id, "segue o recibo", MessageDirection.OUTBOUND)
    assert stored.attachment.url == attachment.url
    assert stored.attachment.kind == MediaKind.IMAGE
