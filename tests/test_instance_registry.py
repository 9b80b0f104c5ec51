import asyncio
import uuid

import httpx

from src.Domain import FailureKind, InstanceStatus, can_transition, sources_for


def test_create_instance_persists_pending_after_starting(registry, instance_repo, webhook, user):
    webhook.create_responses.append((200, [{"status": "STARTING"}]))

    result = asyncio.run(registry.create_instance(user, "  Loja Centro ", "5511999990000"))

    assert result.ok
    instance = result.value
    assert instance.status == InstanceStatus.PENDING
    assert instance.name == "Loja Centro"
    assert instance.webhook_response == [{"status": "STARTING"}]
    assert list(instance_repo.rows) == [instance.id]

    sent = webhook.sent_json()
    assert sent["usuario"] == {"id": "user-1", "email": "ana@example.com", "nombre": "Ana", "plan": "freemium"}
    assert sent["instancia"] == {"nombre_instancia": "Loja Centro", "numero_whatsapp": "5511999990000"}
    assert webhook.requests[-1].headers["content-type"] == "application/json"


def test_rejected_status_persists_nothing(registry, instance_repo, webhook, user):
    webhook.create_responses.append((200, {"status": "error", "message": "número inválido"}))

    result = asyncio.run(registry.create_instance(user, "Loja", "123"))

    assert not result.ok
    assert result.failure == FailureKind.CONTRACT
    assert "número inválido" in result.raw_response
    assert instance_repo.rows == {}


def test_non_2xx_is_contract_failure(registry, instance_repo, webhook, user):
    webhook.create_responses.append((502, "Bad Gateway"))

    result = asyncio.run(registry.create_instance(user, "Loja", "123"))

    assert result.failure == FailureKind.CONTRACT
    assert result.raw_response == "Bad Gateway"
    assert instance_repo.rows == {}


def test_timeout_is_transport_failure(registry, instance_repo, webhook, user):
    webhook.create_responses.append(httpx.ReadTimeout("demorou"))

    result = asyncio.run(registry.create_instance(user, "Loja", "123"))

    assert result.failure == FailureKind.TRANSPORT
    assert instance_repo.rows == {}


def test_missing_fields_never_call_webhook(registry, webhook, user):
    result = asyncio.run(registry.create_instance(user, "   ", "123"))

    assert result.failure == FailureKind.VALIDATION
    assert webhook.requests == []


def test_oversized_name_is_validation_failure(registry, webhook, user):
    result = asyncio.run(registry.create_instance(user, "x" * 101, "123"))

    assert result.failure == FailureKind.VALIDATION
    assert webhook.requests == []


def test_storage_failure_after_webhook_reports_committed_side_effect(registry, instance_repo, webhook, user, caplog):
    webhook.create_responses.append((200, {"status": "ok"}))
    instance_repo.fail_next.add("create")

    result = asyncio.run(registry.create_instance(user, "Loja", "123"))

    assert result.failure == FailureKind.STORAGE
    assert result.side_effect_committed is True
    assert "INCONSISTÊNCIA" in caplog.text


def test_instances_are_scoped_to_owner(registry, instance_repo, user, other_user):
    mine = instance_repo.add(user.id)
    instance_repo.add(other_user.id)

    listed = asyncio.run(registry.list_instances(user))
    foreign = asyncio.run(registry.get_instance(other_user, mine.id))

    assert [i.id for i in listed.value] == [mine.id]
    assert foreign.failure == FailureKind.NOT_FOUND


def test_rename_instance(registry, instance_repo, user):
    instance = instance_repo.add(user.id)

    renamed = asyncio.run(registry.rename_instance(user, instance.id, " Filial "))
    empty = asyncio.run(registry.rename_instance(user, instance.id, ""))
    missing = asyncio.run(registry.rename_instance(user, uuid.uuid4(), "Outra"))

    assert renamed.value.name == "Filial"
    assert empty.failure == FailureKind.VALIDATION
    assert missing.failure == FailureKind.NOT_FOUND


def test_disconnect_is_idempotent(registry, instance_repo, user):
    instance = instance_repo.add(user.id, status=InstanceStatus.CONNECTED)

    first = asyncio.run(registry.disconnect_instance(user, instance.id))
    second = asyncio.run(registry.disconnect_instance(user, instance.id))
    missing = asyncio.run(registry.disconnect_instance(user, uuid.uuid4()))

    assert first.value.status == InstanceStatus.DISCONNECTED
    assert second.ok and second.value.status == InstanceStatus.DISCONNECTED
    assert missing.failure == FailureKind.NOT_FOUND


def test_demo_instance_with_object_status(registry, instance_repo, webhook, user):
    webhook.create_responses.append((200, {"status": "STARTING"}))

    result = asyncio.run(registry.create_instance(user, "Demo", "+10000000000"))

    assert result.value.status == InstanceStatus.PENDING
    assert instance_repo.rows[result.value.id].phone_number == "+10000000000"


def test_status_transition_table():
    assert can_transition(InstanceStatus.PENDING, InstanceStatus.CONNECTED)
    assert can_transition(InstanceStatus.CONNECTED, InstanceStatus.DISCONNECTED)
    assert can_transition(InstanceStatus.DISCONNECTED, InstanceStatus.CONNECTED)
    assert can_transition(InstanceStatus.CONNECTED, InstanceStatus.CONNECTED)
    assert not can_transition(InstanceStatus.CONNECTED, InstanceStatus.PENDING)

    assert set(sources_for(InstanceStatus.CONNECTED)) == {InstanceStatus.PENDING, InstanceStatus.DISCONNECTED}
    assert set(sources_for(InstanceStatus.DISCONNECTED)) == {InstanceStatus.PENDING, InstanceStatus.CONNECTED}
