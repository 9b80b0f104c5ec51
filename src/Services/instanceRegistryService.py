import logging
from uuid import UUID
from pydantic import ValidationError
from src.Domain import (
    IInstanceRegistryService,
    IInstanceRepository,
    IAutomationWebhookClient,
    InstanceEntity,
    InstanceStatus,
    sources_for,
    UserContext,
    OperationResult,
    FailureKind,
    WebhookTransportError,
    StorageError
)

logger = logging.getLogger(__name__)


class InstanceRegistryService(IInstanceRegistryService):
    """
    Cria, lista e atualiza as instâncias de WhatsApp do usuário.
    A instância só é gravada depois que o webhook de criação aceitou o pedido.
    """

    def __init__(
        self,
        instance_repo: IInstanceRepository,
        webhook_client: IAutomationWebhookClient
    ):
        self.instance_repo = instance_repo
        self.webhook_client = webhook_client

    async def create_instance(self, user: UserContext, name: str, phone_number: str) -> OperationResult:
        """
        1. Valida nome e número
        2. Chama o webhook de criação e espera a resposta completa
        3. Aceita apenas status `starting` ou `ok`
        4. Persiste a instância como `pending` com a resposta bruta
        """
        name = (name or "").strip()
        phone_number = (phone_number or "").strip()
        if not name or not phone_number:
            return OperationResult.fail(FailureKind.VALIDATION, "Nome e número são obrigatórios")

        try:
            draft = InstanceEntity(
                user_id=user.id,
                name=name,
                phone_number=phone_number,
                status=InstanceStatus.PENDING
            )
        except ValidationError as e:
            return OperationResult.fail(FailureKind.VALIDATION, f"Dados inválidos: {e.errors()[0]['msg']}")

        # ========== 1. WEBHOOK ==========
        try:
            response = await self.webhook_client.create_instance(user, draft)
        except WebhookTransportError as e:
            logger.warning(f"[Registry] ⚠️ Webhook de criação indisponível para '{name}': {e}")
            return OperationResult.fail(FailureKind.TRANSPORT, str(e))

        if not response.is_creation_accepted():
            logger.warning(
                f"[Registry] ❌ Webhook recusou '{name}': "
                f"http={response.status_code} status={response.normalized_status()!r}"
            )
            return OperationResult.fail(
                FailureKind.CONTRACT,
                f"Webhook não aceitou a criação (HTTP {response.status_code}, "
                f"status={response.normalized_status()!r})",
                raw_response=response.raw_text
            )

        # ========== 2. PERSISTÊNCIA ==========
        draft.webhook_response = response.body
        try:
            instance = await self.instance_repo.create(draft)
        except StorageError as e:
            # O webhook já criou a instância do lado de lá: não pode sumir em silêncio
            logger.error(
                f"[Registry] ❌ INCONSISTÊNCIA: webhook aceitou '{name}' ({phone_number}) "
                f"para o usuário {user.id} mas a gravação falhou: {e}"
            )
            return OperationResult.fail(
                FailureKind.STORAGE,
                "A instância foi criada no provedor, mas não foi possível salvá-la",
                raw_response=response.raw_text,
                side_effect_committed=True
            )

        logger.info(f"[Registry] ✅ Instância criada: {instance.id} ({instance.name})")
        return OperationResult.success(instance)

    async def list_instances(self, user: UserContext) -> OperationResult:
        try:
            instances = await self.instance_repo.list_by_user(user.id)
        except StorageError as e:
            logger.error(f"[Registry] ❌ Erro ao listar instâncias de {user.id}: {e}")
            return OperationResult.fail(FailureKind.STORAGE, "Erro ao carregar as instâncias")
        return OperationResult.success(instances)

    async def get_instance(self, user: UserContext, instance_id: UUID) -> OperationResult:
        try:
            instance = await self.instance_repo.get_by_id(user.id, instance_id)
        except StorageError as e:
            logger.error(f"[Registry] ❌ Erro ao buscar instância {instance_id}: {e}")
            return OperationResult.fail(FailureKind.STORAGE, "Erro ao carregar a instância")
        if not instance:
            return OperationResult.fail(FailureKind.NOT_FOUND, f"Instância {instance_id} não encontrada")
        return OperationResult.success(instance)

    async def rename_instance(self, user: UserContext, instance_id: UUID, name: str) -> OperationResult:
        name = (name or "").strip()
        if not name or len(name) > 100:
            return OperationResult.fail(FailureKind.VALIDATION, "Nome é obrigatório (até 100 caracteres)")
        try:
            instance = await self.instance_repo.rename(user.id, instance_id, name)
        except StorageError as e:
            logger.error(f"[Registry] ❌ Erro ao renomear instância {instance_id}: {e}")
            return OperationResult.fail(FailureKind.STORAGE, "Erro ao renomear a instância")
        if not instance:
            return OperationResult.fail(FailureKind.NOT_FOUND, f"Instância {instance_id} não encontrada")
        return OperationResult.success(instance)

    async def disconnect_instance(self, user: UserContext, instance_id: UUID) -> OperationResult:
        """Desconexão explícita (pending|connected -> disconnected); repetir é no-op"""
        try:
            instance = await self.instance_repo.update_status(
                user.id,
                instance_id,
                InstanceStatus.DISCONNECTED,
                allowed_from=sources_for(InstanceStatus.DISCONNECTED)
            )
            if instance:
                logger.info(f"[Registry] 🔌 Instância {instance_id} desconectada")
                return OperationResult.success(instance)

            current = await self.instance_repo.get_by_id(user.id, instance_id)
        except StorageError as e:
            logger.error(f"[Registry] ❌ Erro ao desconectar instância {instance_id}: {e}")
            return OperationResult.fail(FailureKind.STORAGE, "Erro ao desconectar a instância")

        if not current:
            return OperationResult.fail(FailureKind.NOT_FOUND, f"Instância {instance_id} não encontrada")
        return OperationResult.success(current)
