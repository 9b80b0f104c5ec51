import logging
from typing import Optional
from uuid import UUID
from pydantic import ValidationError
from src.config import settings
from src.Domain import (
    IConversationService,
    IConversationRepository,
    IMessageRepository,
    IInstanceRepository,
    ConversationEntity,
    ConversationStatus,
    MessageEntity,
    MessageDirection,
    DeliveryStatus,
    AttachmentEntity,
    UserContext,
    OperationResult,
    FailureKind,
    StorageError,
    DuplicateConversationError,
    DuplicateMessageError
)

logger = logging.getLogger(__name__)


class ConversationService(IConversationService):

    def __init__(
        self,
        conversation_repo: IConversationRepository,
        message_repo: IMessageRepository,
        instance_repo: IInstanceRepository
    ):
        self.conversation_repo = conversation_repo
        self.message_repo = message_repo
        self.instance_repo = instance_repo
        self.preview_length = settings.MESSAGE_PREVIEW_LENGTH

    async def _load_conversation(self, user: UserContext, conversation_id: UUID):
        try:
            conversation = await self.conversation_repo.get_by_id(user.id, conversation_id)
        except StorageError as e:
            logger.error(f"[Conversation {conversation_id}] ❌ Erro ao carregar conversa: {e}")
            return None, OperationResult.fail(FailureKind.STORAGE, "Erro ao carregar a conversa")
        if not conversation:
            return None, OperationResult.fail(FailureKind.NOT_FOUND, f"Conversa {conversation_id} não encontrada")
        return conversation, None

    async def find_or_create_conversation(
        self,
        user: UserContext,
        instance_id: UUID,
        contact_id: str,
        contact_name: Optional[str] = None
    ) -> OperationResult:
        """Carrega a conversa ativa do par (instância, contato) ou cria uma nova"""
        contact_id = (contact_id or "").strip()
        if not contact_id or len(contact_id) > 100:
            return OperationResult.fail(FailureKind.VALIDATION, "Contato é obrigatório (até 100 caracteres)")

        try:
            instance = await self.instance_repo.get_by_id(user.id, instance_id)
            if not instance:
                return OperationResult.fail(FailureKind.NOT_FOUND, f"Instância {instance_id} não encontrada")

            conversation = await self.conversation_repo.get_active_conversation(user.id, instance_id, contact_id)
            if conversation:
                return OperationResult.success(conversation)

            try:
                conversation = await self.conversation_repo.create(
                    ConversationEntity(
                        user_id=user.id,
                        instance_id=instance_id,
                        contact_id=contact_id,
                        contact_name=contact_name
                    )
                )
                logger.info(f"[{contact_id}] ✅ Nova conversa criada: {conversation.id}")
                return OperationResult.success(conversation)
            except DuplicateConversationError:
                # Outra operação criou a conversa entre a leitura e a escrita
                logger.info(f"[{contact_id}] 🔁 Conversa criada em paralelo, recarregando")
                conversation = await self.conversation_repo.get_active_conversation(user.id, instance_id, contact_id)
        except StorageError as e:
            logger.error(f"[{contact_id}] ❌ Erro ao carregar/criar conversa: {e}")
            return OperationResult.fail(FailureKind.STORAGE, "Erro ao carregar a conversa")

        if not conversation:
            return OperationResult.fail(
                FailureKind.CONSISTENCY,
                "Conversa existente não pôde ser carregada após conflito"
            )
        return OperationResult.success(conversation)

    async def append_message(
        self,
        user: UserContext,
        conversation_id: UUID,
        direction: MessageDirection,
        content: str,
        attachment: Optional[AttachmentEntity] = None,
        external_id: Optional[str] = None
    ) -> OperationResult:
        """
        1. Grava a mensagem (created_at e seq vêm do banco)
        2. Atualiza o resumo da conversa com incremento no próprio banco
        3. Se o passo 2 falhar, reconcilia a conversa na hora
        """
        try:
            draft = MessageEntity(
                user_id=user.id,
                conversation_id=conversation_id,
                direction=direction,
                content=(content or "").strip(),
                attachment=attachment,
                external_id=external_id
            )
        except ValidationError as e:
            return OperationResult.fail(FailureKind.VALIDATION, f"Mensagem inválida: {e.errors()[0]['msg']}")

        conversation, failure = await self._load_conversation(user, conversation_id)
        if failure:
            return failure

        # ========== 1. MENSAGEM ==========
        try:
            message = await self.message_repo.create(draft)
        except DuplicateMessageError:
            try:
                existing = await self.message_repo.get_by_external_id(user.id, conversation_id, external_id)
            except StorageError as e:
                logger.error(f"[Conversation {conversation_id}] ❌ Erro ao recarregar mensagem duplicada: {e}")
                return OperationResult.fail(FailureKind.STORAGE, "Erro ao salvar a mensagem")
            logger.info(f"[Conversation {conversation_id}] 🔁 Mensagem {external_id} já registrada, ignorando")
            return OperationResult.success(existing, message="Mensagem já registrada")
        except StorageError as e:
            logger.error(f"[Conversation {conversation_id}] ❌ Erro ao salvar mensagem: {e}")
            return OperationResult.fail(FailureKind.STORAGE, "Erro ao salvar a mensagem")

        # ========== 2. RESUMO DESNORMALIZADO ==========
        try:
            await self.conversation_repo.apply_message(
                user.id,
                conversation_id,
                preview=message.preview(self.preview_length),
                message_at=message.created_at,
                direction=message.direction.value,
                unread_increment=1 if message.direction == MessageDirection.INBOUND else 0
            )
        except StorageError as e:
            logger.error(
                f"[Conversation {conversation_id}] ❌ Resumo não atualizado após a mensagem {message.id}: {e}"
            )
            healed = await self.reconcile_conversation(user, conversation_id)
            if not healed.ok:
                logger.error(
                    f"[Conversation {conversation_id}] ❌ INCONSISTÊNCIA: mensagem {message.id} gravada "
                    f"mas o resumo da conversa está desatualizado"
                )
                return OperationResult.fail(
                    FailureKind.CONSISTENCY,
                    "Mensagem salva, mas o resumo da conversa não foi atualizado",
                    value=message
                )

        logger.info(f"[Conversation {conversation_id}] ✅ Mensagem {message.direction.value} salva: {message.id}")
        return OperationResult.success(message)

    async def list_messages(self, user: UserContext, conversation_id: UUID) -> OperationResult:
        """Mensagens em ordem cronológica; empates resolvidos pela ordem de inserção"""
        conversation, failure = await self._load_conversation(user, conversation_id)
        if failure:
            return failure
        try:
            messages = await self.message_repo.list_by_conversation(user.id, conversation_id)
        except StorageError as e:
            logger.error(f"[Conversation {conversation_id}] ❌ Erro ao listar mensagens: {e}")
            return OperationResult.fail(FailureKind.STORAGE, "Erro ao carregar as mensagens")
        return OperationResult.success(sorted(messages, key=MessageEntity.sort_key))

    async def mark_read(self, user: UserContext, conversation_id: UUID) -> OperationResult:
        try:
            conversation = await self.conversation_repo.mark_read(user.id, conversation_id)
        except StorageError as e:
            logger.error(f"[Conversation {conversation_id}] ❌ Erro ao marcar como lida: {e}")
            return OperationResult.fail(FailureKind.STORAGE, "Erro ao marcar a conversa como lida")
        if not conversation:
            return OperationResult.fail(FailureKind.NOT_FOUND, f"Conversa {conversation_id} não encontrada")
        return OperationResult.success(conversation)

    async def list_conversations(self, user: UserContext, instance_id: Optional[UUID] = None) -> OperationResult:
        try:
            conversations = await self.conversation_repo.list_active(user.id, instance_id)
        except StorageError as e:
            logger.error(f"[Conversation] ❌ Erro ao listar conversas de {user.id}: {e}")
            return OperationResult.fail(FailureKind.STORAGE, "Erro ao carregar as conversas")
        return OperationResult.success(conversations)

    async def receive_inbound(
        self,
        user: UserContext,
        instance_id: UUID,
        contact_id: str,
        content: str,
        attachment: Optional[AttachmentEntity] = None,
        external_id: Optional[str] = None,
        contact_name: Optional[str] = None
    ) -> OperationResult:
        """Entrada de uma mensagem recebida: localiza/cria a conversa e grava a mensagem"""
        found = await self.find_or_create_conversation(user, instance_id, contact_id, contact_name)
        if not found.ok:
            return found
        return await self.append_message(
            user,
            found.value.id,
            MessageDirection.INBOUND,
            content,
            attachment=attachment,
            external_id=external_id
        )

    async def send_message(
        self,
        user: UserContext,
        conversation_id: UUID,
        content: str,
        attachment: Optional[AttachmentEntity] = None
    ) -> OperationResult:
        conversation, failure = await self._load_conversation(user, conversation_id)
        if failure:
            return failure
        if conversation.status != ConversationStatus.ACTIVE:
            return OperationResult.fail(FailureKind.BLOCKED, "Conversa arquivada não aceita novas mensagens")
        return await self.append_message(
            user,
            conversation_id,
            MessageDirection.OUTBOUND,
            content,
            attachment=attachment
        )

    async def update_delivery_status(
        self,
        user: UserContext,
        message_id: UUID,
        status: DeliveryStatus
    ) -> OperationResult:
        """sent -> delivered -> read; nunca volta"""
        allowed_from = [s for s in DeliveryStatus if s.rank < status.rank]
        try:
            message = None
            if allowed_from:
                message = await self.message_repo.update_delivery_status(user.id, message_id, status, allowed_from)
            if message:
                return OperationResult.success(message)
            current = await self.message_repo.get_by_id(user.id, message_id)
        except StorageError as e:
            logger.error(f"[Message {message_id}] ❌ Erro ao atualizar status de entrega: {e}")
            return OperationResult.fail(FailureKind.STORAGE, "Erro ao atualizar o status de entrega")

        if not current:
            return OperationResult.fail(FailureKind.NOT_FOUND, f"Mensagem {message_id} não encontrada")
        if current.direction != MessageDirection.OUTBOUND:
            return OperationResult.fail(FailureKind.VALIDATION, "Status de entrega só vale para mensagens enviadas")
        # Já está no mesmo status ou adiante
        return OperationResult.success(current)

    async def reconcile_conversation(self, user: UserContext, conversation_id: UUID) -> OperationResult:
        """
        Recalcula o resumo a partir das mensagens:
        prévia/horário/direção da mais recente e não lidas = recebidas após a última leitura.
        """
        conversation, failure = await self._load_conversation(user, conversation_id)
        if failure:
            return failure
        try:
            last = await self.message_repo.get_last(user.id, conversation_id)
            unread = await self.message_repo.count_inbound_since(user.id, conversation_id, conversation.last_read_at)
            conversation = await self.conversation_repo.set_summary(
                user.id,
                conversation_id,
                preview=last.preview(self.preview_length) if last else None,
                message_at=last.created_at if last else None,
                direction=last.direction.value if last else None,
                unread_count=unread
            )
        except StorageError as e:
            logger.error(f"[Conversation {conversation_id}] ❌ Falha ao reconciliar: {e}")
            return OperationResult.fail(FailureKind.STORAGE, "Erro ao reconciliar a conversa")

        if not conversation:
            return OperationResult.fail(FailureKind.NOT_FOUND, f"Conversa {conversation_id} não encontrada")
        logger.info(f"[Conversation {conversation_id}] 🔧 Resumo reconciliado (não lidas={unread})")
        return OperationResult.success(conversation)

    async def archive_conversation(self, user: UserContext, conversation_id: UUID) -> OperationResult:
        try:
            conversation = await self.conversation_repo.set_status(user.id, conversation_id, ConversationStatus.ARCHIVED)
        except StorageError as e:
            logger.error(f"[Conversation {conversation_id}] ❌ Erro ao arquivar: {e}")
            return OperationResult.fail(FailureKind.STORAGE, "Erro ao arquivar a conversa")
        if not conversation:
            return OperationResult.fail(FailureKind.NOT_FOUND, f"Conversa {conversation_id} não encontrada")
        logger.info(f"[Conversation {conversation_id}] 📦 Conversa arquivada")
        return OperationResult.success(conversation)
