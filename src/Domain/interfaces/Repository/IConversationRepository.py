# src/Domain/Repositories/IConversationRepository.py
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional, List
from uuid import UUID
from src.Domain import ConversationEntity, ConversationStatus


class IConversationRepository(ABC):

    @abstractmethod
    async def list_active(self, user_id: str, instance_id: Optional[UUID] = None) -> List[ConversationEntity]:...
    @abstractmethod
    async def get_by_id(self, user_id: str, conversation_id: UUID) -> Optional[ConversationEntity]:...
    @abstractmethod
    async def get_active_conversation(self, user_id: str, instance_id: UUID, contact_id: str) -> Optional[ConversationEntity]:...
    @abstractmethod
    async def create(self, conversation: ConversationEntity) -> ConversationEntity:
        """Levanta DuplicateConversationError se já existir conversa ativa para o par"""
        ...
    @abstractmethod
    async def apply_message(
        self,
        user_id: str,
        conversation_id: UUID,
        preview: str,
        message_at: datetime,
        direction: str,
        unread_increment: int
    ) -> None:
        """Atualiza o resumo desnormalizado; o contador é incrementado no próprio banco"""
        ...
    @abstractmethod
    async def set_summary(
        self,
        user_id: str,
        conversation_id: UUID,
        preview: Optional[str],
        message_at: Optional[datetime],
        direction: Optional[str],
        unread_count: int
    ) -> Optional[ConversationEntity]:...
    @abstractmethod
    async def mark_read(self, user_id: str, conversation_id: UUID) -> Optional[ConversationEntity]:...
    @abstractmethod
    async def set_status(self, user_id: str, conversation_id: UUID, status: ConversationStatus) -> Optional[ConversationEntity]:...
