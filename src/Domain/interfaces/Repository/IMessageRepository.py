# src/Domain/IMessageRepository.py
from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional
from src.Domain import MessageEntity, DeliveryStatus
import uuid


class IMessageRepository(ABC):

    @abstractmethod
    async def create(self, message: MessageEntity) -> MessageEntity:
        """Levanta DuplicateMessageError se o external_id já existir na conversa"""
        pass

    @abstractmethod
    async def get_by_id(self, user_id: str, message_id: uuid.UUID) -> Optional[MessageEntity]:
        pass

    @abstractmethod
    async def get_by_external_id(
        self,
        user_id: str,
        conversation_id: uuid.UUID,
        external_id: str
        ) -> Optional[MessageEntity]:
        pass

    @abstractmethod
    async def list_by_conversation(
        self,
        user_id: str,
        conversation_id: uuid.UUID
        ) -> List[MessageEntity]:
        """Ordem total: created_at ASC, seq ASC"""
        pass

    @abstractmethod
    async def get_last(self, user_id: str, conversation_id: uuid.UUID) -> Optional[MessageEntity]:
        pass

    @abstractmethod
    async def count_inbound_since(
        self,
        user_id: str,
        conversation_id: uuid.UUID,
        since: Optional[datetime]
        ) -> int:
        pass

    @abstractmethod
    async def update_delivery_status(
        self,
        user_id: str,
        message_id: uuid.UUID,
        status: DeliveryStatus,
        allowed_from: List[DeliveryStatus]
        ) -> Optional[MessageEntity]:
        pass
