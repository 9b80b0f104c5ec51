from abc import ABC,abstractmethod
from typing import Optional
from uuid import UUID
from src.Domain import (
    UserContext,
    OperationResult,
    MessageDirection,
    AttachmentEntity,
    DeliveryStatus
)


class IConversationService(ABC):
    @abstractmethod
    async def find_or_create_conversation(
                                self,
                                user: UserContext,
                                instance_id: UUID,
                                contact_id: str,
                                contact_name: Optional[str] = None
                            ) -> OperationResult:...
    @abstractmethod
    async def append_message(
                                self,
                                user: UserContext,
                                conversation_id: UUID,
                                direction: MessageDirection,
                                content: str,
                                attachment: Optional[AttachmentEntity] = None,
                                external_id: Optional[str] = None
                            ) -> OperationResult:...
    @abstractmethod
    async def list_messages(self, user: UserContext, conversation_id: UUID) -> OperationResult:...
    @abstractmethod
    async def mark_read(self, user: UserContext, conversation_id: UUID) -> OperationResult:...
    @abstractmethod
    async def list_conversations(self, user: UserContext, instance_id: Optional[UUID] = None) -> OperationResult:...
    @abstractmethod
    async def receive_inbound(
                                self,
                                user: UserContext,
                                instance_id: UUID,
                                contact_id: str,
                                content: str,
                                attachment: Optional[AttachmentEntity] = None,
                                external_id: Optional[str] = None,
                                contact_name: Optional[str] = None
                            ) -> OperationResult:...
    @abstractmethod
    async def send_message(
                                self,
                                user: UserContext,
                                conversation_id: UUID,
                                content: str,
                                attachment: Optional[AttachmentEntity] = None
                            ) -> OperationResult:...
    @abstractmethod
    async def update_delivery_status(self, user: UserContext, message_id: UUID, status: DeliveryStatus) -> OperationResult:...
    @abstractmethod
    async def reconcile_conversation(self, user: UserContext, conversation_id: UUID) -> OperationResult:...
    @abstractmethod
    async def archive_conversation(self, user: UserContext, conversation_id: UUID) -> OperationResult:...
