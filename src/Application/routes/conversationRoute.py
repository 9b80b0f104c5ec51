from fastapi import APIRouter, Depends, status
from typing import List, Optional
from pydantic import BaseModel, Field
from uuid import UUID
import logging

from src.Application.dependecie import dependencies
from src.Application.mapper.resultMapper import raise_for_failure
from src.Application.security.currentUser import get_current_user
from src.Domain import (
    UserContext,
    ConversationEntity,
    MessageEntity,
    AttachmentEntity,
    DeliveryStatus,
    MediaKind
)

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Conversations"])


# ========== DTOs (Data Transfer Objects) ==========

class AttachmentDTO(BaseModel):
    url: str = Field(..., min_length=1, description="URL pública do arquivo")
    kind: Optional[MediaKind] = Field(None, description="Inferido pela extensão quando ausente")

    def to_entity(self) -> AttachmentEntity:
        return AttachmentEntity(url=self.url, kind=self.kind)


class ConversationOpenDTO(BaseModel):
    """DTO para abrir (ou reaproveitar) a conversa com um contato"""
    instance_id: UUID
    contact_id: str = Field(..., description="Número do contato")
    contact_name: Optional[str] = None


class MessageSendDTO(BaseModel):
    content: str = ""
    attachment: Optional[AttachmentDTO] = None


class InboundMessageDTO(BaseModel):
    """Mensagem recebida pela instância"""
    instance_id: UUID
    contact_id: str
    content: str = ""
    attachment: Optional[AttachmentDTO] = None
    external_id: Optional[str] = Field(None, description="ID da mensagem no upstream (deduplicação)")
    contact_name: Optional[str] = None


class DeliveryStatusDTO(BaseModel):
    status: DeliveryStatus


class ConversationResponseDTO(BaseModel):
    id: str
    instance_id: str
    contact_id: str
    contact_name: Optional[str] = None
    last_message_preview: Optional[str] = None
    last_message_at: Optional[str] = None
    last_message_direction: Optional[str] = None
    unread_count: int
    status: str

    @classmethod
    def from_entity(cls, conversation: ConversationEntity) -> "ConversationResponseDTO":
        return cls(
            id=str(conversation.id),
            instance_id=str(conversation.instance_id),
            contact_id=conversation.contact_id,
            contact_name=conversation.contact_name,
            last_message_preview=conversation.last_message_preview,
            last_message_at=conversation.last_message_at.isoformat() if conversation.last_message_at else None,
            last_message_direction=conversation.last_message_direction,
            unread_count=conversation.unread_count,
            status=conversation.status.value
        )


class MessageResponseDTO(BaseModel):
    id: str
    conversation_id: str
    direction: str
    content: str
    attachment: Optional[AttachmentDTO] = None
    delivery_status: Optional[str] = None
    external_id: Optional[str] = None
    created_at: Optional[str] = None

    @classmethod
    def from_entity(cls, message: MessageEntity) -> "MessageResponseDTO":
        return cls(
            id=str(message.id),
            conversation_id=str(message.conversation_id),
            direction=message.direction.value,
            content=message.content,
            attachment=AttachmentDTO(url=message.attachment.url, kind=message.attachment.kind) if message.attachment else None,
            delivery_status=message.delivery_status.value if message.delivery_status else None,
            external_id=message.external_id,
            created_at=message.created_at.isoformat() if message.created_at else None
        )


# ========== ENDPOINTS DE CONVERSAS ==========

@router.get("/conversations", response_model=List[ConversationResponseDTO])
async def list_conversations(
    instance_id: Optional[UUID] = None,
    user: UserContext = Depends(get_current_user)
):
    """Conversas ativas, da atividade mais recente para a mais antiga"""
    service = dependencies.conversationService()
    result = raise_for_failure(await service.list_conversations(user, instance_id))
    return [ConversationResponseDTO.from_entity(conversation) for conversation in result.value]


@router.post("/conversations", response_model=ConversationResponseDTO)
async def find_or_create_conversation(data: ConversationOpenDTO, user: UserContext = Depends(get_current_user)):
    service = dependencies.conversationService()
    result = raise_for_failure(
        await service.find_or_create_conversation(user, data.instance_id, data.contact_id, data.contact_name)
    )
    return ConversationResponseDTO.from_entity(result.value)


@router.post("/conversations/inbound", response_model=MessageResponseDTO, status_code=status.HTTP_201_CREATED)
async def receive_inbound(data: InboundMessageDTO, user: UserContext = Depends(get_current_user)):
    service = dependencies.conversationService()
    result = raise_for_failure(
        await service.receive_inbound(
            user,
            data.instance_id,
            data.contact_id,
            data.content,
            attachment=data.attachment.to_entity() if data.attachment else None,
            external_id=data.external_id,
            contact_name=data.contact_name
        )
    )
    return MessageResponseDTO.from_entity(result.value)


@router.get("/conversations/{conversation_id}/messages", response_model=List[MessageResponseDTO])
async def list_messages(conversation_id: UUID, user: UserContext = Depends(get_current_user)):
    service = dependencies.conversationService()
    result = raise_for_failure(await service.list_messages(user, conversation_id))
    return [MessageResponseDTO.from_entity(message) for message in result.value]


@router.post(
    "/conversations/{conversation_id}/messages",
    response_model=MessageResponseDTO,
    status_code=status.HTTP_201_CREATED
)
async def send_message(
    conversation_id: UUID,
    data: MessageSendDTO,
    user: UserContext = Depends(get_current_user)
):
    service = dependencies.conversationService()
    result = raise_for_failure(
        await service.send_message(
            user,
            conversation_id,
            data.content,
            attachment=data.attachment.to_entity() if data.attachment else None
        )
    )
    return MessageResponseDTO.from_entity(result.value)


@router.post("/conversations/{conversation_id}/read", response_model=ConversationResponseDTO)
async def mark_read(conversation_id: UUID, user: UserContext = Depends(get_current_user)):
    service = dependencies.conversationService()
    result = raise_for_failure(await service.mark_read(user, conversation_id))
    return ConversationResponseDTO.from_entity(result.value)


@router.post("/conversations/{conversation_id}/reconcile", response_model=ConversationResponseDTO)
async def reconcile_conversation(conversation_id: UUID, user: UserContext = Depends(get_current_user)):
    """Recalcula prévia e não lidas a partir das mensagens gravadas"""
    service = dependencies.conversationService()
    result = raise_for_failure(await service.reconcile_conversation(user, conversation_id))
    return ConversationResponseDTO.from_entity(result.value)


@router.post("/conversations/{conversation_id}/archive", response_model=ConversationResponseDTO)
async def archive_conversation(conversation_id: UUID, user: UserContext = Depends(get_current_user)):
    service = dependencies.conversationService()
    result = raise_for_failure(await service.archive_conversation(user, conversation_id))
    return ConversationResponseDTO.from_entity(result.value)


# ========== ENDPOINTS DE MENSAGENS ==========

@router.patch("/messages/{message_id}/delivery-status", response_model=MessageResponseDTO)
async def update_delivery_status(
    message_id: UUID,
    data: DeliveryStatusDTO,
    user: UserContext = Depends(get_current_user)
):
    service = dependencies.conversationService()
    result = raise_for_failure(await service.update_delivery_status(user, message_id, data.status))
    return MessageResponseDTO.from_entity(result.value)
