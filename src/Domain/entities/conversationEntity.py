from enum import Enum
from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from uuid import UUID


class ConversationStatus(str, Enum):
    ACTIVE = "active"
    ARCHIVED = "archived"


class ConversationEntity(BaseModel):
    id: Optional[UUID] = Field(
        default=None,
        description="Identificador único da conversa"
    )

    user_id: str = Field(
        ...,
        description="Dono da conversa (mesmo dono da instância)"
    )

    instance_id: UUID = Field(
        ...,
        description="Instância de WhatsApp da conversa"
    )

    contact_id: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Número do contato remoto"
    )

    contact_name: Optional[str] = Field(
        default=None,
        description="Nome (pushname) do contato, quando conhecido"
    )

    last_message_preview: Optional[str] = Field(
        default=None,
        description="Resumo desnormalizado da última mensagem"
    )

    last_message_at: Optional[datetime] = Field(
        default=None,
        description="Horário da última mensagem"
    )

    last_message_direction: Optional[str] = None

    unread_count: int = Field(
        default=0,
        ge=0,
        description="Mensagens recebidas ainda não lidas"
    )

    status: ConversationStatus = ConversationStatus.ACTIVE

    last_read_at: Optional[datetime] = Field(
        default=None,
        description="Última vez que o dono abriu a conversa"
    )

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
