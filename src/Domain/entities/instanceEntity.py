from enum import Enum
from pydantic import BaseModel, Field
from typing import Any, Optional
from datetime import datetime
from uuid import UUID


class InstanceStatus(str, Enum):
    PENDING = "pending"
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"


# Arestas permitidas da máquina de estados persistida
_TRANSITIONS = {
    InstanceStatus.PENDING: {InstanceStatus.CONNECTED, InstanceStatus.DISCONNECTED},
    InstanceStatus.CONNECTED: {InstanceStatus.DISCONNECTED},
    InstanceStatus.DISCONNECTED: {InstanceStatus.PENDING, InstanceStatus.CONNECTED},
}


def can_transition(current: InstanceStatus, target: InstanceStatus) -> bool:
    """Mesma situação é no-op; demais mudanças seguem a tabela de transições."""
    if current == target:
        return True
    return target in _TRANSITIONS[current]


def sources_for(target: InstanceStatus) -> list:
    """Estados a partir dos quais `target` pode ser alcançado (exceto ele mesmo)"""
    return [status for status in InstanceStatus if status != target and can_transition(status, target)]


class InstanceEntity(BaseModel):
    id: Optional[UUID] = Field(
        default=None,
        description="Identificador único da instância"
    )

    user_id: str = Field(
        ...,
        description="Dono da instância"
    )

    name: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Nome de exibição da instância"
    )

    phone_number: str = Field(
        ...,
        min_length=1,
        max_length=30,
        description="Número do WhatsApp vinculado"
    )

    status: InstanceStatus = Field(
        default=InstanceStatus.PENDING,
        description="Situação da conexão"
    )

    webhook_response: Optional[Any] = Field(
        default=None,
        description="Resposta bruta do webhook de criação (auditoria)"
    )

    qr_data: Optional[str] = Field(
        default=None,
        description="Último payload de QR recebido"
    )

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_connected(self) -> bool:
        return self.status == InstanceStatus.CONNECTED

    def to_webhook_payload(self) -> dict:
        """Bloco `instancia` enviado aos webhooks de automação"""
        return {
            "nombre_instancia": self.name,
            "numero_whatsapp": self.phone_number,
        }
