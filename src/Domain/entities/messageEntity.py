from enum import Enum
from pydantic import BaseModel, Field, model_validator
from typing import Optional
from datetime import datetime
from urllib.parse import urlparse
import mimetypes
import uuid


class MessageDirection(str, Enum):
    INBOUND = "inbound"
    OUTBOUND = "outbound"


class DeliveryStatus(str, Enum):
    SENT = "sent"
    DELIVERED = "delivered"
    READ = "read"

    @property
    def rank(self) -> int:
        return _DELIVERY_RANK[self]


_DELIVERY_RANK = {
    DeliveryStatus.SENT: 0,
    DeliveryStatus.DELIVERED: 1,
    DeliveryStatus.READ: 2,
}


class MediaKind(str, Enum):
    IMAGE = "image"
    AUDIO = "audio"
    VIDEO = "video"
    DOCUMENT = "document"


def infer_media_kind(url: str) -> MediaKind:
    """Infere o tipo de mídia pela extensão da URL; sem pista vira documento"""
    path = urlparse(url).path
    mimetype, _ = mimetypes.guess_type(path)
    if mimetype:
        major = mimetype.split("/")[0]
        if major in ("image", "audio", "video"):
            return MediaKind(major)
    # WhatsApp grava notas de voz como .opus/.oga
    if path.lower().endswith((".opus", ".oga")):
        return MediaKind.AUDIO
    return MediaKind.DOCUMENT


class AttachmentEntity(BaseModel):
    url: str = Field(..., min_length=1)
    kind: Optional[MediaKind] = None

    @model_validator(mode="after")
    def _infer_kind(self):
        if self.kind is None:
            self.kind = infer_media_kind(self.url)
        return self


class MessageEntity(BaseModel):
    id: Optional[uuid.UUID] = None
    seq: Optional[int] = Field(
        default=None,
        description="Ordem de inserção atribuída pelo banco (desempate)"
    )
    user_id: str
    conversation_id: uuid.UUID

    direction: MessageDirection
    content: str = ""
    attachment: Optional[AttachmentEntity] = None

    delivery_status: Optional[DeliveryStatus] = Field(
        default=None,
        description="sent | delivered | read (apenas mensagens enviadas)"
    )
    external_id: Optional[str] = Field(
        default=None,
        description="ID da mensagem no upstream, quando existir (deduplicação)"
    )

    created_at: Optional[datetime] = None

    @model_validator(mode="after")
    def _check_body(self):
        if not self.content and self.attachment is None:
            raise ValueError("mensagem precisa de conteúdo ou anexo")
        if self.direction == MessageDirection.INBOUND:
            self.delivery_status = None
        elif self.delivery_status is None:
            self.delivery_status = DeliveryStatus.SENT
        return self

    def sort_key(self) -> tuple:
        return (self.created_at or datetime.min, self.seq or 0)

    def preview(self, length: int = 100) -> str:
        """Resumo usado no campo desnormalizado da conversa"""
        text = (self.content or "").strip()
        if text:
            return text if len(text) <= length else text[: length - 1] + "…"
        if self.attachment:
            return f"[{self.attachment.kind.value}]"
        return ""
