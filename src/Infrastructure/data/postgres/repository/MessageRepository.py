# src/Infrastructure/data/postgres/repository/MessageRepository.py
import uuid
from datetime import datetime
from typing import List, Optional

from src.Domain import (
    IMessageRepository,
    MessageEntity,
    MessageDirection,
    DeliveryStatus,
    AttachmentEntity,
    MediaKind,
    DuplicateMessageError
)
from src.Infrastructure import PostgresContext

_COLUMNS = """
    id, seq, user_id, conversation_id, direction, content,
    attachment_url, attachment_kind, delivery_status, external_id, created_at
"""


def _to_entity(row) -> MessageEntity:
    attachment = None
    if row["attachment_url"]:
        attachment = AttachmentEntity(
            url=row["attachment_url"],
            kind=MediaKind(row["attachment_kind"]) if row["attachment_kind"] else None
        )
    return MessageEntity(
        id=row["id"],
        seq=row["seq"],
        user_id=row["user_id"],
        conversation_id=row["conversation_id"],
        direction=MessageDirection(row["direction"]),
        content=row["content"] or "",
        attachment=attachment,
        delivery_status=DeliveryStatus(row["delivery_status"]) if row["delivery_status"] else None,
        external_id=row["external_id"],
        created_at=row["created_at"]
    )


class MessageRepository(IMessageRepository):

    def __init__(self):
        self.db = PostgresContext()

    async def create(self, message: MessageEntity) -> MessageEntity:
        """Cria uma nova mensagem; created_at e seq são atribuídos pelo banco"""
        with self.db.session(unique_error=DuplicateMessageError) as cursor:
            cursor.execute(f"""
                INSERT INTO messages (
                    user_id,
                    conversation_id,
                    direction,
                    content,
                    attachment_url,
                    attachment_kind,
                    delivery_status,
                    external_id
                ) VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
                RETURNING {_COLUMNS}
            """, (
                message.user_id,
                str(message.conversation_id),
                message.direction.value,
                message.content or "",
                message.attachment.url if message.attachment else None,
                message.attachment.kind.value if message.attachment else None,
                message.delivery_status.value if message.delivery_status else None,
                message.external_id
            ))
            return _to_entity(cursor.fetchone())

    async def get_by_id(self, user_id: str, message_id: uuid.UUID) -> Optional[MessageEntity]:
        with self.db.session() as cursor:
            cursor.execute(f"""
                SELECT {_COLUMNS}
                FROM messages
                WHERE id = %s
                  AND user_id = %s
            """, (str(message_id), user_id))
            row = cursor.fetchone()
            return _to_entity(row) if row else None

    async def get_by_external_id(
        self,
        user_id: str,
        conversation_id: uuid.UUID,
        external_id: str
    ) -> Optional[MessageEntity]:
        with self.db.session() as cursor:
            cursor.execute(f"""
                SELECT {_COLUMNS}
                FROM messages
                WHERE user_id = %s
                  AND conversation_id = %s
                  AND external_id = %s
            """, (user_id, str(conversation_id), external_id))
            row = cursor.fetchone()
            return _to_entity(row) if row else None

    async def list_by_conversation(
        self,
        user_id: str,
        conversation_id: uuid.UUID
    ) -> List[MessageEntity]:
        """Lista mensagens de uma conversa em ordem total (created_at, seq)"""
        with self.db.session() as cursor:
            cursor.execute(f"""
                SELECT {_COLUMNS}
                FROM messages
                WHERE user_id = %s
                  AND conversation_id = %s
                ORDER BY created_at ASC, seq ASC
            """, (user_id, str(conversation_id)))
            return [_to_entity(row) for row in cursor.fetchall()]

    async def get_last(self, user_id: str, conversation_id: uuid.UUID) -> Optional[MessageEntity]:
        with self.db.session() as cursor:
            cursor.execute(f"""
                SELECT {_COLUMNS}
                FROM messages
                WHERE user_id = %s
                  AND conversation_id = %s
                ORDER BY created_at DESC, seq DESC
                LIMIT 1
            """, (user_id, str(conversation_id)))
            row = cursor.fetchone()
            return _to_entity(row) if row else None

    async def count_inbound_since(
        self,
        user_id: str,
        conversation_id: uuid.UUID,
        since: Optional[datetime]
    ) -> int:
        with self.db.session() as cursor:
            cursor.execute("""
                SELECT count(*) AS total
                FROM messages
                WHERE user_id = %s
                  AND conversation_id = %s
                  AND direction = 'inbound'
                  AND (%s::timestamptz IS NULL OR created_at > %s::timestamptz)
            """, (user_id, str(conversation_id), since, since))
            return int(cursor.fetchone()["total"])

    async def update_delivery_status(
        self,
        user_id: str,
        message_id: uuid.UUID,
        status: DeliveryStatus,
        allowed_from: List[DeliveryStatus]
    ) -> Optional[MessageEntity]:
        with self.db.session() as cursor:
            cursor.execute(f"""
                UPDATE messages
                SET delivery_status = %s
                WHERE id = %s
                  AND user_id = %s
                  AND direction = 'outbound'
                  AND delivery_status = ANY(%s)
                RETURNING {_COLUMNS}
            """, (
                status.value,
                str(message_id),
                user_id,
                [s.value for s in allowed_from]
            ))
            row = cursor.fetchone()
            return _to_entity(row) if row else None
