# src/Infrastructure/data/postgres/repository/ConversationRepository.py
from datetime import datetime
from typing import Optional, List
from uuid import UUID

from src.Domain import (
    IConversationRepository,
    ConversationEntity,
    ConversationStatus,
    DuplicateConversationError
)
from src.Infrastructure import PostgresContext

_COLUMNS = """
    id, user_id, instance_id, contact_id, contact_name,
    last_message_preview, last_message_at, last_message_direction,
    unread_count, status, last_read_at, created_at, updated_at
"""


def _to_entity(row) -> ConversationEntity:
    return ConversationEntity(
        id=row["id"],
        user_id=row["user_id"],
        instance_id=row["instance_id"],
        contact_id=row["contact_id"],
        contact_name=row["contact_name"],
        last_message_preview=row["last_message_preview"],
        last_message_at=row["last_message_at"],
        last_message_direction=row["last_message_direction"],
        unread_count=row["unread_count"],
        status=ConversationStatus(row["status"]),
        last_read_at=row["last_read_at"],
        created_at=row["created_at"],
        updated_at=row["updated_at"]
    )


class ConversationRepository(IConversationRepository):

    def __init__(self):
        self.db = PostgresContext()

    async def list_active(self, user_id: str, instance_id: Optional[UUID] = None) -> List[ConversationEntity]:
        query = f"""
            SELECT {_COLUMNS}
            FROM conversations
            WHERE user_id = %s
              AND status = 'active'
        """
        params: list = [user_id]
        if instance_id is not None:
            query += " AND instance_id = %s"
            params.append(str(instance_id))
        query += " ORDER BY last_message_at DESC NULLS LAST, created_at DESC"

        with self.db.session() as cursor:
            cursor.execute(query, tuple(params))
            return [_to_entity(row) for row in cursor.fetchall()]

    async def get_by_id(self, user_id: str, conversation_id: UUID) -> Optional[ConversationEntity]:
        with self.db.session() as cursor:
            cursor.execute(f"""
                SELECT {_COLUMNS}
                FROM conversations
                WHERE id = %s
                  AND user_id = %s
            """, (str(conversation_id), user_id))
            row = cursor.fetchone()
            return _to_entity(row) if row else None

    async def get_active_conversation(
        self,
        user_id: str,
        instance_id: UUID,
        contact_id: str
    ) -> Optional[ConversationEntity]:
        with self.db.session() as cursor:
            cursor.execute(f"""
                SELECT {_COLUMNS}
                FROM conversations
                WHERE user_id = %s
                  AND instance_id = %s
                  AND contact_id = %s
                  AND status = 'active'
                LIMIT 1
            """, (user_id, str(instance_id), contact_id))
            row = cursor.fetchone()
            return _to_entity(row) if row else None

    async def create(self, conversation: ConversationEntity) -> ConversationEntity:
        with self.db.session(unique_error=DuplicateConversationError) as cursor:
            cursor.execute(f"""
                INSERT INTO conversations (
                    user_id,
                    instance_id,
                    contact_id,
                    contact_name,
                    status
                ) VALUES (%s, %s, %s, %s, 'active')
                RETURNING {_COLUMNS}
            """, (
                conversation.user_id,
                str(conversation.instance_id),
                conversation.contact_id,
                conversation.contact_name
            ))
            return _to_entity(cursor.fetchone())

    async def apply_message(
        self,
        user_id: str,
        conversation_id: UUID,
        preview: str,
        message_at: datetime,
        direction: str,
        unread_increment: int
    ) -> None:
        # O resumo só avança no tempo; o contador é incrementado no banco
        with self.db.session() as cursor:
            cursor.execute("""
                UPDATE conversations
                SET unread_count = unread_count + %s,
                    last_message_preview = CASE
                        WHEN last_message_at IS NULL OR last_message_at <= %s THEN %s
                        ELSE last_message_preview END,
                    last_message_direction = CASE
                        WHEN last_message_at IS NULL OR last_message_at <= %s THEN %s
                        ELSE last_message_direction END,
                    last_message_at = GREATEST(COALESCE(last_message_at, %s), %s),
                    updated_at = now()
                WHERE id = %s
                  AND user_id = %s
            """, (
                unread_increment,
                message_at, preview,
                message_at, direction,
                message_at, message_at,
                str(conversation_id),
                user_id
            ))

    async def set_summary(
        self,
        user_id: str,
        conversation_id: UUID,
        preview: Optional[str],
        message_at: Optional[datetime],
        direction: Optional[str],
        unread_count: int
    ) -> Optional[ConversationEntity]:
        with self.db.session() as cursor:
            cursor.execute(f"""
                UPDATE conversations
                SET last_message_preview = %s,
                    last_message_at = %s,
                    last_message_direction = %s,
                    unread_count = %s,
                    updated_at = now()
                WHERE id = %s
                  AND user_id = %s
                RETURNING {_COLUMNS}
            """, (preview, message_at, direction, unread_count, str(conversation_id), user_id))
            row = cursor.fetchone()
            return _to_entity(row) if row else None

    async def mark_read(self, user_id: str, conversation_id: UUID) -> Optional[ConversationEntity]:
        with self.db.session() as cursor:
            cursor.execute(f"""
                UPDATE conversations
                SET unread_count = 0,
                    last_read_at = clock_timestamp(),
                    updated_at = now()
                WHERE id = %s
                  AND user_id = %s
                RETURNING {_COLUMNS}
            """, (str(conversation_id), user_id))
            row = cursor.fetchone()
            return _to_entity(row) if row else None

    async def set_status(
        self,
        user_id: str,
        conversation_id: UUID,
        status: ConversationStatus
    ) -> Optional[ConversationEntity]:
        with self.db.session(unique_error=DuplicateConversationError) as cursor:
            cursor.execute(f"""
                UPDATE conversations
                SET status = %s,
                    updated_at = now()
                WHERE id = %s
                  AND user_id = %s
                RETURNING {_COLUMNS}
            """, (status.value, str(conversation_id), user_id))
            row = cursor.fetchone()
            return _to_entity(row) if row else None
