from typing import List, Optional
from uuid import UUID

from psycopg2.extras import Json

from src.Domain import (
    IInstanceRepository,
    InstanceEntity,
    InstanceStatus
)
from src.Infrastructure import PostgresContext

_COLUMNS = """
    id, user_id, name, phone_number, status,
    webhook_response, qr_data, created_at, updated_at
"""


def _to_entity(row) -> InstanceEntity:
    return InstanceEntity(
        id=row["id"],
        user_id=row["user_id"],
        name=row["name"],
        phone_number=row["phone_number"],
        status=InstanceStatus(row["status"]),
        webhook_response=row["webhook_response"],
        qr_data=row["qr_data"],
        created_at=row["created_at"],
        updated_at=row["updated_at"]
    )


class InstanceRepository(IInstanceRepository):
    """Repositório PostgreSQL das instâncias de WhatsApp"""

    def __init__(self):
        self.db = PostgresContext()

    async def create(self, instance: InstanceEntity) -> InstanceEntity:
        with self.db.session() as cursor:
            cursor.execute(f"""
                INSERT INTO instances (
                    user_id,
                    name,
                    phone_number,
                    status,
                    webhook_response
                ) VALUES (%s, %s, %s, %s, %s)
                RETURNING {_COLUMNS}
            """, (
                instance.user_id,
                instance.name,
                instance.phone_number,
                instance.status.value,
                Json(instance.webhook_response)
            ))
            return _to_entity(cursor.fetchone())

    async def list_by_user(self, user_id: str) -> List[InstanceEntity]:
        with self.db.session() as cursor:
            cursor.execute(f"""
                SELECT {_COLUMNS}
                FROM instances
                WHERE user_id = %s
                ORDER BY created_at DESC, id DESC
            """, (user_id,))
            return [_to_entity(row) for row in cursor.fetchall()]

    async def get_by_id(self, user_id: str, instance_id: UUID) -> Optional[InstanceEntity]:
        with self.db.session() as cursor:
            cursor.execute(f"""
                SELECT {_COLUMNS}
                FROM instances
                WHERE id = %s
                  AND user_id = %s
            """, (str(instance_id), user_id))
            row = cursor.fetchone()
            return _to_entity(row) if row else None

    async def update_status(
        self,
        user_id: str,
        instance_id: UUID,
        status: InstanceStatus,
        allowed_from: List[InstanceStatus]
    ) -> Optional[InstanceEntity]:
        with self.db.session() as cursor:
            cursor.execute(f"""
                UPDATE instances
                SET status = %s,
                    updated_at = now()
                WHERE id = %s
                  AND user_id = %s
                  AND status = ANY(%s)
                RETURNING {_COLUMNS}
            """, (
                status.value,
                str(instance_id),
                user_id,
                [s.value for s in allowed_from]
            ))
            row = cursor.fetchone()
            return _to_entity(row) if row else None

    async def update_qr_data(self, user_id: str, instance_id: UUID, qr_data: str) -> None:
        with self.db.session() as cursor:
            cursor.execute("""
                UPDATE instances
                SET qr_data = %s,
                    updated_at = now()
                WHERE id = %s
                  AND user_id = %s
            """, (qr_data, str(instance_id), user_id))

    async def rename(self, user_id: str, instance_id: UUID, name: str) -> Optional[InstanceEntity]:
        with self.db.session() as cursor:
            cursor.execute(f"""
                UPDATE instances
                SET name = %s,
                    updated_at = now()
                WHERE id = %s
                  AND user_id = %s
                RETURNING {_COLUMNS}
            """, (name, str(instance_id), user_id))
            row = cursor.fetchone()
            return _to_entity(row) if row else None
