from typing import Optional

from src.Domain import IProfileRepository, ProfileEntity
from src.Infrastructure import PostgresContext


class ProfileRepository(IProfileRepository):
    """Leitura do perfil (nome, plano) usado no payload dos webhooks"""

    def __init__(self):
        self.db = PostgresContext()

    async def get_by_user_id(self, user_id: str) -> Optional[ProfileEntity]:
        with self.db.session() as cursor:
            cursor.execute("""
                SELECT user_id, nombre, plan
                FROM profiles
                WHERE user_id = %s
            """, (user_id,))
            row = cursor.fetchone()
            if not row:
                return None
            return ProfileEntity(user_id=row["user_id"], name=row["nombre"], plan=row["plan"])
