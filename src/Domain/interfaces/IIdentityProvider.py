from abc import ABC, abstractmethod
from src.Domain import UserContext


class IIdentityProvider(ABC):

    @abstractmethod
    async def get_current_user(self, access_token: str) -> UserContext:
        """Levanta IdentityError se o token não identificar um usuário"""
        ...
