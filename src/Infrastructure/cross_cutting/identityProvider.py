import logging
from typing import Optional

import httpx

from src.config import settings
from src.Domain import (
    IIdentityProvider,
    IProfileRepository,
    UserContext,
    IdentityError,
    StorageError
)

logger = logging.getLogger(__name__)


class HttpIdentityProvider(IIdentityProvider):
    """
    Resolve o usuário da sessão no provedor de identidade externo
    (GET {IDENTITY_BASE_URL}/auth/v1/user com o token do usuário)
    e completa nome/plano com a tabela de perfis.
    """

    def __init__(
        self,
        profile_repo: IProfileRepository,
        base_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.profile_repo = profile_repo
        self.base_url = (base_url if base_url is not None else settings.IDENTITY_BASE_URL).rstrip("/")
        self.transport = transport

    async def get_current_user(self, access_token: str) -> UserContext:
        if not access_token:
            raise IdentityError("Token de acesso ausente")
        if not self.base_url:
            raise IdentityError("Provedor de identidade não configurado")

        headers = {"Authorization": f"Bearer {access_token}"}
        if settings.IDENTITY_API_KEY:
            headers["apikey"] = settings.IDENTITY_API_KEY

        try:
            async with httpx.AsyncClient(timeout=settings.WEBHOOK_TIMEOUT_SECONDS, transport=self.transport) as client:
                response = await client.get(f"{self.base_url}/auth/v1/user", headers=headers)
        except httpx.HTTPError as e:
            raise IdentityError(f"Provedor de identidade indisponível: {e}") from e

        if response.status_code != 200:
            raise IdentityError("Sessão inválida ou expirada")

        try:
            data = response.json()
        except ValueError as e:
            raise IdentityError("Resposta do provedor de identidade ilegível") from e
        user_id = data.get("id") if isinstance(data, dict) else None
        if not user_id:
            raise IdentityError("Resposta do provedor sem id de usuário")

        user = UserContext(id=str(user_id), email=data.get("email"))

        # Perfil é complementar: sem ele usamos os valores padrão
        try:
            profile = await self.profile_repo.get_by_user_id(user.id)
        except StorageError as e:
            logger.warning(f"[Identity] ⚠️ Não foi possível obter o perfil de {user.id}: {e}")
            profile = None

        if profile:
            user.name = profile.name
            user.plan = profile.plan or "freemium"
        return user
