from pydantic import BaseModel, Field
from typing import Optional


class UserContext(BaseModel):
    """
    Usuário autenticado da requisição.
    É passado explicitamente para todas as operações do core,
    nunca lido de um estado global.
    """
    id: str = Field(..., min_length=1, description="ID do usuário no provedor de identidade")
    email: Optional[str] = None
    name: Optional[str] = None
    plan: str = "freemium"

    @property
    def display_name(self) -> str:
        if self.name:
            return self.name
        if self.email:
            return self.email.split("@")[0]
        return "Usuario"

    def to_webhook_payload(self) -> dict:
        """Bloco `usuario` enviado aos webhooks de automação"""
        return {
            "id": self.id,
            "email": self.email,
            "nombre": self.display_name,
            "plan": self.plan or "freemium",
        }
