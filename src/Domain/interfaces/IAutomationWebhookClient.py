from abc import ABC, abstractmethod
from src.Domain import UserContext, InstanceEntity, WebhookResponseEntity


class IAutomationWebhookClient(ABC):
    """Levanta WebhookTransportError em falha de rede/timeout; códigos HTTP não levantam"""

    @abstractmethod
    async def create_instance(self, user: UserContext, instance: InstanceEntity) -> WebhookResponseEntity:...
    @abstractmethod
    async def request_qr(self, user: UserContext, instance: InstanceEntity) -> WebhookResponseEntity:...
