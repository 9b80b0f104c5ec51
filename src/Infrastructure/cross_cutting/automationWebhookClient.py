import logging
from typing import Optional

import httpx

from src.config import settings
from src.Domain import (
    IAutomationWebhookClient,
    UserContext,
    InstanceEntity,
    WebhookResponseEntity,
    WebhookTransportError
)

logger = logging.getLogger(__name__)


def build_instance_payload(user: UserContext, instance: InstanceEntity) -> dict:
    """Formato esperado pelos dois webhooks: {usuario:{...}, instancia:{...}}"""
    return {
        "usuario": user.to_webhook_payload(),
        "instancia": instance.to_webhook_payload(),
    }


class AutomationWebhookClient(IAutomationWebhookClient):
    """
    Cliente dos webhooks de automação que criam a instância e geram o QR.
    Erros de rede/timeout viram WebhookTransportError; respostas HTTP (mesmo não-2xx)
    são devolvidas para quem chamou interpretar.
    """

    def __init__(
        self,
        create_url: Optional[str] = None,
        qr_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.create_url = create_url if create_url is not None else settings.CREATE_INSTANCE_WEBHOOK_URL
        self.qr_url = qr_url if qr_url is not None else settings.QR_INSTANCE_WEBHOOK_URL
        self.timeout = timeout or settings.WEBHOOK_TIMEOUT_SECONDS
        self.transport = transport

        self.headers = {
            "Content-Type": "application/json",
        }
        if settings.AUTOMATION_API_KEY:
            self.headers["apikey"] = settings.AUTOMATION_API_KEY

    async def create_instance(self, user: UserContext, instance: InstanceEntity) -> WebhookResponseEntity:
        """
        Pede ao webhook a criação da instância.

        :param user: Usuário dono da instância
        :param instance: Instância ainda não persistida (nome e número)
        """
        return await self._post(self.create_url, build_instance_payload(user, instance))

    async def request_qr(self, user: UserContext, instance: InstanceEntity) -> WebhookResponseEntity:
        """Pede ao webhook o QR de pareamento da instância"""
        return await self._post(self.qr_url, build_instance_payload(user, instance))

    async def _post(self, url: str, payload: dict) -> WebhookResponseEntity:
        if not url:
            raise WebhookTransportError("URL do webhook não configurada")

        logger.info(f"[Webhook] 📤 POST {url} instancia={payload['instancia']['nombre_instancia']}")
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(
                    url,
                    headers=self.headers,
                    json=payload,
                )
        except httpx.TimeoutException as e:
            logger.warning(f"[Webhook] ⏱️ Timeout após {self.timeout}s em {url}")
            raise WebhookTransportError(f"Timeout ao chamar o webhook ({self.timeout}s)") from e
        except httpx.HTTPError as e:
            logger.warning(f"[Webhook] ⚠️ Falha de rede em {url}: {e}")
            raise WebhookTransportError(f"Falha de rede ao chamar o webhook: {e}") from e

        logger.info(f"[Webhook] 📥 {response.status_code} de {url}")
        return WebhookResponseEntity.from_text(response.status_code, response.text)
