import logging
from typing import Dict, Tuple
from uuid import UUID
from src.Domain import (
    IPairingCoordinatorService,
    IInstanceRepository,
    IAutomationWebhookClient,
    IQrRenderer,
    InstanceEntity,
    InstanceStatus,
    sources_for,
    PairingSession,
    PairingState,
    UserContext,
    OperationResult,
    FailureKind,
    WebhookTransportError,
    QrRenderError,
    StorageError
)

logger = logging.getLogger(__name__)

_STATE_FROM_STATUS = {
    InstanceStatus.PENDING: PairingState.PENDING,
    InstanceStatus.DISCONNECTED: PairingState.PENDING,
    InstanceStatus.CONNECTED: PairingState.CONNECTED,
}


class PairingCoordinatorService(IPairingCoordinatorService):
    """
    Conduz o pareamento por QR de uma instância.

    O estado de cada pareamento fica apenas em memória (pending -> qr_requested
    -> awaiting_scan -> connected, ou failed). A confirmação vem sempre do
    usuário ("já escaneei"): não existe canal para observar o WhatsApp
    concluindo o vínculo.
    """

    def __init__(
        self,
        instance_repo: IInstanceRepository,
        webhook_client: IAutomationWebhookClient,
        qr_renderer: IQrRenderer
    ):
        self.instance_repo = instance_repo
        self.webhook_client = webhook_client
        self.qr_renderer = qr_renderer
        self._sessions: Dict[Tuple[str, UUID], PairingSession] = {}

    @property
    def active_sessions(self) -> int:
        return len(self._sessions)

    def _new_session(self, user: UserContext, instance: InstanceEntity) -> PairingSession:
        return PairingSession(
            instance_id=instance.id,
            user_id=user.id,
            state=_STATE_FROM_STATUS[instance.status]
        )

    def _session_for(self, user: UserContext, instance: InstanceEntity) -> PairingSession:
        key = (user.id, instance.id)
        session = self._sessions.get(key)
        if session is None:
            session = self._new_session(user, instance)
            self._sessions[key] = session
        return session

    async def _load_instance(self, user: UserContext, instance_id: UUID):
        try:
            instance = await self.instance_repo.get_by_id(user.id, instance_id)
        except StorageError as e:
            logger.error(f"[Pairing] ❌ Erro ao carregar instância {instance_id}: {e}")
            return None, OperationResult.fail(FailureKind.STORAGE, "Erro ao carregar a instância")
        if not instance:
            return None, OperationResult.fail(FailureKind.NOT_FOUND, f"Instância {instance_id} não encontrada")
        return instance, None

    async def request_pairing(self, user: UserContext, instance_id: UUID) -> OperationResult:
        instance, failure = await self._load_instance(user, instance_id)
        if failure:
            return failure

        if instance.is_connected:
            self._sessions.pop((user.id, instance.id), None)
            session = self._new_session(user, instance)
            logger.info(f"[Pairing] ⛔ Instância {instance_id} já conectada, QR não solicitado")
            return OperationResult.fail(
                FailureKind.BLOCKED,
                "Instância já conectada",
                value=session
            )

        session = self._session_for(user, instance)
        if session.state == PairingState.QR_REQUESTED:
            return OperationResult.fail(
                FailureKind.BLOCKED,
                "Já existe uma solicitação de QR em andamento",
                value=session
            )

        session.update(state=PairingState.QR_REQUESTED, error=None, raw_response=None)
        try:
            return await self._fetch_qr(user, instance, session)
        finally:
            # Qualquer saída sem estado final (inclusive cancelamento) libera nova tentativa
            if session.state == PairingState.QR_REQUESTED:
                session.update(state=PairingState.FAILED, error="Solicitação de QR interrompida")
                logger.warning(f"[Pairing] ⚠️ Solicitação de QR da instância {instance_id} interrompida")

    async def _fetch_qr(self, user: UserContext, instance: InstanceEntity, session: PairingSession) -> OperationResult:
        instance_id = instance.id

        # ========== 1. WEBHOOK DE QR ==========
        try:
            response = await self.webhook_client.request_qr(user, instance)
        except WebhookTransportError as e:
            session.update(state=PairingState.FAILED, error=str(e))
            logger.warning(f"[Pairing] ⚠️ Falha ao pedir QR da instância {instance_id}: {e}")
            return OperationResult.fail(FailureKind.TRANSPORT, str(e), value=session)

        payload = response.qr_payload() if response.is_success else None
        if not payload:
            message = f"Webhook não devolveu um QR utilizável (HTTP {response.status_code})"
            session.update(state=PairingState.FAILED, error=message, raw_response=response.raw_text)
            logger.warning(f"[Pairing] ❌ {message} para a instância {instance_id}")
            return OperationResult.fail(
                FailureKind.CONTRACT,
                message,
                raw_response=response.raw_text,
                value=session
            )

        # ========== 2. RENDERIZAÇÃO ==========
        # Sem imagem o payload bruto ainda é devolvido para exibição
        try:
            qr_image = self.qr_renderer.render(payload)
        except QrRenderError as e:
            qr_image = None
            logger.warning(f"[Pairing] ⚠️ QR da instância {instance_id} não pôde ser desenhado: {e}")

        # ========== 3. GUARDA O PAYLOAD (melhor esforço) ==========
        try:
            await self.instance_repo.update_qr_data(user.id, instance_id, payload)
        except StorageError as e:
            logger.warning(f"[Pairing] ⚠️ Não foi possível salvar o QR da instância {instance_id}: {e}")

        session.update(
            state=PairingState.AWAITING_SCAN,
            qr_payload=payload,
            qr_image=qr_image,
            error=None
        )
        logger.info(f"[Pairing] 📷 QR pronto para a instância {instance_id}")
        return OperationResult.success(session)

    async def confirm_pairing(self, user: UserContext, instance_id: UUID) -> OperationResult:
        """
        Marca a instância como conectada.
        Idempotente: confirmar uma instância já conectada é no-op.
        """
        try:
            updated = await self.instance_repo.update_status(
                user.id,
                instance_id,
                InstanceStatus.CONNECTED,
                allowed_from=sources_for(InstanceStatus.CONNECTED)
            )
            current = updated or await self.instance_repo.get_by_id(user.id, instance_id)
        except StorageError as e:
            # Não marcamos a sessão como conectada: o banco não confirmou
            logger.error(f"[Pairing] ❌ Erro ao confirmar conexão da instância {instance_id}: {e}")
            return OperationResult.fail(FailureKind.STORAGE, "Erro ao confirmar a conexão, tente novamente")

        if not current:
            return OperationResult.fail(FailureKind.NOT_FOUND, f"Instância {instance_id} não encontrada")
        if not current.is_connected:
            return OperationResult.fail(
                FailureKind.BLOCKED,
                f"Instância em '{current.status.value}' não pode ser conectada"
            )

        # Conectada não precisa mais de sessão: o status persistido basta
        self._sessions.pop((user.id, instance_id), None)

        if updated:
            logger.info(f"[Pairing] ✅ Instância {instance_id} conectada")
        else:
            logger.info(f"[Pairing] ✅ Instância {instance_id} já estava conectada (no-op)")
        return OperationResult.success(current)

    async def get_pairing_session(self, user: UserContext, instance_id: UUID) -> OperationResult:
        instance, failure = await self._load_instance(user, instance_id)
        if failure:
            return failure

        key = (user.id, instance.id)
        # O status persistido manda: outro ator pode ter conectado ou desconectado
        if instance.is_connected:
            self._sessions.pop(key, None)
            return OperationResult.success(self._new_session(user, instance))

        session = self._sessions.get(key)
        if session is None:
            # Consulta não cria sessão: só pedir QR a mantém em memória
            session = self._new_session(user, instance)
        return OperationResult.success(session)

    async def cancel_pairing(self, user: UserContext, instance_id: UUID) -> OperationResult:
        """Descarta a sessão em memória (ex.: o usuário fechou o QR)"""
        session = self._sessions.pop((user.id, instance_id), None)
        if session:
            logger.info(f"[Pairing] 🗑️ Sessão de pareamento da instância {instance_id} descartada")
        return OperationResult.success(session)
