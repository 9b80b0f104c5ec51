import logging
from typing import Awaitable, Callable, Dict, List, Optional, Set
from uuid import UUID
from src.Domain import (
    IRealtimeSyncService,
    IRealtimeGateway,
    IInstanceRegistryService,
    IConversationService,
    ChangeNotificationEntity,
    Subscription,
    UserContext,
    OperationResult,
    FailureKind,
    StorageError
)
from src.Domain.interfaces.Service.IRealtimeSyncService import RefreshCallback

logger = logging.getLogger(__name__)

Fetch = Callable[[], Awaitable[OperationResult]]


class LiveView:
    """
    Snapshot de uma coleção mantido em dia por notificações do banco.

    A notificação só avisa que algo mudou: a coleção inteira é buscada de novo.
    Notificações que chegam durante uma busca viram exatamente mais uma busca.
    """

    def __init__(
        self,
        gateway: IRealtimeGateway,
        table: str,
        row_filter: Dict[str, str],
        fetch: Fetch,
        on_refresh: Optional[RefreshCallback] = None,
        on_close: Optional[Callable[["LiveView"], None]] = None
    ):
        self.gateway = gateway
        self.table = table
        self.row_filter = row_filter
        self.fetch = fetch
        self.on_refresh = on_refresh
        self.on_close = on_close

        self.items: List = []
        self.last_failure: Optional[OperationResult] = None
        self.refresh_count = 0

        self._subscription: Optional[Subscription] = None
        self._refreshing = False
        self._dirty = False
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def open(self) -> "LiveView":
        # Assina antes de buscar para não perder mudanças entre os dois passos
        self._subscription = await self.gateway.subscribe(self.table, self.row_filter, self._on_change)
        await self.refresh()
        return self

    async def refresh(self) -> None:
        if self._refreshing:
            self._dirty = True
            return

        self._refreshing = True
        try:
            while not self._closed:
                self._dirty = False
                result = await self.fetch()
                self.refresh_count += 1
                if self._closed:
                    return

                if result.ok:
                    self.items = result.value or []
                    self.last_failure = None
                    if self.on_refresh:
                        await self.on_refresh(self.items)
                else:
                    self.last_failure = result
                    logger.warning(
                        f"[Realtime] ⚠️ Falha ao atualizar {self.table} {self.row_filter}: "
                        f"{result.failure.value} - {result.message}"
                    )

                if not self._dirty:
                    break
        finally:
            self._refreshing = False

    async def _on_change(self, notification: ChangeNotificationEntity) -> None:
        if self._closed:
            return
        logger.debug(f"[Realtime] 🔔 {notification.event} em {notification.table}")
        try:
            await self.refresh()
        except Exception as e:
            logger.error(f"[Realtime] ❌ Erro ao propagar mudança de {self.table}: {e}")

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        subscription, self._subscription = self._subscription, None
        try:
            if subscription:
                await self.gateway.unsubscribe(subscription)
        finally:
            if self.on_close:
                self.on_close(self)

    async def __aenter__(self) -> "LiveView":
        if self._subscription is None and not self._closed:
            await self.open()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()


class RealtimeSyncService(IRealtimeSyncService):
    """Abre as views ao vivo da tela: instâncias, conversas e mensagens"""

    def __init__(
        self,
        gateway: IRealtimeGateway,
        instance_registry: IInstanceRegistryService,
        conversation_service: IConversationService
    ):
        self.gateway = gateway
        self.instance_registry = instance_registry
        self.conversation_service = conversation_service
        self._views: Set[LiveView] = set()

    @property
    def open_views(self) -> int:
        return len(self._views)

    async def _open(
        self,
        table: str,
        row_filter: Dict[str, str],
        fetch: Fetch,
        on_refresh: Optional[RefreshCallback]
    ) -> OperationResult:
        view = LiveView(
            self.gateway,
            table,
            row_filter,
            fetch,
            on_refresh=on_refresh,
            on_close=self._views.discard
        )
        self._views.add(view)
        try:
            await view.open()
        except StorageError as e:
            await view.close()
            logger.error(f"[Realtime] ❌ Não foi possível abrir a view de {table}: {e}")
            return OperationResult.fail(FailureKind.STORAGE, f"Notificações de {table} indisponíveis")
        except Exception:
            await view.close()
            raise
        logger.info(f"[Realtime] 👀 View aberta em {table} {row_filter}")
        return OperationResult.success(view)

    async def open_conversation_view(
        self,
        user: UserContext,
        conversation_id: UUID,
        on_refresh: Optional[RefreshCallback] = None
    ) -> OperationResult:
        """Mensagens da conversa; abrir a conversa zera as não lidas"""
        read = await self.conversation_service.mark_read(user, conversation_id)
        if not read.ok:
            return read

        return await self._open(
            "messages",
            {"conversation_id": str(conversation_id), "user_id": user.id},
            lambda: self.conversation_service.list_messages(user, conversation_id),
            on_refresh
        )

    async def open_conversation_list_view(
        self,
        user: UserContext,
        instance_id: Optional[UUID] = None,
        on_refresh: Optional[RefreshCallback] = None
    ) -> OperationResult:
        row_filter = {"user_id": user.id}
        if instance_id is not None:
            row_filter["instance_id"] = str(instance_id)

        return await self._open(
            "conversations",
            row_filter,
            lambda: self.conversation_service.list_conversations(user, instance_id),
            on_refresh
        )

    async def open_instance_list_view(
        self,
        user: UserContext,
        on_refresh: Optional[RefreshCallback] = None
    ) -> OperationResult:
        return await self._open(
            "instances",
            {"user_id": user.id},
            lambda: self.instance_registry.list_instances(user),
            on_refresh
        )

    async def close_all(self) -> None:
        for view in list(self._views):
            await view.close()
        logger.info("[Realtime] 🔒 Views fechadas")
