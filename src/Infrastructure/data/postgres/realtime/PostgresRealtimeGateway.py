"""
Notificações de mudança via LISTEN/NOTIFY do PostgreSQL.

Uma única conexão dedicada (fora do pool, em autocommit) escuta o canal
configurado. A conexão é aberta na primeira assinatura e liberada quando
a última assinatura é removida.
"""
import asyncio
import json
import logging
from typing import Dict, List, Optional, Set

import psycopg2
import psycopg2.extensions

from src.config import settings
from src.Domain import (
    IRealtimeGateway,
    Subscription,
    ChangeNotificationEntity,
    StorageError
)
from src.Domain.interfaces.IRealtimeGateway import ChangeCallback

logger = logging.getLogger(__name__)


class PostgresRealtimeGateway(IRealtimeGateway):

    def __init__(self, dsn: Optional[str] = None, channel: Optional[str] = None):
        self.dsn = dsn or settings.DATABASE_URL
        self.channel = channel or settings.REALTIME_CHANNEL
        self._connection = None
        self._fd = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._subscriptions: List[Subscription] = []
        self._pending: Set[asyncio.Task] = set()
        self._lock = asyncio.Lock()

    async def subscribe(
        self,
        table: str,
        row_filter: Optional[Dict[str, str]],
        callback: ChangeCallback
    ) -> Subscription:
        async with self._lock:
            if self._connection is None:
                self._listen()
            subscription = Subscription(table, row_filter, callback)
            self._subscriptions.append(subscription)
            logger.info(f"[Realtime] ➕ Assinatura criada: {subscription}")
            return subscription

    async def unsubscribe(self, subscription: Subscription) -> None:
        async with self._lock:
            subscription.active = False
            if subscription in self._subscriptions:
                self._subscriptions.remove(subscription)
                logger.info(f"[Realtime] ➖ Assinatura removida: {subscription}")
            if not self._subscriptions:
                self._release()

    async def close(self) -> None:
        async with self._lock:
            for subscription in self._subscriptions:
                subscription.active = False
            self._subscriptions.clear()
            self._release()
        for task in list(self._pending):
            task.cancel()

    @property
    def subscription_count(self) -> int:
        return len(self._subscriptions)

    def _listen(self):
        try:
            connection = psycopg2.connect(self.dsn)
            connection.set_isolation_level(psycopg2.extensions.ISOLATION_LEVEL_AUTOCOMMIT)
            with connection.cursor() as cursor:
                cursor.execute(f'LISTEN "{self.channel}"')
        except psycopg2.Error as e:
            raise StorageError(f"Erro ao escutar canal '{self.channel}': {e}") from e

        self._connection = connection
        self._loop = asyncio.get_running_loop()
        self._fd = connection.fileno()
        self._loop.add_reader(self._fd, self._on_readable)
        logger.info(f"[Realtime] ✅ Escutando canal '{self.channel}'")

    def _release(self):
        if self._connection is None:
            return
        try:
            self._loop.remove_reader(self._fd)
            if not self._connection.closed:
                with self._connection.cursor() as cursor:
                    cursor.execute(f'UNLISTEN "{self.channel}"')
        except psycopg2.Error as e:
            logger.warning(f"[Realtime] ⚠️ Erro ao encerrar LISTEN: {e}")
        finally:
            self._connection.close()
            self._connection = None
            self._fd = None
            logger.info(f"[Realtime] 🔌 Canal '{self.channel}' liberado")

    def _on_readable(self):
        try:
            self._connection.poll()
        except psycopg2.Error as e:
            logger.error(f"[Realtime] ❌ Conexão de escuta falhou: {e}")
            self._reconnect()
            return

        while self._connection.notifies:
            notify = self._connection.notifies.pop(0)
            try:
                notification = ChangeNotificationEntity(**json.loads(notify.payload))
            except (ValueError, TypeError) as e:
                logger.warning(f"[Realtime] ⚠️ Payload de notificação ignorado: {e}")
                continue
            self.dispatch(notification)

    def _reconnect(self):
        self._release()
        if not self._subscriptions:
            return
        try:
            self._listen()
        except StorageError as e:
            # Assinaturas ficam sem notificações até a próxima assinatura nova
            logger.error(f"[Realtime] ❌ Não foi possível voltar a escutar: {e}")

    def dispatch(self, notification: ChangeNotificationEntity) -> None:
        """Agenda o callback de cada assinatura ativa que casa com a notificação"""
        for subscription in list(self._subscriptions):
            if not subscription.active:
                continue
            if not notification.matches(subscription.table, subscription.row_filter):
                continue
            task = asyncio.ensure_future(subscription.callback(notification))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)
