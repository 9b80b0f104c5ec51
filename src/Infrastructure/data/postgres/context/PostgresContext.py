"""
Gerenciamento de sessão de banco de dados PostgreSQL com pool de conexões.
Erros do psycopg2 são convertidos em exceções de domínio aqui, para que
nada acima da camada de repositório dependa do driver.
"""
from contextlib import contextmanager
from psycopg2 import pool, errors
from psycopg2.extras import RealDictCursor
import psycopg2
import threading
from src.config import settings
from src.Domain import StorageError


class PostgresContext:
    """
    Gerencia conexões com PostgreSQL usando pool de conexões.
    Usa ThreadedConnectionPool para reutilização de conexões.
    """

    # Pool de conexões compartilhado (Singleton)
    _connection_pool = None
    _pool_lock = threading.Lock()

    def __init__(self, dsn: str | None = None):
        self.dsn = dsn or settings.DATABASE_URL
        self._initialize_pool()

    def _initialize_pool(self):
        """Inicializa o pool de conexões se ainda não existir."""
        if PostgresContext._connection_pool is None:
            with PostgresContext._pool_lock:
                # Double-check locking pattern
                if PostgresContext._connection_pool is None:
                    if not self.dsn:
                        raise ValueError(
                            "Variável de ambiente 'DATABASE_URL' não encontrada. "
                            "Defina-a no arquivo .env ou como variável de ambiente."
                        )
                    try:
                        PostgresContext._connection_pool = pool.ThreadedConnectionPool(
                            minconn=settings.DB_POOL_MIN,
                            maxconn=settings.DB_POOL_MAX,
                            dsn=self.dsn
                        )
                    except psycopg2.Error as e:
                        raise StorageError(f"Erro ao criar pool de conexões: {e}") from e

    def connect(self, asdict: bool = True):
        '''Obtém uma conexão do pool'''
        if PostgresContext._connection_pool is None:
            self._initialize_pool()
        try:
            connection = PostgresContext._connection_pool.getconn()
        except pool.PoolError as e:
            raise StorageError(f"Erro ao obter conexão do pool: {e}") from e
        except psycopg2.Error as e:
            raise StorageError(f"Erro ao conectar ao banco de dados: {e}") from e

        cursor = connection.cursor(cursor_factory=RealDictCursor) if asdict else connection.cursor()
        return cursor, connection

    def disconnect(self, connection) -> None:
        """
        Retorna a conexão para o pool (não fecha, apenas retorna para reuso).
        """
        if connection is None or PostgresContext._connection_pool is None:
            return
        PostgresContext._connection_pool.putconn(connection, close=bool(connection.closed))

    @contextmanager
    def session(self, unique_error: type[StorageError] | None = None):
        """
        Cursor dentro de uma transação: commit ao final, rollback em erro.
        Violação de unicidade vira `unique_error` quando informado.
        """
        cursor, connection = self.connect()
        try:
            yield cursor
            connection.commit()
        except errors.UniqueViolation as e:
            connection.rollback()
            if unique_error is not None:
                raise unique_error(str(e)) from e
            raise StorageError(str(e)) from e
        except psycopg2.Error as e:
            if not connection.closed:
                connection.rollback()
            raise StorageError(str(e)) from e
        except Exception:
            if not connection.closed:
                connection.rollback()
            raise
        finally:
            cursor.close()
            self.disconnect(connection)

    @classmethod
    def close_all_connections(cls):
        """
        Fecha todas as conexões do pool.
        Útil para shutdown graceful da aplicação.
        """
        if cls._connection_pool:
            cls._connection_pool.closeall()
            cls._connection_pool = None
