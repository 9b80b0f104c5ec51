from enum import Enum
from pydantic import BaseModel, ConfigDict
from typing import Any, Generic, Optional, TypeVar

T = TypeVar("T")


class FailureKind(str, Enum):
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    BLOCKED = "blocked"
    TRANSPORT = "transport"      # rede/timeout: o usuário pode tentar de novo
    CONTRACT = "contract"        # webhook respondeu algo inesperado
    STORAGE = "storage"          # falha de leitura/escrita no banco
    CONSISTENCY = "consistency"  # inconsistência que o reparo não resolveu


class OperationResult(BaseModel, Generic[T]):
    """
    Resultado discriminado devolvido por todas as operações do core.
    A camada de apresentação só exibe o tipo de falha e permite repetir.
    """
    model_config = ConfigDict(arbitrary_types_allowed=True)

    ok: bool
    value: Optional[T] = None
    failure: Optional[FailureKind] = None
    message: Optional[str] = None
    raw_response: Optional[Any] = None
    # True quando o webhook já agiu mesmo que a escrita local tenha falhado
    side_effect_committed: bool = False

    @classmethod
    def success(cls, value: Any = None, message: Optional[str] = None) -> "OperationResult":
        return cls(ok=True, value=value, message=message)

    @classmethod
    def fail(
        cls,
        failure: FailureKind,
        message: str,
        raw_response: Any = None,
        side_effect_committed: bool = False,
        value: Any = None,
    ) -> "OperationResult":
        return cls(
            ok=False,
            failure=failure,
            message=message,
            raw_response=raw_response,
            side_effect_committed=side_effect_committed,
            value=value,
        )
