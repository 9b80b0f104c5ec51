from fastapi import HTTPException, status
from src.Domain import OperationResult, FailureKind

FAILURE_STATUS = {
    FailureKind.VALIDATION: status.HTTP_422_UNPROCESSABLE_ENTITY,
    FailureKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    FailureKind.BLOCKED: status.HTTP_409_CONFLICT,
    FailureKind.TRANSPORT: status.HTTP_504_GATEWAY_TIMEOUT,
    FailureKind.CONTRACT: status.HTTP_502_BAD_GATEWAY,
    FailureKind.STORAGE: status.HTTP_503_SERVICE_UNAVAILABLE,
    FailureKind.CONSISTENCY: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def raise_for_failure(result: OperationResult) -> OperationResult:
    """Converte uma falha do core em HTTPException; sucesso passa direto"""
    if result.ok:
        return result

    raw = result.raw_response
    raise HTTPException(
        status_code=FAILURE_STATUS[result.failure],
        detail={
            "failure": result.failure.value,
            "message": result.message,
            "raw_response": raw if isinstance(raw, (str, dict, list)) or raw is None else str(raw),
            "side_effect_committed": result.side_effect_committed,
        }
    )
