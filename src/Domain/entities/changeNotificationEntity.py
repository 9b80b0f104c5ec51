from pydantic import BaseModel, Field
from typing import Any, Dict, Optional


class ChangeNotificationEntity(BaseModel):
    """
    Aviso de mudança vindo do banco (INSERT/UPDATE/DELETE).
    Serve só como gatilho de recarga; o registro é parcial e não é confiável.
    """
    table: str
    event: str = Field(..., description="INSERT | UPDATE | DELETE")
    record: Dict[str, Any] = Field(default_factory=dict)

    def matches(self, table: str, row_filter: Optional[Dict[str, str]]) -> bool:
        if self.table != table:
            return False
        for column, expected in (row_filter or {}).items():
            if str(self.record.get(column)) != str(expected):
                return False
        return True
