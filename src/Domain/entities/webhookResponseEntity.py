"""
Interpretação tolerante das respostas dos webhooks de automação.

Os webhooks são caixas-pretas: às vezes respondem um objeto, às vezes uma
lista com um objeto, às vezes texto puro, e a chave do status varia de
caixa. As regras abaixo aceitam apenas as formas documentadas; qualquer
outra coisa é tratada como resposta sem status/QR.

Precedência do status:
    1. lista -> primeiro elemento (apenas um nível; lista vazia = sem status)
    2. o elemento precisa ser um objeto
    3. chaves comparadas sem caixa: `status` antes de `state`
    4. o valor precisa ser string; volta aparado e em minúsculas

Precedência do QR:
    1. corpo texto não-vazio é o próprio payload
    2. lista -> primeiro elemento (apenas um nível)
    3. chaves sem caixa: base64, qrcode, qr, code, qr_code
    4. se `qrcode` for objeto, procura base64 e depois code dentro dele
"""
import json
from pydantic import BaseModel
from typing import Any, Optional

ACCEPTED_CREATION_STATUSES = ("starting", "ok")

_STATUS_KEYS = ("status", "state")
_QR_KEYS = ("base64", "qrcode", "qr", "code", "qr_code")
_NESTED_QR_KEYS = ("base64", "code")


def parse_body(raw_text: str) -> Any:
    """JSON quando possível; senão o texto bruto"""
    if raw_text is None:
        return None
    try:
        return json.loads(raw_text)
    except (ValueError, TypeError):
        return raw_text


def _unwrap(body: Any) -> Any:
    if isinstance(body, list):
        return body[0] if body else None
    return body


def _lookup(obj: dict, key: str) -> Any:
    for candidate, value in obj.items():
        if isinstance(candidate, str) and candidate.lower() == key:
            return value
    return None


def normalize_status(body: Any) -> Optional[str]:
    element = _unwrap(body)
    if not isinstance(element, dict):
        return None

    for key in _STATUS_KEYS:
        value = _lookup(element, key)
        if value is None:
            continue
        if isinstance(value, str) and value.strip():
            return value.strip().lower()
        return None
    return None


def _as_payload(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def extract_qr_payload(body: Any) -> Optional[str]:
    if isinstance(body, str):
        return _as_payload(body)

    element = _unwrap(body)
    if isinstance(element, str):
        return _as_payload(element)
    if not isinstance(element, dict):
        return None

    for key in _QR_KEYS:
        value = _lookup(element, key)
        if isinstance(value, dict) and key == "qrcode":
            for nested in _NESTED_QR_KEYS:
                payload = _as_payload(_lookup(value, nested))
                if payload:
                    return payload
            continue
        payload = _as_payload(value)
        if payload:
            return payload
    return None


class WebhookResponseEntity(BaseModel):
    """Resposta de um webhook já lida: código HTTP, corpo interpretado e texto bruto"""
    status_code: int
    body: Any = None
    raw_text: str = ""

    @property
    def is_success(self) -> bool:
        return 200 <= self.status_code < 300

    def normalized_status(self) -> Optional[str]:
        return normalize_status(self.body)

    def is_creation_accepted(self) -> bool:
        return self.is_success and self.normalized_status() in ACCEPTED_CREATION_STATUSES

    def qr_payload(self) -> Optional[str]:
        if isinstance(self.body, str):
            return _as_payload(self.body)
        # texto que por acaso é JSON escalar (ex.: só dígitos) continua sendo texto
        if not isinstance(self.body, (dict, list)):
            return _as_payload(self.raw_text)
        return extract_qr_payload(self.body)

    @classmethod
    def from_text(cls, status_code: int, raw_text: str) -> "WebhookResponseEntity":
        return cls(status_code=status_code, body=parse_body(raw_text), raw_text=raw_text or "")
