import asyncio

import httpx
import pytest

from src.Domain import ProfileEntity, IdentityError
from src.Infrastructure import HttpIdentityProvider
from tests.fakes import FakeProfileRepository


def _provider(handler, profiles=None):
    return HttpIdentityProvider(
        profile_repo=FakeProfileRepository(profiles),
        base_url="http://identity.test/",
        transport=httpx.MockTransport(handler)
    )


def test_resolves_user_and_merges_profile():
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["authorization"]
        return httpx.Response(200, json={"id": "user-1", "email": "ana@example.com"})

    provider = _provider(handler, {"user-1": ProfileEntity(user_id="user-1", name="Ana", plan="pro")})
    user = asyncio.run(provider.get_current_user("abc"))

    assert seen == {"url": "http://identity.test/auth/v1/user", "auth": "Bearer abc"}
    assert (user.id, user.name, user.plan) == ("user-1", "Ana", "pro")


def test_without_profile_uses_defaults():
    provider = _provider(lambda request: httpx.Response(200, json={"id": "u9", "email": "joao@example.com"}))

    user = asyncio.run(provider.get_current_user("abc"))

    assert user.plan == "freemium"
    assert user.to_webhook_payload()["nombre"] == "joao"


@pytest.mark.parametrize("token, response", [
    ("", httpx.Response(200, json={"id": "u1"})),
    ("abc", httpx.Response(401, json={"msg": "expired"})),
    ("abc", httpx.Response(200, json={"email": "sem-id@example.com"})),
])
def test_invalid_sessions_raise_identity_error(token, response):
    provider = _provider(lambda request: response)

    with pytest.raises(IdentityError):
        asyncio.run(provider.get_current_user(token))
