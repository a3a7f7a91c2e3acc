"""Identity provider HTTP client for resolving access tokens to users"""

import httpx
from deckvault.domain.models import CurrentUser
from deckvault.domain.exceptions import IdentityProviderError, UnauthenticatedError
from deckvault.config import settings


class IdentityClient:
    """Client for the GoTrue-compatible auth API that issues member sessions"""

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url or settings.auth_api_base
        self.api_key = api_key if api_key is not None else settings.auth_api_key
        self.timeout = timeout or settings.http_timeout_seconds
        self.transport = transport

    async def get_current_user(self, access_token: str) -> CurrentUser:
        """
        Resolve a bearer token to the authenticated user.

        Raises:
            UnauthenticatedError: Token missing, expired, or rejected
            IdentityProviderError: On timeout, 5xx, or invalid response
        """
        if not access_token:
            raise UnauthenticatedError("Authentication required")

        headers = {"Authorization": f"Bearer {access_token}"}
        if self.api_key:
            headers["apikey"] = self.api_key

        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            try:
                response = await client.get(f"{self.base_url}/auth/v1/user", headers=headers)
                if response.status_code in (401, 403):
                    raise UnauthenticatedError("Invalid authentication. Please sign in again.")
                response.raise_for_status()
                data = response.json()

                return CurrentUser(user_id=str(data["id"]), email=data.get("email"))

            except httpx.TimeoutException as e:
                raise IdentityProviderError(f"Auth API timeout after {self.timeout}s") from e
            except httpx.HTTPStatusError as e:
                raise IdentityProviderError(f"Auth API error: {e.response.status_code}") from e
            except httpx.RequestError as e:
                raise IdentityProviderError(f"Auth API unreachable: {e}") from e
            except (KeyError, ValueError, TypeError, AttributeError) as e:
                raise IdentityProviderError(f"Invalid user payload from auth API: {e}") from e
