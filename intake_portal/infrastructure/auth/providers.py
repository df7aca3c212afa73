"""Auth providers for privileged account operations."""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional
from uuid import uuid4

import aiohttp

from ...core.exceptions import AuthProviderError, AuthUserNotFoundError, ConfigurationError


class AuthProvider(ABC):
    """Creates and deletes authentication records."""

    def __init__(self, config: Dict[str, Any]):
        self.config = config
        self.name = self.__class__.__name__.replace('AuthProvider', '').lower()
        self._validate_config()

    @abstractmethod
    def _validate_config(self):
        """Validate provider configuration."""
        pass

    @abstractmethod
    async def create_user(self, email: str, password: str, display_name: str = "",
                          role: str = "client") -> str:
        """Create an auth record and return its uid."""
        pass

    @abstractmethod
    async def delete_user(self, uid: str) -> None:
        """Delete an auth record. Raises ``AuthUserNotFoundError`` when already absent."""
        pass

    async def close(self):
        pass


class FunctionsAuthProvider(AuthProvider):
    """Calls the deployed HTTPS callable functions (``createClient``, ``createAdmin``, ``deleteUser``)."""

    def _validate_config(self):
        if not self.config.get('base_url'):
            raise ConfigurationError("Functions auth provider requires base_url")
        self._session: Optional[aiohttp.ClientSession] = None

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session."""
        if self._session is None or self._session.closed:
            headers = {'Content-Type': 'application/json'}
            if self.config.get('token'):
                headers['Authorization'] = f"Bearer {self.config['token']}"
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.config.get('timeout', 30)),
                headers=headers
            )
        return self._session

    async def close(self):
        """Close the session."""
        if self._session and not self._session.closed:
            await self._session.close()

    async def _call(self, function_name: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Invoke a callable function using the ``{"data": ...}`` / ``{"result": ...}`` envelope."""
        url = f"{self.config['base_url'].rstrip('/')}/{function_name}"
        session = await self._get_session()
        try:
            async with session.post(url, json={"data": payload}) as response:
                body = await response.json(content_type=None)
        except aiohttp.ClientError as e:
            raise AuthProviderError(function_name, str(e), cause=e) from e

        if isinstance(body, dict) and body.get("error"):
            error = body["error"]
            status = error.get("status", "") if isinstance(error, dict) else ""
            message = error.get("message", str(error)) if isinstance(error, dict) else str(error)
            if status == "NOT_FOUND" and function_name == "deleteUser":
                raise AuthUserNotFoundError(payload.get("userId", ""))
            raise AuthProviderError(function_name, message, context={"status": status})

        result = body.get("result", {}) if isinstance(body, dict) else {}
        if not result.get("success"):
            raise AuthProviderError(function_name, result.get("message") or "call did not succeed")
        return result

    async def create_user(self, email: str, password: str, display_name: str = "",
                          role: str = "client") -> str:
        function_name = "createAdmin" if role in ("admin", "owner") else "createClient"
        result = await self._call(function_name, {
            "email": email,
            "password": password,
            "name": display_name,
        })
        if not result.get("uid"):
            raise AuthProviderError(function_name, "no uid returned")
        return result["uid"]

    async def delete_user(self, uid: str) -> None:
        await self._call("deleteUser", {"userId": uid})


class InMemoryAuthProvider(AuthProvider):
    """Auth provider for testing and development."""

    def _validate_config(self):
        """In-memory provider doesn't require configuration."""
        self.users: Dict[str, Dict[str, Any]] = {}

    async def create_user(self, email: str, password: str, display_name: str = "",
                          role: str = "client") -> str:
        for existing in self.users.values():
            if existing["email"].lower() == email.lower():
                raise AuthProviderError("create", "The email address is already in use")
        uid = uuid4().hex[:28]
        self.users[uid] = {"email": email, "display_name": display_name, "role": role}
        return uid

    async def delete_user(self, uid: str) -> None:
        if uid not in self.users:
            raise AuthUserNotFoundError(uid)
        del self.users[uid]
