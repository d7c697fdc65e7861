"""Async HTTP client for the W3C WebDriver endpoints used by the purchaser."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx
from pydantic import BaseModel

LOGGER = logging.getLogger(__name__)

ELEMENT_KEY = "element-6066-11e4-a52e-4f735466cecf"
CSS_SELECTOR = "css selector"

ELEMENT_STATE_ERRORS = frozenset(
    {
        "no such element",
        "stale element reference",
        "element not interactable",
        "element click intercepted",
    }
)


class WebDriverError(RuntimeError):
    """Raised when the driver answers a command with an error."""

    def __init__(self, error: str, message: str) -> None:
        super().__init__(f"{error}: {message}")
        self.error = error
        self.message = message


class ElementStateError(WebDriverError):
    """Raised when a command failed because of the state of one element."""


class NoSuchElementError(ElementStateError):
    """Raised when a find command matched nothing."""


class ErrorPayload(BaseModel):
    error: str
    message: str = ""
    stacktrace: Optional[str] = None


class NewSessionValue(BaseModel):
    sessionId: str
    capabilities: Dict[str, Any] = {}


def build_capabilities(kind: str, *, headless: bool = False) -> Dict[str, Any]:
    """Return the ``alwaysMatch`` capabilities for the given driver."""

    if kind == "chromedriver":
        args = ["--headless=new"] if headless else []
        return {"browserName": "chrome", "goog:chromeOptions": {"args": args}}
    args = ["-headless"] if headless else []
    return {"browserName": "firefox", "moz:firefoxOptions": {"args": args}}


class WebDriverClient:
    """Wrapper around a single WebDriver session."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=timeout,
            transport=transport,
        )
        self.session_id: Optional[str] = None

    @property
    def is_open(self) -> bool:
        return self.session_id is not None

    async def aclose(self) -> None:
        await self._client.aclose()

    async def new_session(self, capabilities: Dict[str, Any]) -> str:
        payload = {"capabilities": {"alwaysMatch": capabilities}}
        value = await self._command("POST", "/session", payload)
        session = NewSessionValue.model_validate(value)
        self.session_id = session.sessionId
        LOGGER.debug("Opened WebDriver session %s at %s", self.session_id, self._base_url)
        return self.session_id

    async def delete_session(self) -> None:
        if self.session_id is None:
            return
        session_id = self.session_id
        self.session_id = None
        await self._command("DELETE", f"/session/{session_id}")
        LOGGER.debug("Closed WebDriver session %s", session_id)

    async def set_implicit_wait(self, timeout_ms: int) -> None:
        await self._session_command("POST", "/timeouts", {"implicit": timeout_ms})

    async def navigate(self, url: str) -> None:
        await self._session_command("POST", "/url", {"url": url})

    async def current_url(self) -> str:
        return str(await self._session_command("GET", "/url"))

    async def find_element(
        self,
        selector: str,
        parent: Optional[str] = None,
        *,
        implicit_wait_ms: int = 0,
    ) -> str:
        """Find one element.

        ``implicit_wait_ms`` is the wait currently set on the session; the
        driver may hold the request that long, so the read timeout is
        extended by the same amount.
        """

        timeout: Any = httpx.USE_CLIENT_DEFAULT
        if implicit_wait_ms:
            timeout = self._timeout + implicit_wait_ms / 1000
        value = await self._session_command(
            "POST",
            f"{_scope(parent)}/element",
            {"using": CSS_SELECTOR, "value": selector},
            timeout=timeout,
        )
        return _element_id(value)

    async def find_elements(self, selector: str, parent: Optional[str] = None) -> List[str]:
        value = await self._session_command(
            "POST",
            f"{_scope(parent)}/elements",
            {"using": CSS_SELECTOR, "value": selector},
        )
        if not isinstance(value, list):
            raise WebDriverError("unknown error", f"Unexpected element list: {value!r}")
        return [_element_id(item) for item in value]

    async def element_click(self, element_id: str) -> None:
        await self._session_command("POST", f"/element/{element_id}/click", {})

    async def element_clear(self, element_id: str) -> None:
        await self._session_command("POST", f"/element/{element_id}/clear", {})

    async def element_send_keys(self, element_id: str, text: str) -> None:
        await self._session_command("POST", f"/element/{element_id}/value", {"text": text})

    async def element_attribute(self, element_id: str, name: str) -> Optional[str]:
        return await self._session_command("GET", f"/element/{element_id}/attribute/{name}")

    async def element_property(self, element_id: str, name: str) -> Any:
        return await self._session_command("GET", f"/element/{element_id}/property/{name}")

    async def _session_command(
        self,
        method: str,
        path: str,
        payload: Optional[Dict[str, Any]] = None,
        *,
        timeout: Any = httpx.USE_CLIENT_DEFAULT,
    ) -> Any:
        if self.session_id is None:
            raise WebDriverError("invalid session id", "WebDriver session is not open")
        return await self._command(
            method, f"/session/{self.session_id}{path}", payload, timeout=timeout
        )

    async def _command(
        self,
        method: str,
        path: str,
        payload: Optional[Dict[str, Any]] = None,
        *,
        timeout: Any = httpx.USE_CLIENT_DEFAULT,
    ) -> Any:
        LOGGER.debug("WebDriver %s %s", method, path)
        try:
            response = await self._client.request(method, path, json=payload, timeout=timeout)
        except httpx.HTTPError as exc:
            raise WebDriverError("transport error", str(exc)) from exc
        try:
            body = response.json()
        except ValueError:
            body = None
        if response.is_error:
            raise _decode_error(response, body)
        if not isinstance(body, dict) or "value" not in body:
            raise WebDriverError("unknown error", f"Unexpected response format: {body!r}")
        return body["value"]


def _scope(parent: Optional[str]) -> str:
    return f"/element/{parent}" if parent else ""


def _element_id(value: Any) -> str:
    if not isinstance(value, dict) or not isinstance(value.get(ELEMENT_KEY), str):
        raise WebDriverError("unknown error", f"Unexpected element reference: {value!r}")
    return value[ELEMENT_KEY]


def _decode_error(response: httpx.Response, body: Any) -> WebDriverError:
    value = body.get("value") if isinstance(body, dict) else None
    if not isinstance(value, dict) or "error" not in value:
        return WebDriverError("unknown error", f"HTTP {response.status_code}: {response.text}")
    payload = ErrorPayload.model_validate(value)
    if payload.error == "no such element":
        return NoSuchElementError(payload.error, payload.message)
    if payload.error in ELEMENT_STATE_ERRORS:
        return ElementStateError(payload.error, payload.message)
    return WebDriverError(payload.error, payload.message)
