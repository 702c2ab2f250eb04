"""Conway control-plane client.

`ConwayClient` is the capability interface the provisioning and versioning
code consumes. `HttpConwayClient` implements it against the Conway REST API.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any, Protocol

import httpx

from ..types import ExecResult, PortInfo, SandboxCreateRequest, SandboxInfo

DEFAULT_API_URL = "https://api.conway.tech"


class ConwayError(RuntimeError):
    """Control-plane request failed."""

    def __init__(self, message: str, status_code: int | None = None, body: str = ""):
        self.status_code = status_code
        self.body = body
        super().__init__(message)


class ConwayClient(Protocol):
    async def list_sandboxes(self) -> list[SandboxInfo]:
        ...

    async def create_sandbox(self, request: SandboxCreateRequest) -> SandboxInfo:
        ...

    async def delete_sandbox(self, sandbox_id: str) -> None:
        ...

    async def exec(self, command: str, timeout_ms: int | None = None) -> ExecResult:
        ...

    async def write_file(self, path: str, content: str) -> None:
        ...

    async def read_file(self, path: str) -> str:
        ...

    async def expose_port(self, port: int) -> PortInfo:
        ...

    async def remove_port(self, port: int) -> None:
        ...


class HttpConwayClient:
    """
    Async HTTP client for the Conway sandbox API.

    Sandbox-scoped calls (exec, files, ports) act on ``sandbox_id``; use
    `with_sandbox` to get a client bound to a freshly provisioned sandbox.
    Errors are raised as-is: there is no retry or backoff here.
    """

    def __init__(
        self,
        api_key: str,
        api_url: str = DEFAULT_API_URL,
        sandbox_id: str = "",
        timeout_seconds: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key
        self.api_url = api_url.rstrip("/")
        self.sandbox_id = sandbox_id
        self.timeout_seconds = timeout_seconds
        self._transport = transport

    def with_sandbox(self, sandbox_id: str) -> HttpConwayClient:
        return HttpConwayClient(
            api_key=self.api_key,
            api_url=self.api_url,
            sandbox_id=sandbox_id,
            timeout_seconds=self.timeout_seconds,
            transport=self._transport,
        )

    async def _request(
        self,
        method: str,
        path: str,
        payload: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> Any:
        async with httpx.AsyncClient(
            timeout=timeout or self.timeout_seconds,
            transport=self._transport,
        ) as client:
            response = await client.request(
                method,
                f"{self.api_url}{path}",
                json=payload,
                params=params,
                headers={"Authorization": self.api_key},
            )

        if response.status_code >= 400:
            raise ConwayError(
                f"Conway API error {response.status_code}: {method} {path}",
                status_code=response.status_code,
                body=response.text,
            )
        if not response.content:
            return None
        if "application/json" in response.headers.get("content-type", ""):
            return response.json()
        return response.text

    def _sandbox_path(self, suffix: str = "") -> str:
        if not self.sandbox_id:
            raise ConwayError("No sandbox selected; call with_sandbox() first")
        return f"/v1/sandboxes/{self.sandbox_id}{suffix}"

    async def list_sandboxes(self) -> list[SandboxInfo]:
        data = await self._request("GET", "/v1/sandboxes")
        items = data.get("sandboxes", []) if isinstance(data, dict) else data or []
        return [SandboxInfo.from_api(item) for item in items if isinstance(item, dict)]

    async def create_sandbox(self, request: SandboxCreateRequest) -> SandboxInfo:
        data = await self._request("POST", "/v1/sandboxes", payload=request.to_api())
        if not isinstance(data, dict):
            raise ConwayError("Unexpected response from Conway API.")
        info = SandboxInfo.from_api(data)
        if not info.status:
            info = replace(info, status="running")
        return info

    async def delete_sandbox(self, sandbox_id: str) -> None:
        await self._request("DELETE", f"/v1/sandboxes/{sandbox_id}")

    async def exec(self, command: str, timeout_ms: int | None = None) -> ExecResult:
        payload: dict[str, Any] = {"command": command}
        http_timeout = None
        if timeout_ms is not None:
            payload["timeout"] = timeout_ms
            # Leave headroom over the remote timeout for the round trip.
            http_timeout = timeout_ms / 1000 + self.timeout_seconds
        data = await self._request(
            "POST", self._sandbox_path("/exec"), payload=payload, timeout=http_timeout
        )
        if not isinstance(data, dict):
            raise ConwayError("Unexpected response from Conway API.")
        return ExecResult(
            stdout=data.get("stdout") or "",
            stderr=data.get("stderr") or "",
            exit_code=int(data.get("exit_code", data.get("exitCode", 0)) or 0),
        )

    async def write_file(self, path: str, content: str) -> None:
        await self._request(
            "POST",
            self._sandbox_path("/files/upload/json"),
            payload={"path": path, "content": content},
        )

    async def read_file(self, path: str) -> str:
        data = await self._request(
            "GET", self._sandbox_path("/files/read"), params={"path": path}
        )
        if isinstance(data, dict):
            return str(data.get("content", ""))
        return data or ""

    async def expose_port(self, port: int) -> PortInfo:
        data = await self._request(
            "POST", self._sandbox_path("/ports/expose"), payload={"port": port}
        )
        if not isinstance(data, dict):
            raise ConwayError("Unexpected response from Conway API.")
        return PortInfo(
            port=int(data.get("port", port)),
            public_url=data.get("public_url") or data.get("publicUrl") or "",
            sandbox_id=self.sandbox_id,
        )

    async def remove_port(self, port: int) -> None:
        await self._request("DELETE", self._sandbox_path(f"/ports/{port}"))
