"""HTTP client for the Toxiproxy API."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

import requests

from .errors import ApiError
from .models import Attributes, Toxic, ToxicOptions

DEFAULT_USER_AGENT = "toxiproxy-cli"
DEFAULT_TIMEOUT = 30.0

_ERRORS = (ApiError, ConnectionError, ValueError)


def _wrap(prefix: str, err: Exception) -> Exception:
    """Return a new error of the same kind with ``prefix`` in front of its text."""
    if isinstance(err, ApiError):
        context = f"{prefix}: {err.context}" if err.context else prefix
        return ApiError(err.message, err.status, context)
    if isinstance(err, ConnectionError):
        return ConnectionError(f"{prefix}: {err}")
    return ValueError(f"{prefix}: {err}")


def _decode(payload: bytes) -> Any:
    try:
        return json.loads(payload)
    except (ValueError, UnicodeDecodeError) as exc:
        raise ValueError(f"invalid JSON response: {exc}") from exc


class Client:
    """Where and how to talk to a Toxiproxy server."""

    def __init__(
        self,
        endpoint: str,
        user_agent: str = DEFAULT_USER_AGENT,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        if not endpoint.startswith(("https://", "http://")):
            endpoint = "http://" + endpoint
        self.endpoint = endpoint
        self.user_agent = user_agent
        self.timeout = timeout
        self._session = requests.Session()

    def version(self) -> bytes:
        """Return the raw body of the server's version endpoint."""
        return self._send("GET", "/version")

    def proxies(self) -> Dict[str, "Proxy"]:
        """Return every proxy on the server, keyed by name."""
        data = _decode(self._send("GET", "/proxies"))
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ValueError("invalid JSON response: expected an object of proxies")
        result = {}
        for name, item in data.items():
            proxy = Proxy(client=self, created=True)
            proxy._update(item)
            result[name] = proxy
        return result

    def new_proxy(self) -> "Proxy":
        """Return an unsaved proxy bound to this client."""
        return Proxy(client=self)

    def create_proxy(self, name: str, listen: str, upstream: str) -> "Proxy":
        """Create an enabled proxy on the server and return it."""
        proxy = Proxy(name=name, listen=listen, upstream=upstream, enabled=True, client=self)
        try:
            proxy.save()
        except _ERRORS as exc:
            raise _wrap("Create", exc) from exc
        return proxy

    def proxy(self, name: str) -> "Proxy":
        """Fetch one proxy by name."""
        data = _decode(self._send("GET", "/proxies/" + name))
        proxy = Proxy(client=self, created=True)
        proxy._update(data)
        return proxy

    def populate(self, config: List["Proxy"]) -> List["Proxy"]:
        """Create or replace the given proxies; return those the server created."""
        body = json.dumps([proxy.to_dict() for proxy in config]).encode()
        try:
            payload = self._send("POST", "/populate", body)
        except _ERRORS as exc:
            raise _wrap("Populate", exc) from exc
        data = _decode(payload)
        items = (data or {}).get("proxies") if isinstance(data, dict) or data is None else None
        if items is None and data is not None and not isinstance(data, dict):
            raise ValueError("invalid JSON response: expected an object")
        result = []
        for item in items or []:
            proxy = Proxy(client=self)
            proxy._update(item)
            result.append(proxy)
        return result

    def add_toxic(self, options: ToxicOptions) -> Toxic:
        """Add a toxic to the proxy named in ``options``."""
        proxy = self._proxy_for(options)
        try:
            return proxy.add_toxic(
                options.toxic_name,
                options.toxic_type,
                options.stream,
                options.toxicity,
                options.attributes,
            )
        except _ERRORS as exc:
            raise _wrap(f"failed to add toxic to proxy {options.proxy_name}", exc) from exc

    def update_toxic(self, options: ToxicOptions) -> Toxic:
        """Update a toxic on the proxy named in ``options``."""
        proxy = self._proxy_for(options)
        try:
            return proxy.update_toxic(options.toxic_name, options.toxicity, options.attributes)
        except _ERRORS as exc:
            raise _wrap(
                f"failed to update toxic '{options.toxic_name}' "
                f"of proxy '{options.proxy_name}'",
                exc,
            ) from exc

    def remove_toxic(self, options: ToxicOptions) -> None:
        """Remove a toxic from the proxy named in ``options``."""
        proxy = self._proxy_for(options)
        try:
            proxy.remove_toxic(options.toxic_name)
        except _ERRORS as exc:
            raise _wrap(
                f"failed to remove toxic '{options.toxic_name}' "
                f"from proxy '{options.proxy_name}'",
                exc,
            ) from exc

    def reset_state(self) -> None:
        """Re-enable every proxy and drop every toxic on the server."""
        self._send("POST", "/reset", b"")

    def _proxy_for(self, options: ToxicOptions) -> "Proxy":
        try:
            return self.proxy(options.proxy_name)
        except _ERRORS as exc:
            raise _wrap(
                f"failed to retrieve proxy with name `{options.proxy_name}`", exc
            ) from exc

    def _send(self, verb: str, path: str, body: Optional[bytes] = None) -> bytes:
        headers = {"User-Agent": self.user_agent, "Content-Type": "application/json"}
        try:
            response = self._session.request(
                verb, self.endpoint + path, data=body, headers=headers, timeout=self.timeout
            )
        except requests.RequestException as exc:
            raise ConnectionError(f"fail to request: {exc}") from exc
        self._validate(response)
        return response.content

    @staticmethod
    def _validate(response: requests.Response) -> None:
        if 200 <= response.status_code < 300:
            return
        data = _decode(response.content)
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ValueError("invalid JSON response: expected an error object")
        raise ApiError(str(data.get("error") or ""), int(data.get("status") or 0))


@dataclass
class Proxy:
    """A proxy on the server, or one about to be saved there."""

    name: str = ""
    listen: str = ""
    upstream: str = ""
    enabled: bool = False
    active_toxics: List[Toxic] = field(default_factory=list)
    client: Optional[Client] = field(default=None, repr=False, compare=False)
    created: bool = field(default=False, repr=False, compare=False)

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON object for this proxy."""
        return {
            "name": self.name,
            "listen": self.listen,
            "upstream": self.upstream,
            "enabled": self.enabled,
            "toxics": [toxic.to_dict() for toxic in self.active_toxics],
        }

    def save(self) -> None:
        """Create the proxy, or update it if it already exists on the server."""
        body = json.dumps(self.to_dict()).encode()
        path = "/proxies/" + self.name if self.created else "/proxies"
        data = _decode(self._api._send("POST", path, body))
        self._update(data)
        self.created = True

    def enable(self) -> None:
        """Enable the proxy and save it."""
        self.enabled = True
        self.save()

    def disable(self) -> None:
        """Disable the proxy, dropping its connections, and save it."""
        self.enabled = False
        self.save()

    def delete(self) -> None:
        """Delete the proxy and everything about it from the server."""
        try:
            self._api._send("DELETE", "/proxies/" + self.name)
        except _ERRORS as exc:
            raise _wrap("Delete", exc) from exc

    def toxics(self) -> List[Toxic]:
        """Return the toxics active on this proxy."""
        data = _decode(self._api._send("GET", f"/proxies/{self.name}/toxics"))
        return [Toxic.from_dict(item) for item in data or []]

    def add_toxic(
        self,
        name: str,
        type_name: str,
        stream: str,
        toxicity: float,
        attributes: Optional[Attributes],
    ) -> Toxic:
        """Add a toxic; a toxicity of -1 means the default of 1."""
        toxic = Toxic(name, type_name, stream, toxicity, attributes)
        if toxic.toxicity == -1:
            toxic.toxicity = 1.0
        body = json.dumps(toxic.to_dict()).encode()
        try:
            payload = self._api._send("POST", f"/proxies/{self.name}/toxics", body)
        except _ERRORS as exc:
            raise _wrap("AddToxic", exc) from exc
        return Toxic.from_dict(_decode(payload))

    def update_toxic(
        self, name: str, toxicity: float, attributes: Optional[Attributes]
    ) -> Toxic:
        """Update a toxic; a toxicity of -1 keeps the current value."""
        request: dict[str, Any] = {"attributes": attributes}
        if toxicity != -1:
            request["toxicity"] = toxicity
        body = json.dumps(request).encode()
        payload = self._api._send("PATCH", f"/proxies/{self.name}/toxics/{name}", body)
        return Toxic.from_dict(_decode(payload))

    def remove_toxic(self, name: str) -> None:
        """Remove the toxic with the given name."""
        self._api._send("DELETE", f"/proxies/{self.name}/toxics/{name}")

    @property
    def _api(self) -> Client:
        if self.client is None:
            raise RuntimeError("proxy is not bound to a client")
        return self.client

    def _update(self, data: Mapping[str, Any]) -> None:
        if data is None:
            return
        if not isinstance(data, Mapping):
            raise ValueError("invalid JSON response: expected a proxy object")
        if "name" in data:
            self.name = data["name"] or ""
        if "listen" in data:
            self.listen = data["listen"] or ""
        if "upstream" in data:
            self.upstream = data["upstream"] or ""
        if "enabled" in data:
            self.enabled = bool(data["enabled"])
        if "toxics" in data:
            self.active_toxics = [Toxic.from_dict(item) for item in data["toxics"] or []]