"""Data shapes exchanged with the Toxiproxy HTTP API."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

Attributes = Dict[str, Any]


@dataclass
class Toxic:
    """A toxic as the server describes it."""

    name: str = ""
    type: str = ""
    stream: str = ""
    toxicity: float = 0.0
    attributes: Optional[Attributes] = None

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON object for this toxic; an empty stream is left out."""
        data: dict[str, Any] = {"name": self.name, "type": self.type}
        if self.stream:
            data["stream"] = self.stream
        data["toxicity"] = self.toxicity
        data["attributes"] = self.attributes
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Toxic":
        """Build a toxic from a decoded JSON object; missing keys take defaults."""
        attributes = data.get("attributes")
        return cls(
            name=data.get("name") or "",
            type=data.get("type") or "",
            stream=data.get("stream") or "",
            toxicity=float(data.get("toxicity") or 0.0),
            attributes=dict(attributes) if attributes is not None else None,
        )


@dataclass
class ToxicOptions:
    """Everything needed to add, update or remove a toxic on a named proxy."""

    proxy_name: str = ""
    toxic_name: str = ""
    toxic_type: str = ""
    stream: str = ""
    toxicity: float = 0.0
    attributes: Optional[Attributes] = None