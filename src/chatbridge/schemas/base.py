"""
Base Schema Classes

Frames we send are dataclasses serialized as {"type": ..., "data": {...}};
payloads we receive are parsed with from_dict(), which tolerates an optional
{"data": ...} envelope.
"""

import json
from dataclasses import asdict, fields
from typing import Any, Dict, TypeVar

T = TypeVar("T", bound="BaseResponse")


class BaseRequest:
    """Outgoing frame; subclasses are dataclasses that name their type."""

    def to_dict(self) -> Dict[str, Any]:
        # Field-less frames carry only their type
        if fields(self):
            return {"type": self._message_type, "data": asdict(self)}
        return {"type": self._message_type}

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @property
    def _message_type(self) -> str:
        raise NotImplementedError("Subclasses must define _message_type")


class BaseResponse:
    """Incoming payload parsed from a dictionary."""

    @classmethod
    def from_dict(cls: type[T], data: Dict[str, Any]) -> T:
        """
        Create an instance from a payload or a {"data": payload} envelope.

        Args:
            data: Decoded payload

        Returns:
            Instance of the schema class
        """
        return cls._from_data(data.get("data", data))

    @classmethod
    def _from_data(cls: type[T], data: Dict[str, Any]) -> T:
        # Override when wire names differ from field names
        return cls(**data)
