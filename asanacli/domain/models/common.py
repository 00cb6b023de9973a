"""Defines common Value Objects used across the API and CLI layers.

These objects represent identifiers, the paginated list envelope and the
immutable description of one logical API call.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Generic, List, NewType, Optional, TypeVar

# === Identifiers ===

GID = NewType("GID", str)                 # Global identifier of a remote resource
HTTPMethod = NewType("HTTPMethod", str)   # 'GET', 'POST', 'PUT', 'DELETE'

T = TypeVar("T")

# Parses the decoded JSON document of a successful response into a value.
Decoder = Callable[[Any], Any]


def drop_none(values: Dict[str, Any]) -> Dict[str, Any]:
    """Removes unset fields, mirroring the wire format's omitted keys."""
    return {key: value for key, value in values.items() if value is not None}


# === Pagination ===

@dataclass(frozen=True)
class PageInfo:
    """Cursor for the next page of a list call."""
    offset: Optional[str] = None
    uri: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["PageInfo"]:
        if not data:
            return None
        return cls(offset=data.get("offset"), uri=data.get("uri"))

    def to_dict(self) -> Dict[str, Any]:
        return drop_none({"offset": self.offset, "uri": self.uri})


@dataclass
class ListResponse(Generic[T]):
    """Success envelope of a paginated list call: ``{data: [...], next_page}``."""
    data: List[T] = field(default_factory=list)
    next_page: Optional[PageInfo] = None

    @classmethod
    def decoder(cls, item_parser: Callable[[Dict[str, Any]], T]) -> Decoder:
        """Builds a decoder for a list envelope whose items use ``item_parser``."""
        def _decode(document: Any) -> "ListResponse[T]":
            items = document["data"] or []
            return cls(
                data=[item_parser(item) for item in items],
                next_page=PageInfo.from_dict(document.get("next_page")),
            )
        return _decode

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "data": [item.to_dict() if hasattr(item, "to_dict") else item for item in self.data]
        }
        if self.next_page is not None:
            result["next_page"] = self.next_page.to_dict()
        return result


def data_decoder(parser: Callable[[Dict[str, Any]], T]) -> Decoder:
    """Builds a decoder for a single-object envelope: ``{data: {...}}``."""
    def _decode(document: Any) -> T:
        return parser(document["data"])
    return _decode


# === Request Pipeline ===

@dataclass(frozen=True)
class RequestDescriptor:
    """Immutable description of one logical API call.

    The body is kept as bytes so it can be re-sent unchanged on every retry.
    """
    method: HTTPMethod
    path: str
    body: Optional[bytes] = None
    decode: Optional[Decoder] = None
    resource: str = "resource"  # Name used in not-found messages
