from __future__ import annotations

from typing import (
    Any,
    Dict,
    Iterable,
    Iterator,
    List,
    Mapping,
    Optional,
    Tuple,
    Union,
)

HeadersInput = Union[Mapping[str, Union[str, List[str]]], Iterable[Tuple[str, str]], None]


class Headers(Mapping[str, str]):
    """
    Case-insensitive, read-only multi-value header mapping.

    Stored responses share their headers with every reader, so there are no
    mutating methods. Build a new ``Headers`` to change anything.
    """

    def __init__(self, headers: HeadersInput = None) -> None:
        self._headers: Dict[str, List[str]] = {}
        if headers is None:
            return
        if isinstance(headers, Mapping):
            for key, value in headers.items():
                values = [value] if isinstance(value, str) else list(value)
                self._headers.setdefault(key.lower(), []).extend(values)
        else:
            for key, value in headers:
                self._headers.setdefault(key.lower(), []).append(value)

    def get_list(self, key: str) -> Optional[List[str]]:
        values = self._headers.get(key.lower(), None)
        return values[:] if values is not None else None

    def multi_items(self) -> List[Tuple[str, str]]:
        return [(key, value) for key, values in self._headers.items() for value in values]

    def to_dict(self) -> Dict[str, List[str]]:
        return {key: values[:] for key, values in self._headers.items()}

    def __getitem__(self, key: str) -> str:
        return ", ".join(self._headers[key.lower()])

    def __iter__(self) -> Iterator[str]:
        return iter(self._headers)

    def __len__(self) -> int:
        return len(self._headers)

    def __repr__(self) -> str:
        return f"Headers({self._headers!r})"

    def __eq__(self, other_headers: Any) -> bool:
        return isinstance(other_headers, Headers) and self._headers == other_headers._headers

    __hash__ = None  # type: ignore[assignment]


class Vary:
    def __init__(self, values: List[str]) -> None:
        self.values = values

    @property
    def is_wildcard(self) -> bool:
        return "*" in self.values

    @classmethod
    def from_headers(cls, headers: Headers) -> "Vary":
        values = []
        for vary_value in headers.get_list("vary") or []:
            for field_name in vary_value.split(","):
                field_name = field_name.strip().lower()
                if field_name:
                    values.append(field_name)
        return Vary(values)
