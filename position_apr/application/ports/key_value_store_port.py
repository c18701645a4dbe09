from __future__ import annotations

from typing import Protocol


class KeyValueStorePort(Protocol):
    def open(self) -> None:
        ...

    def close(self) -> None:
        ...

    def get(self, key: str) -> bytes | None:
        ...

    def set(self, key: str, value: bytes) -> None:
        ...

    def delete(self, key: str) -> None:
        ...

    def list_keys(self, prefix: str = "") -> list[str]:
        ...
