from __future__ import annotations

from typing import Protocol

from domain.models import Size


class ImageResolver(Protocol):
    async def read_size(self, src: str) -> Size: ...

    async def materialize(self, src: str) -> str: ...
