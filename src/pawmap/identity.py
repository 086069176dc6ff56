"""Interfaces of the identity provider and image uploader.

Both are owned by the presentation layer; the engines only call them.
"""

from __future__ import annotations

from typing import Any, Protocol

from pydantic import BaseModel, ConfigDict


class Actor(BaseModel):
    """The signed-in user as reported by the identity provider."""

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    id: str
    display_name: str | None = None
    email: str | None = None

    @property
    def author_name(self) -> str:
        """Name shown next to messages: display name, then e-mail, then ``"User"``."""
        return self.display_name or self.email or "User"


class IdentityProvider(Protocol):
    def current_actor(self) -> Actor | None:
        ...


class ImageUploader(Protocol):
    async def upload(self, image: Any) -> str:
        """Upload a local image handle and return its public URL."""
        ...
