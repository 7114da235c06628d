"""Errors raised across the repository and service layers."""

from __future__ import annotations


class NotFoundError(LookupError):
    """Raised when a goal or task does not exist or belongs to another user."""

    def __init__(self, kind: str, ident: int):
        super().__init__(f"{kind.capitalize()} {ident} not found")
        self.kind = kind
        self.ident = ident

    @property
    def cache_key(self) -> str:
        return f"{self.kind}:{self.ident}"


__all__ = ["NotFoundError"]
