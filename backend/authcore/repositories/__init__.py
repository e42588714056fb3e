"""Repository package exposing persistence-layer access for the ORM models."""

from __future__ import annotations

from authcore.repositories.principal import SQLAlchemyPrincipalRepository

__all__ = ["SQLAlchemyPrincipalRepository"]
