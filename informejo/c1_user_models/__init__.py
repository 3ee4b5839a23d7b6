"""User models for Informejo."""

from informejo.c1_user_models.user import User

__all__ = ["User"]
