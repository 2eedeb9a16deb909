"""Strata REST transport and action creators."""

from .client import ApiClient, Transport, normalize_payload
from . import actions

__all__ = ["ApiClient", "Transport", "normalize_payload", "actions"]
