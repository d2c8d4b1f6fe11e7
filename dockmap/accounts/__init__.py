"""Inbound operations on registry accounts."""

from __future__ import annotations

from .models import AccountView
from .service import AccountService

__all__ = ["AccountService", "AccountView"]
