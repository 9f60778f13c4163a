"""Data models for the Yunbi client."""

from .models import Credential, SignedRequest

__all__ = ['Credential', 'SignedRequest']
