"""Async client library for the Yunbi exchange REST API."""

from .api import (
    ABSENT,
    ClockSkewTracker,
    ParameterSet,
    RequestSigner,
    YunbiAPIClient,
    YunbiAPIError,
    canonicalize,
)
from .data import Credential, SignedRequest

__version__ = '0.1.0'

__all__ = [
    'ABSENT',
    'ClockSkewTracker',
    'Credential',
    'ParameterSet',
    'RequestSigner',
    'SignedRequest',
    'YunbiAPIClient',
    'YunbiAPIError',
    'canonicalize',
]
