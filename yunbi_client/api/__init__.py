"""API client module for Yunbi integration."""

from .client import YunbiAPIClient, CredentialManager
from .clock import ClockSkewTracker
from .dispatcher import AiohttpTransport, RequestDispatcher, Transport, handle_data_invalid
from .errors import YunbiAPIError, YUNBI_API_ERROR
from .params import ABSENT, ParameterSet, canonicalize, clean_up_params
from .signer import RequestSigner, build_payload, digest

__all__ = [
    'YunbiAPIClient',
    'CredentialManager',
    'ClockSkewTracker',
    'RequestDispatcher',
    'AiohttpTransport',
    'Transport',
    'handle_data_invalid',
    'YunbiAPIError',
    'YUNBI_API_ERROR',
    'ABSENT',
    'ParameterSet',
    'canonicalize',
    'clean_up_params',
    'RequestSigner',
    'build_payload',
    'digest',
]
