"""Exceptions raised by the Yunbi API client."""

from typing import Optional

YUNBI_API_ERROR = 'yunbi_api_error'


class YunbiAPIError(Exception):
    """Raised when the exchange answers with an absent or plain-text body.

    Transport failures (connection errors, non-2xx statuses) are not wrapped
    in this type; they reach the caller as raised by the transport.
    """

    def __init__(self, message: str = YUNBI_API_ERROR, error_code: Optional[str] = YUNBI_API_ERROR):
        super().__init__(message)
        self.error_code = error_code
