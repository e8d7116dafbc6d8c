from fastapi import status
from libs.result import Error


class ClientError(Exception):
    def __init__(self, base_error: Error, status_code: int = status.HTTP_400_BAD_REQUEST):
        self.base_error = base_error
        self.status_code = status_code
        super().__init__(base_error.message)


class ServerError(Exception):
    def __init__(self, base_error: Error):
        self.base_error = base_error
        super().__init__(base_error.message)


class OAuthError(Exception):
    """RFC 6749 error, rendered as {"error", "error_description"}"""

    def __init__(self, base_error: Error, status_code: int = status.HTTP_400_BAD_REQUEST):
        self.base_error = base_error
        self.status_code = status_code
        super().__init__(base_error.message)


OAUTH_ERROR_STATUS = {
    "invalid_client": status.HTTP_401_UNAUTHORIZED,
    "invalid_token": status.HTTP_401_UNAUTHORIZED,
}


def oauth_error(error: Error) -> OAuthError:
    return OAuthError(error, status_code=OAUTH_ERROR_STATUS.get(error.code, status.HTTP_400_BAD_REQUEST))
