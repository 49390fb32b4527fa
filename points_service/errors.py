"""Error taxonomy shared by the handlers, the reward engine and the store."""

from fastapi import status


class RewardServiceError(Exception):
    """Failure that maps to exactly one `{ok: false, error}` response."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, error: str):
        super().__init__(error)
        self.error = error


class Unauthorized(RewardServiceError):
    status_code = status.HTTP_401_UNAUTHORIZED


class BadRequest(RewardServiceError):
    status_code = status.HTTP_400_BAD_REQUEST


class PolicyRejected(RewardServiceError):
    """Expected business-rule rejection; answered with 200 and ok=false."""

    status_code = status.HTTP_200_OK


class ServerError(RewardServiceError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, error: str = "server_error"):
        super().__init__(error)


class StoreError(Exception):
    """Base class for document store failures."""


class StoreUnavailable(StoreError):
    pass


class TransactionContention(StoreError):
    """Optimistic transaction kept conflicting until the retry budget ran out."""

    def __init__(self, attempts: int):
        super().__init__(f"Transaction aborted after {attempts} conflicting attempts")
        self.attempts = attempts
