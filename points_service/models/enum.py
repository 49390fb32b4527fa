from enum import Enum


class RewardError(str, Enum):
    USER_MISMATCH = "userId mismatch"
    INVALID_POINTS = "invalid points"
    POINTS_TOO_LARGE = "points_too_large"
    INVALID_LEVEL = "invalid level"
    INVALID_BODY = "invalid request body"
    ALREADY_CLAIMED = "Already claimed today"
    MISSING_AUTH = "Missing or invalid Authorization header"
    INVALID_TOKEN = "Invalid ID token"
    SERVER_ERROR = "server_error"
