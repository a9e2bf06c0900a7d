class APIError(Exception):
    def __init__(self, code: str, message: str, http_status: int = 400, details: dict = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.http_status = http_status
        self.details = details


class ValidationError(APIError):
    def __init__(self, message: str, details: dict = None):
        super().__init__("INVALID_INPUT", message, 422, details)


class NotFoundError(APIError):
    def __init__(self, message: str, details: dict = None):
        super().__init__("NOT_FOUND", message, 404, details)


class ConflictError(APIError):
    def __init__(self, message: str, details: dict = None):
        super().__init__("CONFLICT", message, 409, details)


class ServiceUnavailableError(APIError):
    def __init__(self, message: str, details: dict = None):
        super().__init__("SERVICE_UNAVAILABLE", message, 503, details)


class InsufficientStorageError(APIError):
    def __init__(self, message: str, details: dict = None):
        super().__init__("INSUFFICIENT_STORAGE", message, 507, details)


# Domain-specific
class GroupNotFoundError(NotFoundError):
    def __init__(self, group_id: str):
        super().__init__(f"Prompt group not found ({group_id})", {"group_id": group_id})


class VersionNotFoundError(NotFoundError):
    def __init__(self, version_id: str):
        super().__init__(f"Prompt version not found ({version_id})", {"version_id": version_id})


class LastVersionConflictError(ConflictError):
    def __init__(self, version_id: str, group_id: str):
        super().__init__(
            "Cannot delete the only version of a prompt group",
            {"version_id": version_id, "group_id": group_id},
        )
