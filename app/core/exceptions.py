"""Ошибки сервиса сниппетов.

У каждой ошибки есть стабильный код (поле ``error`` в ответе) и HTTP-статус.
Внутренние ошибки (хранилище, хеширование, таймаут) наружу отдаются
с обобщенным сообщением, подробности пишутся в лог.
"""


class SnippetError(Exception):
    """Базовая ошибка сервиса"""

    code = "internal_error"
    status_code = 500
    message = "Internal server error"
    # Подробности не показываются клиенту
    internal = True

    def __init__(self, message: str = None, detail: str = None):
        self.message = message or self.message
        self.detail = detail
        super().__init__(detail or self.message)

    def public_message(self) -> str:
        if self.internal:
            return type(self).message
        return self.message


class InvalidRequestError(SnippetError):
    code = "invalid_request"
    status_code = 400
    message = "Invalid JSON body"
    internal = False


class UnsupportedMediaTypeError(InvalidRequestError):
    status_code = 415
    message = "Content-Type must be application/json"


class InvalidIdError(SnippetError):
    code = "invalid_id"
    status_code = 400
    message = "ID is required"
    internal = False


class InvalidContentError(SnippetError):
    code = "invalid_content"
    status_code = 400
    message = "JSON content cannot be empty"
    internal = False


class InvalidPasswordError(SnippetError):
    code = "invalid_password"
    status_code = 400
    message = "Password is required"
    internal = False

    # bcrypt не принимает NUL внутри пароля
    NUL_MESSAGE = "Password must not contain NUL characters"


class InvalidExpiresError(SnippetError):
    code = "invalid_expires"
    status_code = 400
    message = "Expiration time must be in the future"
    internal = False


class SnippetNotFoundError(SnippetError):
    code = "not_found"
    status_code = 404
    message = "JSON not found or expired"
    internal = False


class UnauthorizedError(SnippetError):
    code = "unauthorized"
    status_code = 401
    message = "Invalid password"
    internal = False


class RateLimitedError(SnippetError):
    code = "rate_limited"
    status_code = 429
    message = "Rate limit exceeded"
    internal = False


class BackendError(SnippetError):
    code = "backend_error"
    message = "Failed to access storage"


class SnippetConflictError(BackendError):
    """Идентификатор уже занят - сбой генератора, а не повод перезаписать запись"""


class HashError(SnippetError):
    code = "hash_error"
    message = "Failed to hash password"


class SnippetTimeoutError(SnippetError):
    code = "timeout"
    status_code = 504
    message = "Request timed out"
