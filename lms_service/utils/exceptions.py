class LmsException(Exception):
    """Base exception for the LMS service"""
    pass


class BadRequestException(LmsException):
    """Exception for Bad Request (400)"""

    def __init__(self, message: str = "Bad Request"):
        self.message = message
        super().__init__(self.message)


class UnauthorizedException(LmsException):
    """Exception for Unauthorized (401)"""

    def __init__(self, message: str = "Unauthorized"):
        self.message = message
        super().__init__(self.message)


class AccessDeniedException(LmsException):
    """Exception for Forbidden (403): role or ownership mismatch"""

    def __init__(self, message: str = "Access Denied"):
        self.message = message
        super().__init__(self.message)


class ResourceNotFoundException(LmsException):
    """Exception for Not Found (404): missing or soft-deleted row"""

    def __init__(self, message: str = "Resource Not Found"):
        self.message = message
        super().__init__(self.message)


class ConflictException(LmsException):
    """Exception for Conflict (409): duplicate or already-finalized state"""

    def __init__(self, message: str = "Conflict"):
        self.message = message
        super().__init__(self.message)
