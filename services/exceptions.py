"""Domain errors raised by the section field services"""


class SectionFieldError(Exception):
    """Base class for all errors raised by the core"""


class SectionNotFoundError(SectionFieldError):
    def __init__(self, handle: str):
        super().__init__(f"Section not found: {handle}")
        self.handle = handle


class EntryNotFoundError(SectionFieldError):
    def __init__(self, message: str = "Entry not found"):
        super().__init__(message)


class InvalidReadOptionsError(SectionFieldError, ValueError):
    pass


class InvalidCacheKeyError(SectionFieldError, ValueError):
    pass


class TriggerHandlerError(SectionFieldError):
    def __init__(self, service: str):
        super().__init__(f"No trigger service registered as '{service}'")
        self.service = service


class EntityNotRegisteredError(SectionFieldError):
    def __init__(self, class_name: str):
        super().__init__(f"Entity class could not be resolved: {class_name}")
        self.class_name = class_name


class PersistenceFailedError(SectionFieldError):
    """Saving a validated entry failed"""
