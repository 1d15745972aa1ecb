"""Domain errors for odoostack."""


class StackError(RuntimeError):
    """Raised when a stack operation cannot continue safely."""


class DependencyError(StackError):
    """Raised when Docker or Docker Compose is not usable on this host."""


class AddonsListingError(StackError):
    """Raised when the extra-addons directory cannot be listed."""
