"""Custom exceptions for graphsieve services."""


class GraphSieveError(Exception):
    """Base class for graphsieve errors."""


class GraphNotFoundError(GraphSieveError):
    """Raised when a graph directory does not exist or is not a directory.

    Attributes:
        path: Path that was expected to be a graph directory
        message: Human-readable error message
    """

    def __init__(self, path: str, message: str = "Graph directory not found"):
        """Initialize GraphNotFoundError.

        Args:
            path: Path that was expected to be a graph directory
            message: Human-readable error message
        """
        self.path = path
        self.message = message
        super().__init__(f"{message}: {path}")
