class InvalidArgumentError(ValueError):
    """A required collaborator or argument was missing."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Argument {name!r} must not be None.")
        self.name = name


class DependencyUnavailableError(RuntimeError):
    """A monitored dependency did not answer the way a healthy one should."""
