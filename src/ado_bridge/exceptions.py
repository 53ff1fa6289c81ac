class UnrecoverableError(ValueError):
    """Base class for all unrecoverable errors in the pipeline bridge."""

    pass


class InvalidProjectUrlError(UnrecoverableError):
    """Raised when the project URL cannot be split into collection and project."""

    pass


class InvalidInputError(UnrecoverableError):
    """Raised when an action input has an unusable value."""

    pass


class PipelineNotFoundError(UnrecoverableError):
    """Raised when no pipeline definition matches the requested name."""

    pass


class PipelineValidationError(UnrecoverableError):
    """Raised when Azure DevOps rejects a queued build with validation errors."""

    pass


class RunFailedError(UnrecoverableError):
    """Raised when a triggered run finishes without succeeding."""

    pass
