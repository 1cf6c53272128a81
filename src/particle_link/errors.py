"""Exceptions raised by the linking pipeline."""


class ConfigurationError(ValueError):
    """Invalid run configuration, detected before any work starts."""


class WorkspaceError(RuntimeError):
    """A worker workspace could not be created or removed."""


class LinkerMemoryError(RuntimeError):
    """The linker ran out of memory on one or more videos.

    Raised after all workers have finished, so the merged dataset for the
    remaining videos is already on disk; ``report`` holds the verdict and
    ``run`` (set by the pipeline) the full run.
    """

    def __init__(self, message, report=None):
        super().__init__(message)
        self.report = report
        self.run = None


class DetectionFormatError(ValueError):
    """A detection table is unreadable or lacks the columns linking needs."""
