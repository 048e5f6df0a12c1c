"""Domain exceptions."""


class ModelFitError(RuntimeError):
    """Raised when a regression fit cannot produce estimates for this run."""


class DataItemFormatError(ValueError):
    """Raised when a composite 'Data Item' field cannot be split as expected."""
