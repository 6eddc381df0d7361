"""Exceptions raised while building a document."""


class ApiDocError(Exception):
    """Base class for every error that aborts a document build."""


class EmptyRequestShapeError(ApiDocError):
    """A request shape exposes no publicly settable fields."""

    def __init__(self, endpoint_type: str, shape_name: str):
        self.endpoint_type = endpoint_type
        self.shape_name = shape_name
        super().__init__(
            "Request shapes without any publicly settable fields are not supported. "
            f"Offending endpoint: [{endpoint_type}] "
            f"Offending shape: [{shape_name}]"
        )


class BuildFileError(ApiDocError):
    """The build file could not be read or does not describe a valid build."""
