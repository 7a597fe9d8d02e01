"""
NetLens error taxonomy.

Fatal errors abort the pipeline for one file. Non-fatal anomalies are
plain warning strings attached to the CanonicalConfig instead.
"""


class PipelineError(ValueError):
    """Fatal failure of one pipeline invocation."""

    kind = "PipelineError"

    def __init__(self, cause: str, file_name: str = ""):
        self.cause = cause
        self.file_name = file_name
        super().__init__(cause)

    def __str__(self):
        if self.file_name:
            return f"{self.file_name}: {self.cause}"
        return self.cause


class InputError(PipelineError):
    """Empty, unreadable or non-text input, or an unsupported vendor."""

    kind = "InputError"


class SchemaViolation(PipelineError):
    """A required structural field could not be normalized."""

    kind = "SchemaViolation"
