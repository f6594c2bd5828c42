"""
Watershed EJ Index - Exception Types
"""


class IndexPipelineError(Exception):
    """Base exception for index pipeline errors"""
    pass


class SchemaError(IndexPipelineError):
    """Raised when an input table is missing a required column or has a mistyped one"""
    pass


class PCAFitError(IndexPipelineError):
    """Raised when a PCA composite cannot be estimated from the available rows"""
    pass
