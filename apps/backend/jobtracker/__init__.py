"""Resume storage and retrieval backend for the job tracker."""

__version__ = "1.0.0"
