"""rowscrub package.

Replaces sensitive column values in database tables with realistic fake
data, driven by a per-table formatter configuration. Modules do not touch the
database or generate data on import.
"""

__all__ = [
    "__version__",
]

__version__ = "0.1.0"
