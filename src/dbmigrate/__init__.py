"""dbmigrate - Node data directory key-value backend migration tool.

dbmigrate converts every embedded key-value database inside a node's data
directory from one storage backend to another, copies everything else
verbatim, and swaps the converted directory into place.
"""

__version__ = "0.3.0"
__all__ = ["__version__"]
