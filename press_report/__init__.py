"""Media-coverage report builder: extract, reconcile and assemble press listings."""

__version__ = "0.1.0"
