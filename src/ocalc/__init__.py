"""ocalc: editor core for formula-driven tabular documents (.ocalc files)."""

__version__ = "0.1.0"
