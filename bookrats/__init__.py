"""BookRats: daily reading check-ins for book clubs."""

__version__ = "1.0.0"
