"""WordPress plugin version checks, vulnerability database tooling and report writers."""

__version__ = "0.1.0"