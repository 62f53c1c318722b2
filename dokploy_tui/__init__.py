"""Interactive terminal dashboard for Dokploy servers."""

__version__ = "0.1.0"
