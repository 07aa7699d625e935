"""Health assessment, JSON merge patches and managed-fields handling for Kubernetes resources."""

__version__ = "0.1.0"