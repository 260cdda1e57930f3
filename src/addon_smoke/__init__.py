"""Smoke tests for Kubernetes cluster add-ons."""

__version__ = "0.1.0"
