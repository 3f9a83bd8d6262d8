"""Domain model, workflow stores and Tekton manifest generation for an MLOps workflow service."""

__version__ = "0.1.0"