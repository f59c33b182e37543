"""Application package for the School API backend.

This package exposes the models, repositories and domain services used
by the FastAPI application. It is intentionally lightweight; individual
modules contain the concrete implementations and documentation.
"""
