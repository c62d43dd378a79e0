"""Application package for the tutoring assignments backend.

This package exposes the service, repository and model modules used by
the FastAPI application, together with the grading engine, the access
gate and identity resolution that the submission flow is built from.
Individual modules contain the concrete implementations and
documentation.
"""
