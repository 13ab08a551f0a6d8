"""Application package for the study tracker backend.

This package exposes the ledger, streak, progress and insight modules
used by the FastAPI application. Individual modules contain the concrete
implementations and documentation.
"""
