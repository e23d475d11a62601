"""
Tests for the identity service: unit tests for the hasher, token services,
profile normalization and store, plus HTTP flows through the FastAPI app.
"""
