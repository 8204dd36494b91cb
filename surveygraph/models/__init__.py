"""Pydantic request and response bodies for the HTTP API."""
