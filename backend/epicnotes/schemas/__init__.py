"""Pydantic records shared by the storage, service and route layers."""
