"""Unit tests for InspectFlow operator API route modules.

Each route module has a corresponding test file; database access and
services are patched at the route module's import site.
"""
