"""
Core business logic for DreamSpace.

This module is framework-agnostic - it doesn't import FastAPI, motor,
or any infrastructure concerns. Coordinators and engines receive their
stores at construction, so they run against the in-memory document
store in tests exactly as they run against MongoDB in production.
"""
