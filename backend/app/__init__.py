"""Kinetic plan cache service."""
