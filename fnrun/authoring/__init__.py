"""Decorators used by function authors."""
