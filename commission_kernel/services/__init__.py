"""Kernel services: tenant registry, session builder, and sale store."""
