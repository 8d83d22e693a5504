"""
FastAPI Application Package

This package contains the FastAPI application: the read endpoints over the
funding cache and the lifespan that starts the ingest scheduler.
"""
