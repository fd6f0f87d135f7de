"""
Backend package for the portfolio site.

This package provides a FastAPI application that serves skills, projects and
blog posts out of a key-value store, accepts image uploads and protects its
admin endpoints with a token login.
"""
