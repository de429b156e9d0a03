"""
REST API routers for the PR reviewer.
"""
