"""Domain routers for API v1: compositions, comments, users and audit."""
