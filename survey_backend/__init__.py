"""CMS survey collection backend.

FastAPI service that stores questionnaire submissions and exposes
admin-only endpoints to list, delete and summarize them.
"""
