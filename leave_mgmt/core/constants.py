"""
Application-wide constants
"""
SERVICE_NAME = "leave-management-backend"
API_PREFIX = "/api/v1"
