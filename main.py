# FastAPI Application Redirect
# This file redirects to the actual app in the leave_mgmt package

from leave_mgmt.main import app  # noqa: F401

# Lets uvicorn find the app from the repository root: uvicorn main:app --port 8001
