"""
Requirements Module

Document requirements from a configurable catalog, applicant uploads and
completion tracking.

API Endpoints:
- GET /me/requirements - Requirements with submission status
- POST /me/requirements - Upload a document

Background Jobs (via APScheduler):
- send_due_reminders: emails applicants about outstanding documents due soon
"""
