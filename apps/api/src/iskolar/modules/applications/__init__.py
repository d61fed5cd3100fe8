"""
Applications Module

Scholarship applications and their lifecycle:
1. Submission gated by eligibility (GPA, income, year level, open period, slots)
2. One active application per applicant and scholarship
3. A transition table drives every status change
4. Staff decisions with an approval checklist and audit history
5. One slot consumed per approved application

API Endpoints:
- POST /applications - Submit an application
- GET /applications - List applications
- GET /applications/{id} - Application detail
- GET /staff/applications - Review queue
- GET /staff/applications/{id} - Review detail
- POST /staff/applications/{id}/start-review - Start review
- PUT /staff/validations - Record a decision
"""
