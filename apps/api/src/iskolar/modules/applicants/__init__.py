"""
Applicants Module

Student profiles: read during eligibility screening and edited by their owners.
"""
