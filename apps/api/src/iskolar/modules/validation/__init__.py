"""
Validation Module

Staff review of individual and bulk requirement submissions.
"""
