"""
Scholarships Module

Scholarship programs, their eligibility thresholds and slot counters.
"""
