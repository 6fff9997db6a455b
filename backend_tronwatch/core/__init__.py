"""
Core utilities shared by ingestion, jobs and the API: exceptions, unit
constants and TRON address helpers.
"""
