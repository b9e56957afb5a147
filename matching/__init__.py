"""
Program matching service: scores a student's transcript and preferences
against the program catalog and caches the ranked result.
"""
