"""
IELTS mock exam scoring backend.
"""
