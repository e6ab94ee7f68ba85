"""
profile-sync: flattened, searchable projection of semi-structured profiles.
"""
