"""
City simulation model and its default configuration.
"""
