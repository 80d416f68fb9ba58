"""
Helpers kept outside the dispatch engine, such as demo fleet seeding.
"""
