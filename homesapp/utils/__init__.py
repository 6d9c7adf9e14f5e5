"""
Utility modules: authentication, dependencies, exceptions, validation and text helpers.
"""
