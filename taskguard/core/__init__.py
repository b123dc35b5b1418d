"""
Core: configuration, logging, exceptions and the authorization engine.
"""
