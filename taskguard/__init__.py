"""
taskguard - task authorization decisions and auto-provisioning.
"""

__version__ = "0.1.0"
