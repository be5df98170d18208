"""
AgentLinks - link AI coding assistant conversations to git commits.
"""

__version__ = "0.1.0"
