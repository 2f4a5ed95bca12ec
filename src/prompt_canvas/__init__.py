"""
Prompt Canvas - Execution engine for node-based generation workflows.
"""

__version__ = "0.1.0"
