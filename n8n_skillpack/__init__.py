"""
n8n skill pack builder
Tiered, line-addressable documentation corpus for n8n nodes
"""

__version__ = "1.0.0"
