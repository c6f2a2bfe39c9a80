"""Vitascan: multimodal health screening reports over MCP."""

__version__ = "0.1.0"
