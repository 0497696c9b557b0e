"""MCP server over stdio exposing Terraform Registry providers, documentation and modules."""

__version__ = "0.1.0"