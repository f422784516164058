# phaseflow/tools/__init__.py
"""
Service layer shared by the CLI and the MCP server.

Each function validates its inputs, runs one engine operation against a
Workspace and returns the structured result as a JSON-ready dict.
"""
