"""Entry point: python -m taskboard.mcp_server"""

from taskboard.mcp_server import main

main()
