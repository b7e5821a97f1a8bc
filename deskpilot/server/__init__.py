"""DeskPilot HTTP and WebSocket server."""
