# WebSocket event streaming
