"""
Robot relay service package.

This service is responsible for:
- Pairing robot sockets with browser dashboard sockets.
- Translating and forwarding typed JSON messages between them.
- Evicting dead peers with a WebSocket heartbeat.

The HTTP/WebSocket server is implemented with Tornado.
"""
