"""
Real-time chat gateway.

Serves /ws/chat on the main application: token-authenticated handshake,
room membership, and JSON event dispatch backed by the chat service.
"""
