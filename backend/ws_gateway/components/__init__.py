"""Gateway building blocks: constants, connection context, endpoints."""
