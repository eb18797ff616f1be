"""
Services module for business logic.

- domain/: Application services (users, categories, competitions, chat)
- chatbot/: AI assistant with rule-based fallback
- oauth/: Google OAuth 2.0 authorization-code flow
"""
