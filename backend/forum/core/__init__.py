# forum/core/__init__.py
"""
Core application modules.
Contains essential infrastructure components:
- bootstrap: Application initialization and default admin creation
- db: Database configuration and connection management
- errors: Typed errors and the exception handlers that map them to responses
- policy: Declarative access rules for every (resource, action) pair
- pubsub: Log channel feeding the debug log viewer
- security: Password hashing, session tokens and one-time tokens
- slugs: Slug derivation for posts and categories
- validation: Input sanitizing, format checks and pagination helpers
"""
